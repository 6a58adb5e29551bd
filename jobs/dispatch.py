"""
Enqueue and process job messages.

Delivery is at-least-once: a handler may run more than once for the same
message, so every handler must be idempotent.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from jobs.models import JobMessage
from jobs.registry import get_handler

logger = logging.getLogger(__name__)


def dispatch(event, payload, delay_seconds=0):
    """
    Persist a job message. With JOBS_EAGER, messages due now are processed inline.
    """
    message = JobMessage.objects.create(
        event=event,
        payload=payload,
        available_at=timezone.now() + timedelta(seconds=delay_seconds),
    )
    logger.info("Enqueued %s (%s) delay=%ss", event, message.id, delay_seconds)

    if getattr(settings, 'JOBS_EAGER', False) and delay_seconds <= 0:
        process_message(message)
    return message


def claim_due_messages(limit=20):
    """
    Move up to `limit` due messages to processing and return them.

    A message left in processing longer than JOBS_VISIBILITY_TIMEOUT_SECONDS
    belongs to a worker that died mid-run and is claimed again.
    """
    now = timezone.now()
    timeout = getattr(settings, 'JOBS_VISIBILITY_TIMEOUT_SECONDS', 900)
    stale_before = now - timedelta(seconds=timeout)
    with transaction.atomic():
        ids = list(
            JobMessage.objects.select_for_update(skip_locked=True)
            .filter(
                Q(status='pending', available_at__lte=now)
                | Q(status='processing', updated_at__lt=stale_before)
            )
            .order_by('available_at', 'created_at')
            .values_list('id', flat=True)[:limit]
        )
        reclaimed = JobMessage.objects.filter(id__in=ids, status='processing').count()
        if reclaimed:
            logger.warning("Reclaimed %s job message(s) stuck in processing", reclaimed)
        JobMessage.objects.filter(id__in=ids).update(status='processing', updated_at=now)
    return list(JobMessage.objects.filter(id__in=ids).order_by('available_at', 'created_at'))


def process_message(message):
    """
    Run the handler for one message. Returns True when the handler succeeded.

    A failing handler is rescheduled until JOBS_MAX_ATTEMPTS is reached; after
    the last attempt the message is marked failed and the handler's
    on_failure hook runs. Errors flagged `retryable = False` (permanent
    provider errors) fail on the first attempt.
    """
    handler = get_handler(message.event)
    if handler is None:
        logger.error("No handler registered for %s (%s)", message.event, message.id)
        message.status = 'failed'
        message.last_error = f"No handler registered for {message.event}"
        message.processed_at = timezone.now()
        message.save(update_fields=['status', 'last_error', 'processed_at', 'updated_at'])
        return False

    message.attempts += 1
    message.status = 'processing'
    message.save(update_fields=['attempts', 'status', 'updated_at'])

    try:
        handler.func(message.payload)
    except Exception as exc:
        logger.exception("Job %s (%s) failed on attempt %s", message.event, message.id, message.attempts)
        message.last_error = str(exc) or exc.__class__.__name__
        max_attempts = getattr(settings, 'JOBS_MAX_ATTEMPTS', 3)
        if message.attempts < max_attempts and getattr(exc, 'retryable', True):
            delay = getattr(settings, 'JOBS_RETRY_DELAY_SECONDS', 60) * message.attempts
            message.status = 'pending'
            message.available_at = timezone.now() + timedelta(seconds=delay)
            message.save(update_fields=['status', 'last_error', 'available_at', 'updated_at'])
        else:
            message.status = 'failed'
            message.processed_at = timezone.now()
            message.save(update_fields=['status', 'last_error', 'processed_at', 'updated_at'])
            _run_failure_hook(handler, message, exc)
        return False

    message.status = 'done'
    message.processed_at = timezone.now()
    message.last_error = None
    message.save(update_fields=['status', 'processed_at', 'last_error', 'updated_at'])
    return True


def _run_failure_hook(handler, message, exc):
    if handler.on_failure is None:
        return
    try:
        handler.on_failure(message.payload, exc)
    except Exception:
        logger.exception("on_failure hook for %s (%s) raised", message.event, message.id)


def run_due_messages(limit=20):
    """Claim and process due messages. Returns (processed, succeeded)."""
    messages = claim_due_messages(limit=limit)
    succeeded = 0
    for message in messages:
        if process_message(message):
            succeeded += 1
    return len(messages), succeeded
