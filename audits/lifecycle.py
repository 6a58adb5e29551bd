"""
Audit state machine and step-result persistence.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from rankwell_backend.exceptions import InvalidStatus, InvalidTransition
from rankwell_backend.transitions import apply_transition, update_progress_if_active

from .models import Audit
from .steps import FAILURE_KEY, STAGES, WARNINGS_KEY

logger = logging.getLogger(__name__)

PENDING = Audit.STATUS_PENDING
CRAWLING = Audit.STATUS_CRAWLING
ANALYZING = Audit.STATUS_ANALYZING
COMPLETED = Audit.STATUS_COMPLETED
FAILED = Audit.STATUS_FAILED

ALLOWED_TRANSITIONS = {
    PENDING: (CRAWLING, FAILED),
    CRAWLING: (ANALYZING, FAILED),
    ANALYZING: (COMPLETED, FAILED),
    COMPLETED: (),
    FAILED: (PENDING,),
}

ENTITY = 'Audit'


def transition(audit, to_status, **fields):
    return apply_transition(audit, ALLOWED_TRANSITIONS, to_status, ENTITY, **fields)


def start_audit(audit):
    return transition(audit, CRAWLING, started_at=timezone.now(), progress=5, error_message=None)


def begin_analysis(audit, progress=30, step=None):
    return transition(audit, ANALYZING, progress=progress, current_step=step)


def update_step_progress(audit, progress, step=None):
    """Clamped progress write (and optional step label) while the audit is active."""
    fields = {'current_step': step} if step else {}
    return update_progress_if_active(audit, Audit.TERMINAL_STATUSES, progress, **fields)


def save_step_result(audit, stage, result):
    """
    Store one stage's finished result. Only called after the stage's
    remote work returned, so a key is never partially written.
    """
    if stage not in STAGES:
        raise ValueError(f"Unknown audit stage {stage!r}")
    data = result.to_dict() if hasattr(result, 'to_dict') else result
    step_results = dict(audit.step_results or {})
    step_results[stage] = data
    Audit.objects.filter(pk=audit.pk).exclude(status__in=Audit.TERMINAL_STATUSES).update(
        step_results=step_results, updated_at=timezone.now()
    )
    audit.step_results = step_results
    return audit


def record_warning(audit, stage, error):
    """Keep a stage failure that did not stop the pipeline."""
    payload = error.to_dict() if hasattr(error, 'to_dict') else {'message': str(error)}
    payload['timestamp'] = timezone.now().isoformat()
    step_results = dict(audit.step_results or {})
    warnings = dict(step_results.get(WARNINGS_KEY) or {})
    warnings[stage] = payload
    step_results[WARNINGS_KEY] = warnings
    Audit.objects.filter(pk=audit.pk).update(step_results=step_results, updated_at=timezone.now())
    audit.step_results = step_results
    logger.warning("Audit %s: %s stage failed: %s", audit.pk, stage, payload.get('message'))
    return audit


def complete_audit(audit, health_score):
    if health_score is None:
        raise InvalidTransition(ENTITY, audit.status, COMPLETED, reason='health score is required')
    return transition(
        audit, COMPLETED,
        progress=100,
        current_step=None,
        completed_at=timezone.now(),
        health_score=health_score,
    )


def fail_audit(audit, message, step=None, category=None):
    """FAIL a non-terminal audit, keeping the failed step and error category."""
    message = (message or '').strip() or 'Audit orchestration failed'
    fields = {
        'error_message': message,
        'current_step': step or audit.current_step,
        'completed_at': timezone.now(),
    }
    if category:
        step_results = dict(audit.step_results or {})
        step_results[FAILURE_KEY] = {'category': category, 'timestamp': timezone.now().isoformat()}
        fields['step_results'] = step_results
    logger.warning("Audit %s failed: %s", audit.pk, message)
    return transition(audit, FAILED, **fields)


def retry_audit(audit):
    """
    FAILED -> PENDING, wiping progress, step, error, timestamps and every
    stage result. Any other status is rejected without touching the row.
    """
    if audit.status != FAILED:
        raise InvalidStatus(f"Only failed audits can be retried (current status: {audit.status})",
                            current=audit.status)
    return transition(
        audit, PENDING,
        progress=0,
        current_step=None,
        error_message=None,
        started_at=None,
        completed_at=None,
        step_results={},
        health_score=None,
    )


def was_recently_audited(domain, hours=None):
    """True when `domain` has an audit in any non-FAILED status created within `hours`."""
    if hours is None:
        hours = settings.AUDIT_COOLDOWN_HOURS
    cutoff = timezone.now() - timedelta(hours=hours)
    return Audit.objects.filter(domain=domain, created_at__gte=cutoff).exclude(status=FAILED).exists()
