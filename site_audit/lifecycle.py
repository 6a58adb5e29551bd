"""
Site audit scan state machine.

All writes go through status-guarded transitions so a redelivered job
message cannot move a scan backwards.
"""
import logging

from django.utils import timezone

from rankwell_backend.exceptions import InvalidTransition
from rankwell_backend.transitions import apply_transition, update_progress_if_active

from .models import SiteAuditScan, SiteAuditSummary

logger = logging.getLogger(__name__)

PENDING = SiteAuditScan.STATUS_PENDING
SUBMITTING = SiteAuditScan.STATUS_SUBMITTING
CRAWLING = SiteAuditScan.STATUS_CRAWLING
FETCHING_RESULTS = SiteAuditScan.STATUS_FETCHING_RESULTS
COMPLETED = SiteAuditScan.STATUS_COMPLETED
FAILED = SiteAuditScan.STATUS_FAILED

ALLOWED_TRANSITIONS = {
    PENDING: (SUBMITTING, FAILED),
    SUBMITTING: (CRAWLING, FAILED),
    CRAWLING: (FETCHING_RESULTS, FAILED),
    FETCHING_RESULTS: (COMPLETED, FAILED),
    COMPLETED: (),
    FAILED: (),
}

ENTITY = 'Scan'


def transition(scan, to_status, **fields):
    return apply_transition(scan, ALLOWED_TRANSITIONS, to_status, ENTITY, **fields)


def mark_submitting(scan):
    return transition(scan, SUBMITTING, started_at=timezone.now())


def record_task_id(scan, task_id, progress=5):
    """The provider accepted the crawl: persist its task id and start crawling."""
    if not task_id:
        raise InvalidTransition(ENTITY, scan.status, CRAWLING, reason='remote task id is required')
    return transition(scan, CRAWLING, task_id=task_id, progress=progress)


def mark_fetching_results(scan, progress=55):
    return transition(scan, FETCHING_RESULTS, progress=progress)


def update_progress(scan, value):
    """Clamp to [0, 100] and write unless the scan has already finished."""
    return update_progress_if_active(scan, SiteAuditScan.TERMINAL_STATUSES, value)


def complete_scan(scan, api_cost=None):
    if not SiteAuditSummary.objects.filter(scan_id=scan.pk).exists():
        raise InvalidTransition(ENTITY, scan.status, COMPLETED, reason='summary has not been saved')
    fields = {'progress': 100, 'completed_at': timezone.now()}
    if api_cost is not None:
        fields['api_cost'] = api_cost
    return transition(scan, COMPLETED, **fields)


def fail_scan(scan, message):
    """Move any non-terminal scan to FAILED with a human-readable message."""
    message = (message or '').strip() or 'Unknown error occurred'
    logger.warning("Scan %s failed: %s", scan.pk, message)
    return transition(scan, FAILED, error_message=message, completed_at=timezone.now())
