"""
Grid scan state machine and campaign scheduling.
"""
import logging

from django.utils import timezone

from rankwell_backend.transitions import apply_transition, update_progress_if_active

from .models import GridScan, LocalCampaign

logger = logging.getLogger(__name__)

PENDING = GridScan.STATUS_PENDING
SCANNING = GridScan.STATUS_SCANNING
COMPLETED = GridScan.STATUS_COMPLETED
FAILED = GridScan.STATUS_FAILED

ALLOWED_TRANSITIONS = {
    PENDING: (SCANNING, FAILED),
    SCANNING: (COMPLETED, FAILED),
    COMPLETED: (),
    FAILED: (),
}

ENTITY = 'Grid scan'


def transition(scan, to_status, **fields):
    return apply_transition(scan, ALLOWED_TRANSITIONS, to_status, ENTITY, **fields)


def has_scan_in_flight(campaign):
    return campaign.scans.filter(status__in=GridScan.IN_FLIGHT_STATUSES).exists()


def create_scan(campaign, keywords=None):
    return GridScan.objects.create(
        campaign=campaign,
        keywords=list(keywords or campaign.keywords or []),
        grid_size=campaign.grid_size,
    )


def start_scan(scan):
    return transition(scan, SCANNING, started_at=timezone.now(), progress=0, error_message=None)


def update_progress(scan, value, points_completed=None):
    fields = {} if points_completed is None else {'points_completed': points_completed}
    return update_progress_if_active(scan, GridScan.TERMINAL_STATUSES, value, **fields)


def complete_scan(scan, overall, api_calls_used, failed_points):
    return transition(
        scan, COMPLETED,
        progress=100,
        completed_at=timezone.now(),
        avg_rank=overall.get('avg_rank'),
        share_of_voice=overall.get('share_of_voice'),
        top_competitor=overall.get('top_competitor'),
        api_calls_used=api_calls_used,
        failed_points=failed_points,
    )


def fail_scan(scan, message, failed_points=None):
    message = (message or '').strip() or 'Grid scan failed'
    fields = {'error_message': message, 'completed_at': timezone.now()}
    if failed_points is not None:
        fields['failed_points'] = failed_points
    logger.warning("Grid scan %s failed: %s", scan.pk, message)
    return transition(scan, FAILED, **fields)


def advance_schedule(campaign, scanned_at=None):
    """Record the scan time and push next_scan_at out by the campaign's frequency."""
    scanned_at = scanned_at or timezone.now()
    next_scan_at = campaign.next_scan_after(scanned_at)
    LocalCampaign.objects.filter(pk=campaign.pk).update(
        last_scan_at=scanned_at, next_scan_at=next_scan_at, updated_at=timezone.now()
    )
    campaign.last_scan_at = scanned_at
    campaign.next_scan_at = next_scan_at
    return campaign


def campaigns_due(now=None, limit=20):
    now = now or timezone.now()
    return list(
        LocalCampaign.objects.filter(status=LocalCampaign.STATUS_ACTIVE, next_scan_at__lte=now)
        .order_by('next_scan_at')[:limit]
    )
