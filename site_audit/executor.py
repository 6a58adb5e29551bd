"""
Site audit job handlers.

site-audit/scan.requested  submit the crawl and schedule the first poll
site-audit/scan.poll       check the remote task; re-poll with backoff, or
                           fetch results and complete the scan

Every step is guarded by the scan's current status, so a redelivered message
for a scan that has already moved on does nothing.
"""
import logging

from django.conf import settings

from integrations.dataforseo import get_dataforseo_client
from integrations.errors import ProviderError
from jobs.dispatch import dispatch
from jobs.registry import job_handler
from rankwell_backend.exceptions import InvalidTransition

from . import lifecycle
from .ingestion import build_page, save_pages, save_summary
from .models import SiteAuditScan

logger = logging.getLogger(__name__)

SCAN_REQUESTED = 'site-audit/scan.requested'
SCAN_POLL = 'site-audit/scan.poll'

# Progress checkpoints while results are paged in
PROGRESS_FETCHING = 55
PROGRESS_SUMMARY = 65
PROGRESS_PAGES = 80
PROGRESS_CWV = 90
PROGRESS_SAVED = 95

CRAWL_PROGRESS_START = 5
CRAWL_PROGRESS_CAP = 50


def poll_delay_seconds(attempt):
    """Delay before poll `attempt + 1`: grows by the multiplier every third poll, capped."""
    config = settings.SITE_AUDIT_POLLING
    delay = config['initial_delay_seconds'] * config['backoff_multiplier'] ** (attempt // 3)
    return min(delay, config['max_delay_seconds'])


def crawl_progress(attempt):
    return min(CRAWL_PROGRESS_START + 2 * attempt, CRAWL_PROGRESS_CAP)


def _load_scan(payload):
    scan = SiteAuditScan.objects.filter(pk=payload.get('scan_id')).first()
    if scan is None:
        logger.warning("Scan %s no longer exists; dropping message", payload.get('scan_id'))
    return scan


def fail_scan_from_job(payload, error):
    """on_failure hook: the job ran out of attempts."""
    scan = _load_scan(payload)
    if scan is None or scan.status in SiteAuditScan.TERMINAL_STATUSES:
        return
    try:
        lifecycle.fail_scan(scan, str(error) or error.__class__.__name__)
    except InvalidTransition as e:
        logger.info("Scan %s already finished: %s", scan.pk, e)


@job_handler(SCAN_REQUESTED, on_failure=fail_scan_from_job)
def run_site_audit(payload):
    scan = _load_scan(payload)
    if scan is None:
        return

    if scan.status == lifecycle.PENDING:
        lifecycle.mark_submitting(scan)
    elif scan.status != lifecycle.SUBMITTING:
        logger.info("Scan %s is %s; ignoring redelivered request", scan.pk, scan.status)
        return

    client = get_dataforseo_client()
    task_id = client.submit_crawl_task(scan.domain, **{
        key: value for key, value in scan.crawl_config().items() if value is not None
    })
    lifecycle.record_task_id(scan, task_id, progress=CRAWL_PROGRESS_START)

    initial_delay = settings.SITE_AUDIT_POLLING['initial_delay_seconds']
    dispatch(SCAN_POLL, {
        'scan_id': str(scan.pk),
        'attempt': 1,
        'waited_seconds': initial_delay,
        'api_cost': client.total_cost,
    }, delay_seconds=initial_delay)


@job_handler(SCAN_POLL, on_failure=fail_scan_from_job)
def poll_site_audit(payload):
    scan = _load_scan(payload)
    if scan is None:
        return

    if scan.status == lifecycle.FETCHING_RESULTS:
        # A previous delivery failed while paging results in
        _fetch_results(scan, payload)
        return
    if scan.status != lifecycle.CRAWLING:
        logger.info("Scan %s is %s; ignoring poll", scan.pk, scan.status)
        return

    attempt = payload.get('attempt', 1)
    waited = payload.get('waited_seconds', 0)
    client = get_dataforseo_client()

    if client.is_task_ready(scan.task_id):
        lifecycle.mark_fetching_results(scan, progress=PROGRESS_FETCHING)
        _fetch_results(scan, payload, client)
        return

    max_wait_minutes = settings.SITE_AUDIT_POLLING['max_wait_minutes']
    if waited >= max_wait_minutes * 60:
        lifecycle.fail_scan(scan, f"Crawl timed out after {max_wait_minutes} minutes")
        return

    lifecycle.update_progress(scan, crawl_progress(attempt))
    delay = poll_delay_seconds(attempt)
    dispatch(SCAN_POLL, {
        'scan_id': str(scan.pk),
        'attempt': attempt + 1,
        'waited_seconds': waited + delay,
        'api_cost': (payload.get('api_cost') or 0) + client.total_cost,
    }, delay_seconds=delay)


def _fetch_results(scan, payload, client=None):
    client = client or get_dataforseo_client()

    summary = client.get_crawl_summary(scan.task_id)
    if not summary:
        raise ProviderError('Failed to fetch crawl summary', provider='dataforseo')
    lifecycle.update_progress(scan, PROGRESS_SUMMARY)

    items = client.fetch_all_pages(scan.task_id)
    lifecycle.update_progress(scan, PROGRESS_PAGES)

    pages = [build_page(item) for item in items if item.get('url')]
    lifecycle.update_progress(scan, PROGRESS_CWV)

    save_summary(scan, summary, pages)
    save_pages(scan, pages)
    lifecycle.update_progress(scan, PROGRESS_SAVED)

    api_cost = (payload.get('api_cost') or 0) + client.total_cost
    lifecycle.complete_scan(scan, api_cost=round(api_cost, 4))
    logger.info("Scan %s completed with %s pages", scan.pk, len(pages))
