"""
Geo-grid scan job handler.

local-seo/scan.requested samples every (keyword, grid point) pair through
the maps SERP provider, aggregates the samples into per-business rows and
completes the scan. A failed sample is stored and counted, not fatal; the
scan fails only when no sample succeeded. Successful samples already
stored by an earlier delivery are reused.
"""
import logging

from django.db import transaction

from integrations.dataforseo import get_dataforseo_client
from integrations.errors import ProviderError
from jobs.registry import job_handler
from rankwell_backend.exceptions import InvalidTransition

from . import lifecycle
from .aggregation import aggregate_competitors, is_target_listing
from .grid import generate_grid_points
from .models import CompetitorStat, GridPointResult, GridScan

logger = logging.getLogger(__name__)

GRID_SCAN_REQUESTED = 'local-seo/scan.requested'

SERP_DEPTH = 20
PROGRESS_STEP = 10


def _load_scan(payload):
    scan = GridScan.objects.select_related('campaign').filter(pk=payload.get('scan_id')).first()
    if scan is None:
        logger.warning("Grid scan %s no longer exists; dropping message", payload.get('scan_id'))
    return scan


def fail_grid_scan_from_job(payload, error):
    """on_failure hook: the job ran out of attempts."""
    scan = _load_scan(payload)
    if scan is None or scan.status in GridScan.TERMINAL_STATUSES:
        return
    try:
        lifecycle.fail_scan(scan, str(error) or error.__class__.__name__)
    except InvalidTransition as e:
        logger.info("Grid scan %s already finished: %s", scan.pk, e)


def find_target_rank(listings, business_name, gmb_cid=None):
    """Rank of the first listing that is the campaign's business, else None."""
    for listing in listings:
        if is_target_listing(listing, business_name, gmb_cid):
            return listing.get('rank')
    return None


def sample_point(client, campaign, keyword, point):
    """One maps lookup. Provider errors become a failed sample."""
    try:
        listings = client.maps_search(keyword, point.coordinate, depth=SERP_DEPTH)
    except ProviderError as e:
        logger.warning("Grid sample %r at (%s, %s) failed: %s", keyword, point.row, point.col, e)
        return {
            'target_rank': None,
            'top_competitors': [],
            'total_results': 0,
            'succeeded': False,
            'error_message': e.message,
        }
    return {
        'target_rank': find_target_rank(listings, campaign.business_name, campaign.gmb_cid),
        'top_competitors': listings,
        'total_results': len(listings),
        'succeeded': True,
        'error_message': None,
    }


def _as_sample(result):
    return {
        'keyword': result.keyword,
        'row': result.grid_row,
        'col': result.grid_col,
        'succeeded': result.succeeded,
        'target_rank': result.target_rank,
        'top_competitors': result.top_competitors,
    }


def previous_rows(campaign, scan):
    previous = campaign.latest_completed_scan(exclude=scan.pk)
    if previous is None:
        return None
    return {stat.competitor_key: stat.to_row() for stat in previous.competitor_stats.all()}


def save_competitor_stats(scan, aggregation):
    with transaction.atomic():
        CompetitorStat.objects.filter(scan=scan).delete()
        CompetitorStat.objects.bulk_create([
            CompetitorStat(
                scan=scan,
                competitor_key=row['competitor_key'],
                business_name=row['business_name'][:200],
                is_target=row['is_target'],
                gmb_cid=row['gmb_cid'],
                rating=row['rating'],
                review_count=row['review_count'],
                avg_rank=row['avg_rank'],
                appearances=row['appearances'],
                times_in_top3=row['times_in_top3'],
                times_in_top10=row['times_in_top10'],
                times_in_top20=row['times_in_top20'],
                share_of_voice=row['share_of_voice'],
                prev_avg_rank=row['prev_avg_rank'],
                rank_change=row['rank_change'],
            )
            for row in aggregation.rows
        ])


@job_handler(GRID_SCAN_REQUESTED, on_failure=fail_grid_scan_from_job)
def run_grid_scan(payload):
    scan = _load_scan(payload)
    if scan is None:
        return

    if scan.status == lifecycle.PENDING:
        lifecycle.start_scan(scan)
    elif scan.status != lifecycle.SCANNING:
        logger.info("Grid scan %s is %s; ignoring redelivered request", scan.pk, scan.status)
        return

    campaign = scan.campaign
    keywords = scan.keywords or campaign.keywords or []
    if not keywords:
        lifecycle.fail_scan(scan, 'No keywords to scan')
        return
    try:
        points = generate_grid_points(
            campaign.center_lat, campaign.center_lng, scan.grid_size, campaign.grid_radius_miles
        )
    except ValueError as e:
        lifecycle.fail_scan(scan, str(e))
        return

    stored = {
        (r.keyword, r.grid_row, r.grid_col): r
        for r in GridPointResult.objects.filter(scan=scan, succeeded=True)
    }
    client = get_dataforseo_client(skip_cache=True)
    total = len(keywords) * len(points)
    done = 0
    api_calls = len(stored)
    last_reported = 0

    for keyword in keywords:
        for point in points:
            if (keyword, point.row, point.col) not in stored:
                result = sample_point(client, campaign, keyword, point)
                api_calls += 1 if result['succeeded'] else 0
                GridPointResult.objects.update_or_create(
                    scan=scan, keyword=keyword, grid_row=point.row, grid_col=point.col,
                    defaults={'lat': point.lat, 'lng': point.lng, **result},
                )
            done += 1
            progress = done * 100 // total
            if progress - last_reported >= PROGRESS_STEP or done == total:
                lifecycle.update_progress(scan, min(progress, 99), points_completed=done)
                last_reported = progress

    results = list(GridPointResult.objects.filter(scan=scan, keyword__in=keywords))
    failed = sum(1 for r in results if not r.succeeded)
    if failed == len(results):
        lifecycle.fail_scan(scan, f"All {failed} grid samples failed", failed_points=failed)
        return

    aggregation = aggregate_competitors(
        [_as_sample(r) for r in results], campaign.business_name,
        previous_rows(campaign, scan), gmb_cid=campaign.gmb_cid,
    )
    save_competitor_stats(scan, aggregation)
    lifecycle.complete_scan(scan, aggregation.overall, api_calls_used=api_calls, failed_points=failed)
    lifecycle.advance_schedule(campaign)
    logger.info("Grid scan %s completed: %s samples, %s failed, share of voice %s",
                scan.pk, len(results), failed, aggregation.overall['share_of_voice'])
