"""
Management command to enqueue grid scans for campaigns that are due.
Usage: python manage.py schedule_grid_scans [--limit 20]
"""
import logging

from django.core.management.base import BaseCommand
from django.db import transaction

from jobs.dispatch import dispatch
from local_seo import lifecycle
from local_seo.executor import GRID_SCAN_REQUESTED

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Queue grid scans for active campaigns whose next scan time has passed'

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=20, help='Campaigns scheduled per run')

    def handle(self, *args, **options):
        queued = 0
        for campaign in lifecycle.campaigns_due(limit=options['limit']):
            if lifecycle.has_scan_in_flight(campaign):
                logger.info("Campaign %s already has a scan in flight; skipping", campaign.pk)
                continue
            if not campaign.keywords:
                logger.warning("Campaign %s has no keywords; skipping", campaign.pk)
                continue
            with transaction.atomic():
                scan = lifecycle.create_scan(campaign)
                dispatch(GRID_SCAN_REQUESTED, {'scan_id': str(scan.pk)})
            queued += 1
        self.stdout.write(f"Queued {queued} grid scan(s)")
