"""
Management command to drain the job message outbox.
Usage: python manage.py run_jobs [--once] [--limit 20] [--sleep 5]
"""
import logging
import time

from django.core.management.base import BaseCommand

from jobs.dispatch import run_due_messages

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Process due background job messages'

    def add_arguments(self, parser):
        parser.add_argument('--once', action='store_true', help='Process one batch and exit')
        parser.add_argument('--limit', type=int, default=20, help='Messages claimed per batch')
        parser.add_argument('--sleep', type=float, default=5.0, help='Seconds to wait when the queue is empty')

    def handle(self, *args, **options):
        limit = options['limit']
        while True:
            processed, succeeded = run_due_messages(limit=limit)
            if processed:
                self.stdout.write(f"Processed {processed} job(s), {succeeded} succeeded")
            if options['once']:
                break
            if not processed:
                time.sleep(options['sleep'])
