"""
Django management command to sync one site's inventory from the legacy
point-of-sale database
"""
import signal
import threading
from django.core.management.base import BaseCommand, CommandError
from backoffice.sync.orchestrator import LegacySyncOrchestrator, COMPLETE, ERROR
from backoffice.sync.legacy import LegacyInventorySource


class Command(BaseCommand):
    help = 'Sync inventory for one site from the legacy database'

    def add_arguments(self, parser):
        parser.add_argument('site_code', help='Legacy site code, e.g. 026')
        parser.add_argument(
            '--database-url',
            help='Legacy database URL (defaults to LEGACY_DATABASE_URL)',
        )
        parser.add_argument(
            '--schema',
            help='Legacy database schema (defaults to LEGACY_DATABASE_SCHEMA)',
        )
        parser.add_argument(
            '--quiet-progress',
            action='store_true',
            help='Only print the final summary',
        )

    def handle(self, *args, **options):
        site_code = options['site_code'].strip()
        if not site_code:
            raise CommandError('Site code is required')

        cancel_event = threading.Event()
        # First Ctrl+C stops the run at the next row boundary
        previous_handler = signal.signal(signal.SIGINT, lambda signum, stack: cancel_event.set())

        source = LegacyInventorySource(url=options.get('database_url'), schema=options.get('schema'))
        orchestrator = LegacySyncOrchestrator(site_code, source=source, cancel_event=cancel_event)

        last = None
        try:
            for payload in orchestrator.run():
                last = payload
                if payload['type'] == ERROR:
                    break
                if not options['quiet_progress']:
                    self.stdout.write(f"[{payload['current']}/{payload['total']}] {payload['message']}")
        finally:
            signal.signal(signal.SIGINT, previous_handler)

        if last is None or last['type'] != COMPLETE:
            raise CommandError(last['message'] if last else 'Sync did not run')

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS(last['message']))
        for key, value in last['stats'].items():
            self.stdout.write(f"  {key}: {value}")
        for error in last.get('errors', []):
            self.stdout.write(self.style.WARNING(f"  {error}"))
