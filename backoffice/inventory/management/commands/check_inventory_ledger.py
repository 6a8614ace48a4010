"""
Django management command to check inventory rows against their movement
history and recent audit logs
"""
import json
from django.core.management.base import BaseCommand, CommandError
from backoffice.core.models import AuditLog
from backoffice.inventory.models import Inventory
from backoffice.inventory.services import replay_movements, availability_matches


class Command(BaseCommand):
    help = 'Check inventory quantities against the movement ledger'

    def add_arguments(self, parser):
        parser.add_argument(
            '--inventory-id',
            type=int,
            help='Check specific inventory ID only',
        )
        parser.add_argument(
            '--show-all',
            action='store_true',
            help='Show all inventory rows, not just discrepancies',
        )
        parser.add_argument(
            '--audit-limit',
            type=int,
            default=20,
            help='Number of recent audit logs to show (default: 20)',
        )

    def handle(self, *args, **options):
        inventory_id = options.get('inventory_id')
        show_all = options.get('show_all', False)
        audit_limit = options.get('audit_limit', 20)

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("INVENTORY LEDGER ANALYSIS"))
        self.stdout.write("=" * 80)

        rows = Inventory.objects.select_related('product', 'site').order_by('id')
        if inventory_id:
            rows = rows.filter(id=inventory_id)
            if not rows.exists():
                raise CommandError(f"Inventory {inventory_id} not found")

        self.stdout.write(f"Inventory rows: {rows.count()}")
        self.stdout.write("")

        discrepancies = []
        for inventory in rows.iterator():
            problems = replay_movements(inventory)
            if not availability_matches(inventory):
                # Sync overwrites available quantity and leaves reservations alone
                problems.append(
                    f"Available {inventory.available_quantity} != quantity {inventory.quantity} "
                    f"- reserved {inventory.reserved_quantity}"
                )
            if problems:
                discrepancies.append((inventory, problems))

            if show_all or problems:
                self.stdout.write(f"{inventory.product.name} @ {inventory.site.code} (ID: {inventory.id})")
                self.stdout.write(
                    f"  Quantity: {inventory.quantity}, Reserved: {inventory.reserved_quantity}, "
                    f"Available: {inventory.available_quantity}"
                )
                for problem in problems:
                    self.stdout.write(self.style.WARNING(f"  {problem}"))
                if not problems:
                    self.stdout.write(self.style.SUCCESS("  Ledger and movements agree"))
                self.stdout.write("")

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("DISCREPANCIES SUMMARY"))
        self.stdout.write("=" * 80)
        if discrepancies:
            self.stdout.write(self.style.WARNING(f"Inventory rows with discrepancies: {len(discrepancies)}"))
            for inventory, problems in discrepancies:
                self.stdout.write(f"  - {inventory.product.barcode} @ {inventory.site.code}: {len(problems)} problem(s)")
        else:
            self.stdout.write(self.style.SUCCESS("No discrepancies found!"))
        self.stdout.write("")

        if audit_limit:
            self.stdout.write("=" * 80)
            self.stdout.write(self.style.SUCCESS("RECENT AUDIT LOGS - STOCK OPERATIONS"))
            self.stdout.write("=" * 80)
            recent_logs = AuditLog.objects.filter(
                action__in=['stock_adjust', 'stock_transfer', 'stock_levels', 'inventory_sync']
            ).order_by('-created_at')[:audit_limit]
            for log in recent_logs:
                self.stdout.write(f"[{log.created_at.strftime('%Y-%m-%d %H:%M:%S')}] {log.action}")
                self.stdout.write(f"  Object: {log.object_name or log.object_id}")
                if log.changes:
                    self.stdout.write(f"  Changes: {json.dumps(log.changes)}")
            self.stdout.write("")
