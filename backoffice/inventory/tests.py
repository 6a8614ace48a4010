"""
Test suite for the inventory ledger
Tests: adjustments, transfers, sync upserts, optimistic locking, movement
replay, stock levels and the inventory API
"""
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.db import OperationalError
from django.test import TestCase, override_settings
from rest_framework import status

from backoffice.core.models import AuditLog
from backoffice.core.permissions import ADMIN, MANAGER, STAFF
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.inventory import services
from backoffice.inventory.exceptions import (
    ValidationError, InsufficientStockError, NotFoundError, ConcurrentUpdateError,
)
from backoffice.inventory.models import Inventory, InventoryMovement


class StockAdjustmentTests(TestCase):
    """Test adjust_stock"""

    def setUp(self):
        self.user = TestDataFactory.create_user(roles=[MANAGER])
        self.inventory = TestDataFactory.create_inventory(quantity=Decimal('20'), reserved=Decimal('5'))

    def test_adjust_in_increases_quantity_and_available(self):
        movement = services.adjust_stock(self.inventory.id, 'IN', Decimal('10'), 'Recount', user=self.user)

        self.inventory.refresh_from_db()
        self.assertEqual(self.inventory.quantity, Decimal('30'))
        self.assertEqual(self.inventory.available_quantity, Decimal('25'))
        self.assertEqual(movement.movement_type, InventoryMovement.ADJUSTMENT)
        self.assertEqual(movement.quantity_before, Decimal('20'))
        self.assertEqual(movement.quantity_change, Decimal('10'))
        self.assertEqual(movement.quantity_after, Decimal('30'))
        self.assertEqual(movement.performed_by, self.user)

    def test_adjust_out_keeps_availability_invariant(self):
        services.adjust_stock(self.inventory.id, 'out', '7.5', 'Damaged')

        self.inventory.refresh_from_db()
        self.assertEqual(self.inventory.quantity, Decimal('12.5'))
        self.assertEqual(
            self.inventory.available_quantity,
            self.inventory.quantity - self.inventory.reserved_quantity
        )

    def test_reference_is_recorded_in_notes(self):
        movement = services.adjust_stock(self.inventory.id, 'IN', 1, 'Found', reference='CNT-42')
        self.assertEqual(movement.notes, 'Ref: CNT-42')

    def test_adjust_bumps_version(self):
        version = self.inventory.version
        services.adjust_stock(self.inventory.id, 'IN', 1, 'Found')
        self.inventory.refresh_from_db()
        self.assertEqual(self.inventory.version, version + 1)

    def test_invalid_input_is_rejected(self):
        with self.assertRaises(ValidationError):
            services.adjust_stock(self.inventory.id, 'IN', 0, 'Zero')
        with self.assertRaises(ValidationError):
            services.adjust_stock(self.inventory.id, 'IN', -3, 'Negative')
        with self.assertRaises(ValidationError):
            services.adjust_stock(self.inventory.id, 'SIDEWAYS', 3, 'Unknown type')
        with self.assertRaises(ValidationError):
            services.adjust_stock(self.inventory.id, 'IN', 3, '   ')
        with self.assertRaises(ValidationError):
            services.adjust_stock(self.inventory.id, 'IN', 'abc', 'Not a number')

    def test_missing_inventory(self):
        with self.assertRaises(NotFoundError):
            services.adjust_stock(999999, 'IN', 1, 'Ghost')

    def test_insufficient_stock_leaves_row_untouched(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            services.adjust_stock(self.inventory.id, 'OUT', Decimal('16'), 'Too much')

        self.assertEqual(ctx.exception.requested, Decimal('16'))
        self.assertEqual(ctx.exception.available, Decimal('15'))
        self.inventory.refresh_from_db()
        self.assertEqual(self.inventory.quantity, Decimal('20'))
        self.assertEqual(self.inventory.available_quantity, Decimal('15'))
        self.assertFalse(self.inventory.movements.exists())


class StockTransferTests(TestCase):
    """Test transfer_stock"""

    def setUp(self):
        self.warehouse = TestDataFactory.create_site(code='001', name='Main Warehouse')
        self.store = TestDataFactory.create_site(code='002', name='Store 2')
        self.product = TestDataFactory.create_product(barcode='ABC123')
        self.source = TestDataFactory.create_inventory(
            product=self.product, site=self.warehouse, quantity=Decimal('100'), reserved=Decimal('10')
        )

    def test_end_to_end_transfer(self):
        result = services.transfer_stock(self.product.id, self.warehouse.id, self.store.id, Decimal('40'))

        self.source.refresh_from_db()
        self.assertEqual(self.source.quantity, Decimal('60'))
        self.assertEqual(self.source.available_quantity, Decimal('50'))

        destination = Inventory.objects.get(product=self.product, site=self.store)
        self.assertEqual(destination.quantity, Decimal('40'))
        self.assertEqual(destination.reserved_quantity, Decimal('0'))
        self.assertEqual(destination.available_quantity, Decimal('40'))

        self.assertEqual(result.outgoing.quantity_change, Decimal('-40'))
        self.assertEqual(result.incoming.quantity_change, Decimal('40'))

    def test_transfer_movements_share_group(self):
        result = services.transfer_stock(
            self.product.id, self.warehouse.id, self.store.id, Decimal('5'), notes='Weekly restock'
        )

        movements = InventoryMovement.objects.filter(transfer_group=result.transfer_group)
        self.assertEqual(movements.count(), 2)
        self.assertEqual(result.outgoing.movement_type, InventoryMovement.TRANSFER_OUT)
        self.assertEqual(result.outgoing.to_site, self.store)
        self.assertEqual(result.outgoing.notes, 'Transfer to: 002 - Weekly restock')
        self.assertEqual(result.incoming.movement_type, InventoryMovement.TRANSFER_IN)
        self.assertEqual(result.incoming.from_site, self.warehouse)
        self.assertEqual(result.incoming.notes, 'Transfer from: 001 - Weekly restock')

    def test_transfer_into_existing_row(self):
        destination = TestDataFactory.create_inventory(
            product=self.product, site=self.store, quantity=Decimal('3'), reserved=Decimal('1')
        )
        services.transfer_stock(self.product.id, self.warehouse.id, self.store.id, Decimal('7'))

        destination.refresh_from_db()
        self.assertEqual(destination.quantity, Decimal('10'))
        self.assertEqual(destination.available_quantity, Decimal('9'))

    def test_same_site_is_rejected(self):
        with self.assertRaises(ValidationError):
            services.transfer_stock(self.product.id, self.warehouse.id, self.warehouse.id, Decimal('1'))

    def test_missing_sites_and_rows(self):
        with self.assertRaisesMessage(NotFoundError, 'Source site not found'):
            services.transfer_stock(self.product.id, 999999, self.store.id, Decimal('1'))
        with self.assertRaisesMessage(NotFoundError, 'Destination site not found'):
            services.transfer_stock(self.product.id, self.warehouse.id, 999999, Decimal('1'))
        with self.assertRaisesMessage(NotFoundError, 'Source inventory not found'):
            services.transfer_stock(self.product.id, self.store.id, self.warehouse.id, Decimal('1'))

    def test_insufficient_stock_changes_nothing(self):
        with self.assertRaises(InsufficientStockError):
            services.transfer_stock(self.product.id, self.warehouse.id, self.store.id, Decimal('91'))

        self.source.refresh_from_db()
        self.assertEqual(self.source.quantity, Decimal('100'))
        self.assertFalse(Inventory.objects.filter(site=self.store).exists())
        self.assertFalse(InventoryMovement.objects.exists())

    def test_failure_midway_rolls_back_both_legs(self):
        original = services._record_movement
        calls = []

        def fail_on_second_leg(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError('disk full')
            return original(*args, **kwargs)

        with mock.patch('backoffice.inventory.services._record_movement', side_effect=fail_on_second_leg):
            with self.assertRaises(RuntimeError):
                services.transfer_stock(self.product.id, self.warehouse.id, self.store.id, Decimal('40'))

        self.source.refresh_from_db()
        self.assertEqual(self.source.quantity, Decimal('100'))
        self.assertFalse(Inventory.objects.filter(site=self.store).exists())
        self.assertFalse(InventoryMovement.objects.exists())

    def test_opposite_transfers_lock_rows_in_pk_order(self):
        destination = TestDataFactory.create_inventory(product=self.product, site=self.store, quantity=Decimal('30'))

        with mock.patch.object(services, 'lock_inventory_rows', wraps=services.lock_inventory_rows) as lock:
            services.transfer_stock(self.product.id, self.warehouse.id, self.store.id, Decimal('10'))
            services.transfer_stock(self.product.id, self.store.id, self.warehouse.id, Decimal('4'))

        self.assertEqual(lock.call_count, 2)
        for call in lock.call_args_list:
            self.assertEqual(sorted(call.args[0]), sorted([self.source.pk, destination.pk]))
        locked = services.lock_inventory_rows([destination.pk, self.source.pk])
        self.assertEqual(list(locked), sorted([self.source.pk, destination.pk]))

        self.source.refresh_from_db()
        destination.refresh_from_db()
        self.assertEqual(self.source.quantity, Decimal('94'))
        self.assertEqual(destination.quantity, Decimal('36'))

    @override_settings(INVENTORY_WRITE_RETRIES=3)
    def test_deadlock_is_retried(self):
        original = services._write_inventory
        calls = []

        def deadlock_once(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise OperationalError('deadlock detected')
            return original(*args, **kwargs)

        with mock.patch('backoffice.inventory.services._write_inventory', side_effect=deadlock_once):
            result = services.transfer_stock(self.product.id, self.warehouse.id, self.store.id, Decimal('40'))

        self.source.refresh_from_db()
        self.assertEqual(self.source.quantity, Decimal('60'))
        self.assertEqual(InventoryMovement.objects.count(), 2)
        self.assertEqual(result.incoming.quantity_after, Decimal('40'))


class SyncInventoryTests(TestCase):
    """Test sync_inventory upserts"""

    def setUp(self):
        self.site = TestDataFactory.create_site(code='026', name='Markdown Outlet')
        self.product = TestDataFactory.create_product()

    def test_first_sync_creates_row_and_movement(self):
        inventory, created = services.sync_inventory(self.product.id, self.site.id, Decimal('12'))

        self.assertTrue(created)
        self.assertEqual(inventory.quantity, Decimal('12'))
        self.assertEqual(inventory.available_quantity, Decimal('12'))
        self.assertIsNotNone(inventory.last_synced_at)
        movement = inventory.movements.get()
        self.assertEqual(movement.movement_type, InventoryMovement.SYNC)
        self.assertEqual(movement.notes, 'Synced from legacy site 026')

    def test_last_value_wins_without_duplicates(self):
        services.sync_inventory(self.product.id, self.site.id, Decimal('12'))
        inventory, created = services.sync_inventory(self.product.id, self.site.id, Decimal('8'))

        self.assertFalse(created)
        self.assertEqual(Inventory.objects.filter(product=self.product, site=self.site).count(), 1)
        self.assertEqual(inventory.quantity, Decimal('8'))
        self.assertEqual(inventory.available_quantity, Decimal('8'))
        self.assertEqual(inventory.movements.count(), 2)

    def test_unchanged_quantity_writes_no_movement(self):
        services.sync_inventory(self.product.id, self.site.id, Decimal('12'))
        inventory, _ = services.sync_inventory(self.product.id, self.site.id, Decimal('12'))
        self.assertEqual(inventory.movements.count(), 1)

    def test_legacy_precision_is_rounded_before_comparing(self):
        for _ in range(3):
            inventory, _ = services.sync_inventory(self.product.id, self.site.id, Decimal('1.2345'))

        self.assertEqual(inventory.quantity, Decimal('1.235'))
        self.assertEqual(inventory.available_quantity, Decimal('1.235'))
        movement = inventory.movements.get()
        self.assertEqual(movement.quantity_change, Decimal('1.235'))
        self.assertEqual(movement.quantity_after, Decimal('1.235'))
        self.assertEqual(services.replay_movements(inventory), [])

    def test_to_quantity_rounds_half_up(self):
        self.assertEqual(services.to_quantity('2.0005'), Decimal('2.001'))
        self.assertEqual(services.to_quantity(Decimal('2.0004')), Decimal('2.000'))
        self.assertEqual(services.to_quantity(7), Decimal('7.000'))

    def test_sync_leaves_reservations_alone(self):
        TestDataFactory.create_inventory(product=self.product, site=self.site, quantity=Decimal('10'), reserved=Decimal('4'))
        inventory, _ = services.sync_inventory(self.product.id, self.site.id, Decimal('20'))
        self.assertEqual(inventory.reserved_quantity, Decimal('4'))
        self.assertEqual(inventory.available_quantity, Decimal('20'))

    def test_negative_quantity_is_rejected(self):
        with self.assertRaises(ValidationError):
            services.sync_inventory(self.product.id, self.site.id, Decimal('-1'))


class OptimisticLockingTests(TestCase):
    """Test version checks and conflict retries"""

    def test_stale_write_raises_conflict(self):
        inventory = TestDataFactory.create_inventory(quantity=Decimal('5'))
        stale = Inventory.objects.get(pk=inventory.pk)
        Inventory.objects.filter(pk=inventory.pk).update(version=inventory.version + 1)

        with self.assertRaises(ConcurrentUpdateError):
            services._write_inventory(stale, quantity=Decimal('6'), available_quantity=Decimal('6'))

    @override_settings(INVENTORY_WRITE_RETRIES=3)
    def test_retry_succeeds_after_conflicts(self):
        attempts = []

        @services.retry_on_conflict
        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConcurrentUpdateError('lost race')
            return 'done'

        self.assertEqual(flaky(), 'done')
        self.assertEqual(len(attempts), 3)

    @override_settings(INVENTORY_WRITE_RETRIES=2)
    def test_retry_gives_up(self):
        attempts = []

        @services.retry_on_conflict
        def always_conflicts():
            attempts.append(1)
            raise ConcurrentUpdateError('lost race')

        with self.assertRaises(ConcurrentUpdateError):
            always_conflicts()
        self.assertEqual(len(attempts), 2)

    @override_settings(INVENTORY_WRITE_RETRIES=2)
    def test_repeated_deadlocks_become_conflict(self):
        attempts = []

        @services.retry_on_conflict
        def always_deadlocks():
            attempts.append(1)
            raise OperationalError('deadlock detected')

        with self.assertRaises(ConcurrentUpdateError):
            always_deadlocks()
        self.assertEqual(len(attempts), 2)

    def test_other_database_errors_are_not_retried(self):
        attempts = []

        @services.retry_on_conflict
        def broken():
            attempts.append(1)
            raise OperationalError('no such table: inventory_inventory')

        with self.assertRaises(OperationalError):
            broken()
        self.assertEqual(len(attempts), 1)


class MovementLedgerTests(TestCase):
    """Test movement immutability and replay"""

    def setUp(self):
        self.warehouse = TestDataFactory.create_site(code='001', name='Main Warehouse')
        self.store = TestDataFactory.create_site(code='002', name='Store 2')
        self.product = TestDataFactory.create_product()

    def test_replay_reproduces_quantity(self):
        inventory, _ = services.sync_inventory(self.product.id, self.warehouse.id, Decimal('50'))
        services.adjust_stock(inventory.id, 'IN', Decimal('5'), 'Found')
        services.adjust_stock(inventory.id, 'OUT', Decimal('12'), 'Damaged')
        services.transfer_stock(self.product.id, self.warehouse.id, self.store.id, Decimal('20'))
        services.sync_inventory(self.product.id, self.warehouse.id, Decimal('25'))

        inventory.refresh_from_db()
        self.assertEqual(inventory.quantity, Decimal('25'))
        self.assertEqual(services.replay_movements(inventory), [])
        destination = Inventory.objects.get(product=self.product, site=self.store)
        self.assertEqual(services.replay_movements(destination), [])

    def test_replay_reports_untracked_quantity(self):
        inventory = TestDataFactory.create_inventory(product=self.product, site=self.warehouse, quantity=Decimal('9'))
        problems = services.replay_movements(inventory)
        self.assertEqual(len(problems), 1)
        self.assertIn('ledger quantity is 9', problems[0])

    def test_movements_are_append_only(self):
        inventory, _ = services.sync_inventory(self.product.id, self.warehouse.id, Decimal('3'))
        movement = inventory.movements.get()

        movement.reason = 'Edited'
        with self.assertRaises(ValueError):
            movement.save()
        with self.assertRaises(ValueError):
            movement.delete()

    def test_check_inventory_ledger_command(self):
        inventory, _ = services.sync_inventory(self.product.id, self.warehouse.id, Decimal('3'))
        out = StringIO()
        call_command('check_inventory_ledger', inventory_id=inventory.id, stdout=out)
        self.assertIn('No discrepancies found!', out.getvalue())

        TestDataFactory.create_inventory(product=self.product, site=self.store, quantity=Decimal('4'))
        out = StringIO()
        call_command('check_inventory_ledger', stdout=out)
        self.assertIn('Inventory rows with discrepancies: 1', out.getvalue())


class InventoryLevelsTests(TestCase):
    """Test update_inventory_levels"""

    def setUp(self):
        self.inventory = TestDataFactory.create_inventory(quantity=Decimal('5'))

    def test_partial_update(self):
        services.update_inventory_levels(self.inventory.id, min_stock_level=Decimal('2'))
        inventory = services.update_inventory_levels(self.inventory.id, max_stock_level=Decimal('50'))
        self.assertEqual(inventory.min_stock_level, Decimal('2'))
        self.assertEqual(inventory.max_stock_level, Decimal('50'))
        self.assertIsNone(inventory.reorder_point)

    def test_min_above_max_is_rejected(self):
        services.update_inventory_levels(self.inventory.id, max_stock_level=Decimal('10'))
        with self.assertRaises(ValidationError):
            services.update_inventory_levels(self.inventory.id, min_stock_level=Decimal('11'))

    def test_negative_level_is_rejected(self):
        with self.assertRaises(ValidationError):
            services.update_inventory_levels(self.inventory.id, reorder_point=Decimal('-1'))

    def test_low_stock_flag(self):
        inventory = services.update_inventory_levels(self.inventory.id, min_stock_level=Decimal('5'))
        self.assertTrue(inventory.is_low_stock)


class InventoryAPITests(TestCase):
    """Test inventory endpoints and role checks"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.manager = TestDataFactory.create_user(roles=[MANAGER])
        self.staff = TestDataFactory.create_user(roles=[STAFF])
        self.warehouse = TestDataFactory.create_site(code='001', name='Main Warehouse')
        self.store = TestDataFactory.create_site(code='002', name='Store 2')
        self.product = TestDataFactory.create_product(barcode='ABC123', name='Blue Mug')
        self.inventory = TestDataFactory.create_inventory(
            product=self.product, site=self.warehouse, quantity=Decimal('100'), reserved=Decimal('10')
        )

    def test_unauthenticated_request_is_rejected(self):
        response = self.client.get('/api/v1/inventory/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_user_without_role_is_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/inventory/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data, {'success': False, 'error': 'Insufficient permissions'})

    def test_staff_can_list_with_filters(self):
        other = TestDataFactory.create_product(name='Red Plate')
        TestDataFactory.create_inventory(product=other, site=self.store, quantity=Decimal('1'), min_stock_level=Decimal('2'))
        self.client.authenticate_user(self.staff)

        response = self.client.get('/api/v1/inventory/', {'site': self.warehouse.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['product_barcode'] for row in response.data['data']], ['ABC123'])

        response = self.client.get('/api/v1/inventory/', {'search': 'mug'})
        self.assertEqual(len(response.data['data']), 1)

        response = self.client.get('/api/v1/inventory/', {'low_stock': 'true'})
        self.assertEqual([row['product_name'] for row in response.data['data']], ['Red Plate'])

    def test_staff_cannot_adjust(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/inventory/adjust/', {
            'inventory_id': self.inventory.id, 'type': 'IN', 'quantity': '1', 'reason': 'Found',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])

    def test_manager_adjusts_stock(self):
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/inventory/adjust/', {
            'inventory_id': self.inventory.id, 'type': 'OUT', 'quantity': '15', 'reason': 'Damaged', 'reference': 'DMG-1',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(Decimal(response.data['data']['inventory']['quantity']), Decimal('85'))
        self.assertEqual(Decimal(response.data['data']['inventory']['available_quantity']), Decimal('75'))
        self.assertTrue(AuditLog.objects.filter(action='stock_adjust', user=self.manager).exists())

    def test_adjust_errors_map_to_status_codes(self):
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/inventory/adjust/', {
            'inventory_id': self.inventory.id, 'type': 'OUT', 'quantity': '91', 'reason': 'Too much',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient available stock', response.data['error'])

        response = self.client.post('/api/v1/inventory/adjust/', {
            'inventory_id': 999999, 'type': 'IN', 'quantity': '1', 'reason': 'Ghost',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.post('/api/v1/inventory/adjust/', {
            'inventory_id': self.inventory.id, 'type': 'IN', 'quantity': '1', 'reason': '',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Reason is required')

    def test_adjust_conflict_returns_409(self):
        self.client.authenticate_user(self.manager)
        with mock.patch('backoffice.inventory.services._write_inventory', side_effect=ConcurrentUpdateError('lost race')):
            response = self.client.post('/api/v1/inventory/adjust/', {
                'inventory_id': self.inventory.id, 'type': 'IN', 'quantity': '1', 'reason': 'Found',
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_admin_transfers_stock(self):
        admin = TestDataFactory.create_user(roles=[ADMIN])
        self.client.authenticate_user(admin)
        response = self.client.post('/api/v1/inventory/transfer/', {
            'product_id': self.product.id, 'from_site_id': self.warehouse.id,
            'to_site_id': self.store.id, 'quantity': '40',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        movements = response.data['data']['movements']
        self.assertEqual([Decimal(m['quantity_change']) for m in movements], [Decimal('-40'), Decimal('40')])
        self.assertEqual(movements[0]['transfer_group'], movements[1]['transfer_group'])
        self.assertTrue(AuditLog.objects.filter(action='stock_transfer').exists())

    @override_settings(INVENTORY_WRITE_RETRIES=2)
    def test_transfer_deadlock_returns_409(self):
        self.client.authenticate_user(self.manager)
        with mock.patch('backoffice.inventory.services._write_inventory', side_effect=OperationalError('deadlock detected')):
            response = self.client.post('/api/v1/inventory/transfer/', {
                'product_id': self.product.id, 'from_site_id': self.warehouse.id,
                'to_site_id': self.store.id, 'quantity': '5',
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(InventoryMovement.objects.exists())

    def test_transfer_history_groups_legs_newest_first(self):
        outlet = TestDataFactory.create_site(code='026', name='Markdown Outlet')
        plate = TestDataFactory.create_product(barcode='XYZ789', name='Red Plate')
        TestDataFactory.create_inventory(product=plate, site=outlet, quantity=Decimal('10'))
        first = services.transfer_stock(self.product.id, self.warehouse.id, self.store.id, Decimal('30'), notes='Restock')
        second = services.transfer_stock(self.product.id, self.store.id, self.warehouse.id, Decimal('5'))
        other = services.transfer_stock(plate.id, outlet.id, self.store.id, Decimal('2'))
        services.adjust_stock(self.inventory.id, 'IN', 1, 'Found')
        self.client.authenticate_user(self.staff)

        response = self.client.get('/api/v1/inventory/transfers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        transfers = response.data['data']
        self.assertEqual(
            [t['transfer_group'] for t in transfers],
            [str(other.transfer_group), str(second.transfer_group), str(first.transfer_group)],
        )
        oldest = transfers[2]
        self.assertEqual(oldest['product_barcode'], 'ABC123')
        self.assertEqual(oldest['from_site_code'], '001')
        self.assertEqual(oldest['to_site_code'], '002')
        self.assertEqual(Decimal(oldest['quantity']), Decimal('30'))
        self.assertEqual(
            [m['movement_type'] for m in oldest['movements']],
            [InventoryMovement.TRANSFER_OUT, InventoryMovement.TRANSFER_IN],
        )
        self.assertEqual({m['transfer_group'] for m in oldest['movements']}, {str(first.transfer_group)})

        response = self.client.get('/api/v1/inventory/transfers/', {'product': plate.id})
        self.assertEqual([t['transfer_group'] for t in response.data['data']], [str(other.transfer_group)])

        response = self.client.get('/api/v1/inventory/transfers/', {'site': self.warehouse.id})
        self.assertEqual(
            [t['transfer_group'] for t in response.data['data']],
            [str(second.transfer_group), str(first.transfer_group)],
        )

    def test_transfer_history_needs_read_role(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/inventory/transfers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_movement_history_newest_first(self):
        services.adjust_stock(self.inventory.id, 'IN', 1, 'First')
        services.adjust_stock(self.inventory.id, 'IN', 2, 'Second')
        self.client.authenticate_user(TestDataFactory.create_user())

        response = self.client.get(f'/api/v1/inventory/{self.inventory.id}/movements/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['reason'] for m in response.data['data']], ['Second', 'First'])

    def test_levels_endpoint(self):
        self.client.authenticate_user(self.manager)
        response = self.client.patch(
            f'/api/v1/inventory/{self.inventory.id}/levels/', {'min_stock_level': '5', 'max_stock_level': '2'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(
            f'/api/v1/inventory/{self.inventory.id}/levels/', {'reorder_point': '20'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['data']['reorder_point']), Decimal('20'))
