"""
Test suite for the legacy inventory sync
Tests: legacy query and row coercion, orchestrator frames and counters,
partial failures, cancellation and the streaming endpoint
"""
import json
import os
import tempfile
import threading
from datetime import datetime, timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings
from rest_framework import status
from sqlalchemy import create_engine

from backoffice.catalog.models import Category, Product
from backoffice.core.models import AuditLog
from backoffice.core.permissions import MANAGER, STAFF
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.inventory.models import Inventory, InventoryMovement
from backoffice.locations.models import Site
from backoffice.sync.exceptions import ExternalSourceError, RowProcessingError
from backoffice.sync.legacy import LegacyInventoryItem, LegacyInventorySource, build_metadata
from backoffice.sync.orchestrator import LegacySyncOrchestrator
from backoffice.sync.views import event_stream


def make_item(barcode, name='Widget', quantity='5', category='Home Goods', site_code='026', site_name='Markdown Outlet', **kwargs):
    values = {
        'barcode': barcode,
        'product_code': kwargs.pop('product_code', f'P-{barcode}'),
        'name': name,
        'retail_price': Decimal('99.50'),
        'wholesale_price': Decimal('80.00'),
        'po_price': Decimal('70.00'),
        'on_hand_quantity': Decimal(quantity),
        'base_unit_code': 'PC',
        'category_name': category,
        'category_id': 'C1',
        'site_code': site_code,
        'site_name': site_name,
    }
    values.update(kwargs)
    return LegacyInventoryItem(**values)


class StaticSource:
    """Legacy source stand-in returning fixed rows"""

    def __init__(self, items=None, error=None):
        self.items = items or []
        self.error = error

    def fetch_site_inventory(self, site_code):
        if self.error:
            raise self.error
        return list(self.items)


@override_settings(LEGACY_DATABASE_SCHEMA=None)
class LegacyInventorySourceTests(TestCase):
    """Test the SQLAlchemy query against a SQLite copy of the legacy tables"""

    def setUp(self):
        handle, self.db_path = tempfile.mkstemp(suffix='.sqlite3')
        os.close(handle)
        self.engine = create_engine(f'sqlite:///{self.db_path}')
        metadata = build_metadata()
        metadata.create_all(self.engine)
        now = datetime(2024, 5, 1, 12, 0)

        products = metadata.tables['Product']
        quantities = metadata.tables['InventoryQuantity']
        sites = metadata.tables['Site']
        categories = metadata.tables['Category']
        with self.engine.begin() as connection:
            connection.execute(sites.insert(), [
                {'siteCode': '026', 'name': 'Markdown Outlet'},
                {'siteCode': '002', 'name': 'Store 2'},
            ])
            connection.execute(categories.insert(), [
                {'categoryId': 'C1', 'name': 'Home Goods'},
                {'categoryId': 'C2', 'name': 'Consignment Books'},
            ])
            connection.execute(products.insert(), [
                {'productCode': 'P1', 'Barcode': '111', 'name': 'Older item', 'retailPrice': 10, 'wholesalePrice': 8,
                 'price4': 6, 'baseUnitCode': 'BOX', 'departmentId': 'C1', 'isConcession': '0', 'status': 'A'},
                {'productCode': 'P2', 'Barcode': '222', 'name': 'Newer item', 'retailPrice': 20, 'wholesalePrice': None,
                 'price4': None, 'baseUnitCode': None, 'departmentId': 'C1', 'isConcession': '0', 'status': 'A'},
                {'productCode': 'P3', 'Barcode': '333', 'name': 'Concession', 'retailPrice': 5, 'wholesalePrice': 5,
                 'price4': 5, 'baseUnitCode': 'PC', 'departmentId': 'C1', 'isConcession': '1', 'status': 'A'},
                {'productCode': 'P4', 'Barcode': '444', 'name': 'Inactive', 'retailPrice': 5, 'wholesalePrice': 5,
                 'price4': 5, 'baseUnitCode': 'PC', 'departmentId': 'C1', 'isConcession': '0', 'status': 'I'},
                {'productCode': 'P5', 'Barcode': '555', 'name': 'Consigned', 'retailPrice': 5, 'wholesalePrice': 5,
                 'price4': 5, 'baseUnitCode': 'PC', 'departmentId': 'C2', 'isConcession': '0', 'status': 'A'},
                {'productCode': 'P6', 'Barcode': '666', 'name': 'Sold out', 'retailPrice': 5, 'wholesalePrice': 5,
                 'price4': 5, 'baseUnitCode': 'PC', 'departmentId': 'C1', 'isConcession': '0', 'status': 'A'},
            ])
            connection.execute(quantities.insert(), [
                {'productCode': 'P1', 'siteCode': '026', 'onHandQuantity': 3, 'updateDate': now - timedelta(days=2)},
                {'productCode': 'P2', 'siteCode': '026', 'onHandQuantity': 7, 'updateDate': now},
                {'productCode': 'P1', 'siteCode': '002', 'onHandQuantity': 9, 'updateDate': now},
                {'productCode': 'P3', 'siteCode': '026', 'onHandQuantity': 1, 'updateDate': now},
                {'productCode': 'P4', 'siteCode': '026', 'onHandQuantity': 1, 'updateDate': now},
                {'productCode': 'P5', 'siteCode': '026', 'onHandQuantity': 1, 'updateDate': now},
                {'productCode': 'P6', 'siteCode': '026', 'onHandQuantity': 0, 'updateDate': now},
            ])

    def tearDown(self):
        self.engine.dispose()
        os.remove(self.db_path)

    def test_fetch_filters_and_orders_rows(self):
        source = LegacyInventorySource(engine=self.engine)
        items = source.fetch_site_inventory('026')

        self.assertEqual([item.barcode for item in items], ['222', '111'])
        newer, older = items
        self.assertEqual(newer.on_hand_quantity, Decimal('7'))
        self.assertEqual(newer.site_name, 'Markdown Outlet')
        self.assertEqual(newer.category_name, 'Home Goods')
        self.assertEqual(older.base_unit_code, 'BOX')
        self.assertEqual(older.po_price, Decimal('6'))

    def test_missing_values_get_defaults(self):
        newer = LegacyInventorySource(engine=self.engine).fetch_site_inventory('026')[0]
        self.assertEqual(newer.base_unit_code, 'PC')
        self.assertEqual(newer.wholesale_price, Decimal('0'))
        self.assertEqual(newer.po_price, Decimal('0'))

    def test_row_coercion(self):
        item = LegacyInventorySource._to_item({
            'Barcode': None, 'productCode': None, 'description': None,
            'retailPrice': 'n/a', 'wholesalePrice': None, 'price4': '12.5',
            'onHandQuantity': 'NaN', 'baseUnitCode': '  ', 'categoryId': None,
            'category_name': None, 'siteCode': '026', 'site_name': None,
        })
        self.assertEqual(item.barcode, '')
        self.assertEqual(item.name, '')
        self.assertEqual(item.retail_price, Decimal('0'))
        self.assertEqual(item.po_price, Decimal('12.5'))
        self.assertEqual(item.on_hand_quantity, Decimal('0'))
        self.assertEqual(item.base_unit_code, 'PC')
        self.assertEqual(item.category_name, 'Uncategorized')

    def test_database_errors_become_external_source_errors(self):
        source = LegacyInventorySource(schema='missing_schema', engine=self.engine)
        with self.assertRaises(ExternalSourceError):
            source.fetch_site_inventory('026')

    @override_settings(LEGACY_DATABASE_URL='')
    def test_unconfigured_source(self):
        with self.assertRaises(ExternalSourceError):
            LegacyInventorySource().fetch_site_inventory('026')


class LegacySyncOrchestratorTests(TestCase):
    """Test the sync run and its frames"""

    def run_sync(self, items, site_code='026', **kwargs):
        orchestrator = LegacySyncOrchestrator(site_code, source=StaticSource(items), **kwargs)
        return orchestrator, list(orchestrator.run())

    def test_successful_run_frames_and_stats(self):
        orchestrator, frames = self.run_sync([make_item('111', name='Blue Mug'), make_item('222', name='Red Plate')])

        self.assertEqual(frames[0]['message'], 'Fetching data from legacy system...')
        self.assertEqual(frames[1]['message'], 'Found 2 items to sync')
        self.assertEqual(frames[2]['message'], 'Syncing: Blue Mug...')
        self.assertEqual(frames[-2]['message'], 'Updating category counts...')
        final = frames[-1]
        self.assertEqual(final['type'], 'complete')
        self.assertEqual(final['message'], 'Sync completed successfully!')
        self.assertEqual(final['stats'], {
            'totalFetched': 2, 'productsCreated': 2, 'productsUpdated': 0,
            'inventoriesCreated': 2, 'inventoriesUpdated': 0,
            'categoriesCreated': 1, 'sitesCreated': 1, 'errors': 0,
        })
        self.assertEqual(final['errors'], [])
        currents = [f['current'] for f in frames]
        self.assertEqual(currents, sorted(currents))
        self.assertTrue(AuditLog.objects.filter(action='inventory_sync', object_id='026').exists())

    def test_catalog_and_ledger_rows(self):
        self.run_sync([make_item('111', name='Blue Mug', quantity='4')])

        site = Site.objects.get(code='026')
        self.assertTrue(site.enables_on_sale)
        product = Product.objects.get(barcode='111')
        self.assertEqual(product.slug, '111-blue-mug')
        self.assertEqual(product.sku, 'P-111')
        self.assertTrue(product.is_on_sale)
        self.assertEqual(product.category.item_count, 1)
        inventory = Inventory.objects.get(product=product, site=site)
        self.assertEqual(inventory.quantity, Decimal('4'))
        self.assertEqual(inventory.movements.get().movement_type, InventoryMovement.SYNC)

    def test_second_run_updates_in_place(self):
        self.run_sync([make_item('111', quantity='4')])
        _, frames = self.run_sync([make_item('111', quantity='9', retail_price=Decimal('120.00'))])

        stats = frames[-1]['stats']
        self.assertEqual(stats['productsUpdated'], 1)
        self.assertEqual(stats['inventoriesUpdated'], 1)
        self.assertEqual(stats['sitesCreated'], 0)
        self.assertEqual(Product.objects.count(), 1)
        self.assertEqual(Inventory.objects.count(), 1)
        self.assertEqual(Inventory.objects.get().quantity, Decimal('9'))
        self.assertEqual(Product.objects.get().retail_price, Decimal('120.00'))

    def test_equivalent_category_names_share_one_category(self):
        _, frames = self.run_sync([
            make_item('111', category='Health & Beauty'),
            make_item('222', category='  health---beauty  '),
        ])

        self.assertEqual(frames[-1]['stats']['categoriesCreated'], 1)
        category = Category.objects.get(slug='health-beauty')
        self.assertEqual(category.products.count(), 2)

    def test_failing_rows_are_recorded_and_skipped(self):
        items = [
            make_item('111'),
            make_item('', name='No barcode'),
            make_item('333', quantity='-2'),
            make_item('444'),
        ]
        _, frames = self.run_sync(items)

        final = frames[-1]
        self.assertEqual(final['type'], 'complete')
        self.assertEqual(final['stats']['totalFetched'], 4)
        self.assertEqual(final['stats']['errors'], 2)
        self.assertEqual(final['stats']['productsCreated'], 2)
        self.assertEqual(len(final['errors']), 2)
        self.assertTrue(final['errors'][0].startswith('Error syncing : '))
        self.assertTrue(final['errors'][1].startswith('Error syncing 333: '))
        self.assertTrue(Product.objects.filter(barcode='444').exists())
        # Failed row left nothing behind
        self.assertFalse(Product.objects.filter(barcode='333').exists())
        progress = [f for f in frames if f['type'] == 'progress' and f['current'] > 0 and f['message'].startswith('Syncing')]
        self.assertEqual([f['current'] for f in progress], [1, 2, 3, 4])

    def test_regular_site_does_not_enable_on_sale(self):
        product = TestDataFactory.create_product(barcode='111')
        self.run_sync([make_item('111', site_code='002', site_name='Store 2')], site_code='002')

        product.refresh_from_db()
        self.assertFalse(product.is_on_sale)
        self.assertEqual(Site.objects.get(code='002').site_type, Site.STORE)

    def test_on_sale_is_never_switched_off(self):
        self.run_sync([make_item('111')])
        self.run_sync([make_item('111', site_code='002', site_name='Store 2')], site_code='002')
        self.assertTrue(Product.objects.get(barcode='111').is_on_sale)

    def test_source_failure_emits_single_error_frame(self):
        orchestrator = LegacySyncOrchestrator('026', source=StaticSource(error=ExternalSourceError('Connection refused')))
        frames = list(orchestrator.run())

        self.assertEqual(len(frames), 2)
        self.assertEqual(frames[-1]['type'], 'error')
        self.assertEqual(frames[-1]['message'], 'Connection refused')
        self.assertFalse(Site.objects.exists())

    def test_cancellation_stops_between_rows(self):
        cancel_event = threading.Event()
        orchestrator = LegacySyncOrchestrator(
            '026', source=StaticSource([make_item('111'), make_item('222'), make_item('333')]),
            cancel_event=cancel_event,
        )
        frames = []
        for payload in orchestrator.run():
            frames.append(payload)
            if payload['current'] == 1:
                cancel_event.set()

        self.assertEqual(frames[-1]['type'], 'error')
        self.assertEqual(frames[-1]['message'], 'Sync cancelled after 1 of 3 items')
        self.assertEqual(Product.objects.count(), 1)

    def test_closing_the_generator_stops_the_run(self):
        orchestrator = LegacySyncOrchestrator('026', source=StaticSource([make_item('111'), make_item('222')]))
        run = orchestrator.run()
        for payload in run:
            if payload['current'] == 1:
                run.close()
        self.assertEqual(Product.objects.count(), 1)
        self.assertFalse(AuditLog.objects.filter(action='inventory_sync').exists())

    def test_row_processing_error_message(self):
        error = RowProcessingError('ABC123', ValueError('bad price'))
        self.assertEqual(error.message, 'Error syncing ABC123: bad price')


class SyncStreamAPITests(TestCase):
    """Test the streaming sync endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_site_code_is_required(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[MANAGER]))
        response = self.client.post('/api/v1/inventory/sync-stream/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Site code is required')

    def test_staff_cannot_sync(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[STAFF]))
        response = self.client.post('/api/v1/inventory/sync-stream/', {'site_code': '026'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @override_settings(LEGACY_DATABASE_URL='')
    def test_stream_reports_source_errors_as_frames(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[MANAGER]))
        response = self.client.post('/api/v1/inventory/sync-stream/', {'site_code': '026'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/event-stream')
        self.assertEqual(response['Cache-Control'], 'no-cache')
        self.assertEqual(response['X-Accel-Buffering'], 'no')

        body = b''.join(response.streaming_content).decode()
        events = [json.loads(chunk[len('data: '):]) for chunk in body.split('\n\n') if chunk]
        self.assertEqual(events[0]['message'], 'Fetching data from legacy system...')
        self.assertEqual(events[-1]['type'], 'error')
        self.assertIn('LEGACY_DATABASE_URL', events[-1]['message'])

    def test_late_failure_keeps_last_counters(self):
        orchestrator = LegacySyncOrchestrator(
            '026', source=StaticSource([make_item('111', name='Blue Mug'), make_item('222', name='Red Plate')])
        )
        with mock.patch('backoffice.sync.orchestrator.resolver.recount_category_items',
                        side_effect=RuntimeError('category table locked')):
            chunks = list(event_stream(orchestrator))

        events = [json.loads(chunk[len('data: '):]) for chunk in chunks]
        final = events[-1]
        self.assertEqual(final['type'], 'error')
        self.assertEqual(final['message'], 'category table locked')
        self.assertEqual((final['current'], final['total']), (2, 2))
        self.assertEqual(final['stats']['productsCreated'], 2)
        self.assertEqual(final['errors'], ['category table locked'])
        currents = [event['current'] for event in events]
        self.assertEqual(currents, sorted(currents))


class SyncLegacyInventoryCommandTests(TestCase):
    """Test the sync_legacy_inventory management command"""

    def test_command_prints_summary(self):
        source = StaticSource([make_item('111', name='Blue Mug')])
        out = StringIO()
        with mock.patch('backoffice.sync.management.commands.sync_legacy_inventory.LegacyInventorySource', return_value=source):
            call_command('sync_legacy_inventory', '026', stdout=out)

        output = out.getvalue()
        self.assertIn('[1/1] Syncing: Blue Mug...', output)
        self.assertIn('Sync completed successfully!', output)
        self.assertIn('productsCreated: 1', output)

    def test_command_fails_on_source_error(self):
        source = StaticSource(error=ExternalSourceError('Connection refused'))
        with mock.patch('backoffice.sync.management.commands.sync_legacy_inventory.LegacyInventorySource', return_value=source):
            with self.assertRaisesMessage(CommandError, 'Connection refused'):
                call_command('sync_legacy_inventory', '026', stdout=StringIO())
