"""
Test suite for the catalog resolver and catalog read endpoints
"""
from decimal import Decimal
from types import SimpleNamespace

from django.test import TestCase, override_settings
from rest_framework import status

from backoffice.catalog import resolver
from backoffice.catalog.models import Category, Product
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.locations.models import Site


def legacy_item(barcode='4800001', name='Blue Mug', product_code='P-1', **kwargs):
    values = {
        'barcode': barcode,
        'product_code': product_code,
        'name': name,
        'retail_price': Decimal('120.00'),
        'wholesale_price': Decimal('100.00'),
        'po_price': Decimal('90.00'),
        'base_unit_code': 'PC',
    }
    values.update(kwargs)
    return SimpleNamespace(**values)


class SlugTests(TestCase):
    """Test name normalization"""

    def test_slugify_name(self):
        self.assertEqual(resolver.slugify_name('Health & Beauty'), 'health-beauty')
        self.assertEqual(resolver.slugify_name('  health---beauty  '), 'health-beauty')
        self.assertEqual(resolver.slugify_name('!!!'), '')
        self.assertEqual(resolver.slugify_name(None), '')

    def test_product_slug_is_truncated(self):
        slug = resolver.build_product_slug('4800001', 'x' * 200)
        self.assertEqual(len(slug), 100)
        self.assertTrue(slug.startswith('4800001-xxx'))


class EnsureSiteTests(TestCase):
    """Test site resolution"""

    def test_new_site_is_classified(self):
        warehouse = resolver.ensure_site('001', 'Main Warehouse')
        markdown = resolver.ensure_site('026', 'Markdown Outlet Pasig')
        store = resolver.ensure_site('002', 'Store 2')

        self.assertFalse(warehouse.existed)
        self.assertEqual(Site.objects.get(code='001').site_type, Site.WAREHOUSE)
        self.assertTrue(markdown.is_markdown)
        self.assertTrue(markdown.should_enable_on_sale)
        self.assertEqual(Site.objects.get(code='002').site_type, Site.STORE)
        self.assertFalse(store.should_enable_on_sale)
        self.assertTrue(Site.objects.get(code='002').is_active)

    def test_existing_site_is_reused(self):
        site = TestDataFactory.create_site(code='010', name='Store 10', enables_on_sale=True)
        resolution = resolver.ensure_site('010', 'Renamed Store')

        self.assertTrue(resolution.existed)
        self.assertEqual(resolution.id, site.id)
        self.assertTrue(resolution.should_enable_on_sale)
        self.assertEqual(Site.objects.get(code='010').name, 'Store 10')

    @override_settings(SYNC_ON_SALE_SITE_CODES=['030'])
    def test_on_sale_sites_come_from_settings(self):
        self.assertFalse(resolver.ensure_site('026', 'Store 26').should_enable_on_sale)
        self.assertTrue(resolver.ensure_site('030', 'Store 30').should_enable_on_sale)


class EnsureCategoryTests(TestCase):
    """Test category resolution"""

    def test_equivalent_names_resolve_to_one_category(self):
        first = resolver.ensure_category('Health & Beauty')
        second = resolver.ensure_category('  health---beauty  ')

        self.assertFalse(first.existed)
        self.assertTrue(second.existed)
        self.assertEqual(first.id, second.id)
        category = Category.objects.get()
        self.assertEqual(category.slug, 'health-beauty')
        self.assertEqual(category.name, 'Health & Beauty')
        self.assertEqual(category.item_count, 0)

    def test_empty_name_falls_back_to_uncategorized(self):
        resolution = resolver.ensure_category('***')
        self.assertEqual(Category.objects.get(pk=resolution.id).slug, 'uncategorized')


class UpsertProductTests(TestCase):
    """Test product upserts keyed by barcode"""

    def setUp(self):
        self.category = TestDataFactory.create_category(name='Kitchen')

    def test_create(self):
        resolution = resolver.upsert_product(legacy_item(), self.category.id, should_enable_on_sale=False)

        self.assertTrue(resolution.created)
        product = Product.objects.get(pk=resolution.id)
        self.assertEqual(product.slug, '4800001-blue-mug')
        self.assertEqual(product.sku, 'P-1')
        self.assertTrue(product.is_active)
        self.assertTrue(product.is_published)
        self.assertFalse(product.is_on_sale)
        self.assertIsNotNone(product.last_synced_at)

    def test_sku_falls_back_to_barcode(self):
        resolution = resolver.upsert_product(legacy_item(product_code=''), self.category.id, False)
        self.assertEqual(Product.objects.get(pk=resolution.id).sku, '4800001')

    def test_update_replaces_legacy_fields(self):
        resolver.upsert_product(legacy_item(), self.category.id, False)
        other = TestDataFactory.create_category(name='Dining')
        resolution = resolver.upsert_product(
            legacy_item(name='Blue Mug Large', retail_price=Decimal('150.00'), base_unit_code='BOX'),
            other.id,
            False,
        )

        self.assertFalse(resolution.created)
        product = Product.objects.get(pk=resolution.id)
        self.assertEqual(product.name, 'Blue Mug Large')
        self.assertEqual(product.retail_price, Decimal('150.00'))
        self.assertEqual(product.base_uom, 'BOX')
        self.assertEqual(product.category, other)
        # Slug is fixed at creation
        self.assertEqual(product.slug, '4800001-blue-mug')

    def test_on_sale_is_only_ever_enabled(self):
        resolver.upsert_product(legacy_item(), self.category.id, True)
        resolver.upsert_product(legacy_item(), self.category.id, False)
        self.assertTrue(Product.objects.get(barcode='4800001').is_on_sale)

    def test_missing_barcode_is_rejected(self):
        with self.assertRaises(ValueError):
            resolver.upsert_product(legacy_item(barcode=''), self.category.id, False)


class RecountCategoryItemsTests(TestCase):
    """Test category item recount"""

    def test_counts_active_published_products(self):
        category = TestDataFactory.create_category(name='Garden')
        TestDataFactory.create_product(category=category)
        TestDataFactory.create_product(category=category)
        TestDataFactory.create_product(category=category, is_published=False)
        TestDataFactory.create_product(category=category, is_active=False)
        empty = TestDataFactory.create_category(name='Empty', item_count=5)

        changed = resolver.recount_category_items()

        self.assertEqual(changed, 2)
        category.refresh_from_db()
        empty.refresh_from_db()
        self.assertEqual(category.item_count, 2)
        self.assertEqual(empty.item_count, 0)


class CatalogAPITests(TestCase):
    """Test catalog read endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())
        self.category = TestDataFactory.create_category(name='Kitchen')
        self.product = TestDataFactory.create_product(barcode='4800001', name='Blue Mug', category=self.category)

    def test_product_by_barcode(self):
        response = self.client.get('/api/v1/products/barcode/4800001/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Blue Mug')
        self.assertEqual(response.data['category_name'], 'Kitchen')

        response = self.client.get('/api/v1/products/barcode/0000000/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_product_search(self):
        TestDataFactory.create_product(name='Red Plate', category=self.category)
        response = self.client.get('/api/v1/products/', {'search': 'mug'})
        self.assertEqual([p['barcode'] for p in response.data], ['4800001'])

    def test_category_list(self):
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['slug'] for c in response.data], ['kitchen'])
