"""
Catalog resolver: maps legacy identifiers (site code, category name,
product barcode) to catalog rows, creating them on first sight.

Every function here runs inside the caller's transaction; database errors
propagate so the sync can record the failing row and move on.
"""
import logging
import re
from collections import namedtuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from backoffice.locations.models import Site
from .models import Category, Product

logger = logging.getLogger('backoffice.catalog')

SLUG_SEPARATOR_RE = re.compile(r'[^a-z0-9]+')
PRODUCT_SLUG_MAX_LENGTH = 100
WAREHOUSE_SITE_CODE = '001'
DEFAULT_CATEGORY_SLUG = 'uncategorized'

SiteResolution = namedtuple('SiteResolution', ['id', 'existed', 'is_markdown', 'should_enable_on_sale'])
CategoryResolution = namedtuple('CategoryResolution', ['id', 'existed'])
ProductResolution = namedtuple('ProductResolution', ['id', 'created'])


def slugify_name(value):
    """Lowercase and collapse every run of non [a-z0-9] characters to one hyphen"""
    return SLUG_SEPARATOR_RE.sub('-', (value or '').lower()).strip('-')


def classify_site(code, name):
    """Return (site_type, is_markdown) for a site seen for the first time"""
    upper_name = (name or '').upper()
    is_markdown = 'MARKDOWN' in upper_name
    if code == WAREHOUSE_SITE_CODE or 'WAREHOUSE' in upper_name:
        return Site.WAREHOUSE, is_markdown
    return Site.STORE, is_markdown


def ensure_site(code, name):
    """Find a site by code or create it, classified from its code and name"""
    site_type, is_markdown = classify_site(code, name)
    site, created = Site.objects.get_or_create(
        code=code,
        defaults={
            'name': name or code,
            'site_type': site_type,
            'is_markdown': is_markdown,
            'enables_on_sale': code in settings.SYNC_ON_SALE_SITE_CODES,
            'is_active': True,
        }
    )
    if created:
        logger.info(f"Created site {site.code} ({site.name}) as {site.site_type}")
    return SiteResolution(
        id=site.id,
        existed=not created,
        is_markdown=site.is_markdown,
        should_enable_on_sale=site.enables_on_sale,
    )


def ensure_category(name):
    """Find a category by the slug of its name or create it"""
    slug = slugify_name(name) or DEFAULT_CATEGORY_SLUG
    display_name = (name or '').strip() or 'Uncategorized'
    category, created = Category.objects.get_or_create(
        slug=slug,
        defaults={
            'name': display_name,
            'item_count': 0,
            'is_active': True,
        }
    )
    if created:
        logger.info(f"Created category '{category.name}' ({slug})")
    elif category.name.strip().lower() != display_name.lower():
        # Different legacy names normalizing to one slug share the category
        logger.warning(
            f"Category name '{display_name}' resolves to existing category "
            f"'{category.name}' through slug '{slug}'"
        )
    return CategoryResolution(id=category.id, existed=not created)


def build_product_slug(barcode, name):
    name_slug = slugify_name(name)
    slug = f"{barcode}-{name_slug}" if name_slug else barcode
    return slug[:PRODUCT_SLUG_MAX_LENGTH]


def _apply_legacy_fields(product, item, category_id, should_enable_on_sale, synced_at):
    product.name = item.name
    product.retail_price = item.retail_price
    product.wholesale_price = item.wholesale_price
    product.po_price = item.po_price
    product.base_uom = item.base_unit_code
    product.category_id = category_id
    product.legacy_product_code = item.product_code
    # Sync may switch a product on sale but never switches it off
    if should_enable_on_sale:
        product.is_on_sale = True
    product.last_synced_at = synced_at


def upsert_product(item, category_id, should_enable_on_sale):
    """Update the product with the item's barcode, or create it"""
    if not item.barcode:
        raise ValueError('Item has no barcode')

    synced_at = timezone.now()
    product = Product.objects.filter(barcode=item.barcode).first()

    if product is None:
        product = Product(
            barcode=item.barcode,
            sku=item.product_code or item.barcode,
            slug=build_product_slug(item.barcode, item.name),
            is_active=True,
            is_published=True,
            is_on_sale=should_enable_on_sale,
        )
        _apply_legacy_fields(product, item, category_id, should_enable_on_sale, synced_at)
        try:
            with transaction.atomic():
                product.save()
            return ProductResolution(id=product.id, created=True)
        except IntegrityError:
            # Another writer inserted the same barcode first; update theirs
            product = Product.objects.filter(barcode=item.barcode).first()
            if product is None:
                raise
            logger.info(f"Product {item.barcode} was created concurrently, updating instead")

    _apply_legacy_fields(product, item, category_id, should_enable_on_sale, synced_at)
    product.save(update_fields=[
        'name', 'retail_price', 'wholesale_price', 'po_price', 'base_uom',
        'category', 'legacy_product_code', 'is_on_sale', 'last_synced_at', 'updated_at',
    ])
    return ProductResolution(id=product.id, created=False)


def recount_category_items():
    """Full recount of active + published products for every active category"""
    categories = Category.objects.filter(is_active=True).annotate(
        live_products=Count(
            'products',
            filter=Q(products__is_active=True, products__is_published=True),
        )
    )
    updated = 0
    for category in categories:
        if category.item_count != category.live_products:
            Category.objects.filter(pk=category.pk).update(item_count=category.live_products)
            updated += 1
    logger.info(f"Recounted category items, {updated} categories changed")
    return updated
