"""
Read-only access to the legacy point-of-sale database.

The legacy system is SQL Server; tables are described with SQLAlchemy Core
so the same query runs against any engine (tests use SQLite with no schema).
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.conf import settings
from sqlalchemy import Column, MetaData, Numeric, String, DateTime, Table, create_engine, select
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import ExternalSourceError

logger = logging.getLogger('backoffice.sync')

DEFAULT_UOM = 'PC'
DEFAULT_CATEGORY = 'Uncategorized'


@dataclass
class LegacyInventoryItem:
    barcode: str
    product_code: str
    name: str
    retail_price: Decimal
    wholesale_price: Decimal
    po_price: Decimal
    on_hand_quantity: Decimal
    base_unit_code: str
    category_name: str
    category_id: str
    site_code: str
    site_name: str


def build_metadata(schema=None):
    """Describe the legacy tables the sync reads"""
    metadata = MetaData(schema=schema)
    Table(
        'Product', metadata,
        Column('productCode', String(50), primary_key=True),
        Column('Barcode', String(100)),
        Column('name', String(255)),
        Column('retailPrice', Numeric(18, 4)),
        Column('wholesalePrice', Numeric(18, 4)),
        Column('price4', Numeric(18, 4)),
        Column('baseUnitCode', String(20)),
        Column('departmentId', String(50)),
        Column('isConcession', String(1)),
        Column('status', String(1)),
    )
    Table(
        'InventoryQuantity', metadata,
        Column('productCode', String(50), primary_key=True),
        Column('siteCode', String(50), primary_key=True),
        Column('onHandQuantity', Numeric(18, 4)),
        Column('updateDate', DateTime),
    )
    Table(
        'Site', metadata,
        Column('siteCode', String(50), primary_key=True),
        Column('name', String(200)),
    )
    Table(
        'Category', metadata,
        Column('categoryId', String(50), primary_key=True),
        Column('name', String(200)),
    )
    return metadata


def _text(value, default=''):
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def _number(value):
    if value is None:
        return Decimal('0')
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal('0')
    return number if number.is_finite() else Decimal('0')


class LegacyInventorySource:
    """On-hand snapshot of one legacy site"""

    def __init__(self, url=None, schema=None, engine=None):
        self.url = url or settings.LEGACY_DATABASE_URL
        self.schema = (schema if schema is not None else settings.LEGACY_DATABASE_SCHEMA) or None
        self._engine = engine
        metadata = build_metadata(self.schema)
        self.products = metadata.tables[self._key('Product')]
        self.quantities = metadata.tables[self._key('InventoryQuantity')]
        self.sites = metadata.tables[self._key('Site')]
        self.categories = metadata.tables[self._key('Category')]

    def _key(self, name):
        return f"{self.schema}.{name}" if self.schema else name

    @property
    def engine(self):
        if self._engine is None:
            if not self.url:
                raise ExternalSourceError('Legacy database is not configured (LEGACY_DATABASE_URL)')
            connect_args = {}
            if self.url.startswith('mssql+pymssql'):
                connect_args['login_timeout'] = settings.LEGACY_DATABASE_TIMEOUT
            self._engine = create_engine(self.url, pool_pre_ping=True, connect_args=connect_args)
        return self._engine

    def build_query(self, site_code):
        p, iq, s, c = self.products, self.quantities, self.sites, self.categories
        return (
            select(
                p.c.productCode, p.c.Barcode, p.c.name.label('description'),
                p.c.retailPrice, p.c.wholesalePrice, p.c.price4,
                iq.c.onHandQuantity, p.c.baseUnitCode,
                c.c.categoryId, c.c.name.label('category_name'),
                s.c.siteCode, s.c.name.label('site_name'),
            )
            .select_from(
                p.outerjoin(iq, p.c.productCode == iq.c.productCode)
                .outerjoin(s, iq.c.siteCode == s.c.siteCode)
                .outerjoin(c, p.c.departmentId == c.c.categoryId)
            )
            .where(
                iq.c.siteCode == site_code,
                p.c.isConcession == '0',
                p.c.status == 'A',
                iq.c.onHandQuantity > 0,
                c.c.name.notlike('%Consignment%'),
            )
            .order_by(iq.c.updateDate.desc())
        )

    def fetch_site_inventory(self, site_code):
        """Return the site's positive on-hand rows, most recently updated first"""
        try:
            with self.engine.connect() as connection:
                rows = connection.execute(self.build_query(site_code)).mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"Legacy query failed for site {site_code}: {str(e)}")
            raise ExternalSourceError(f"Failed to fetch legacy inventory: {str(e)}") from e

        logger.info(f"Fetched {len(rows)} legacy rows for site {site_code}")
        return [self._to_item(row) for row in rows]

    @staticmethod
    def _to_item(row):
        return LegacyInventoryItem(
            barcode=_text(row['Barcode']),
            product_code=_text(row['productCode']),
            name=_text(row['description']),
            retail_price=_number(row['retailPrice']),
            wholesale_price=_number(row['wholesalePrice']),
            po_price=_number(row['price4']),
            on_hand_quantity=_number(row['onHandQuantity']),
            base_unit_code=_text(row['baseUnitCode'], DEFAULT_UOM),
            category_name=_text(row['category_name'], DEFAULT_CATEGORY),
            category_id=_text(row['categoryId']),
            site_code=_text(row['siteCode']),
            site_name=_text(row['site_name']),
        )
