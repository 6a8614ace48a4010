"""
Legacy inventory sync.

LegacySyncOrchestrator.run() is a generator of progress frames (plain
dicts) so the same run can feed a server-sent event stream or a management
command. Rows are processed one at a time, each in its own transaction; a
failing row is recorded and the run moves on.
"""
import logging
from dataclasses import dataclass, asdict

from django.db import transaction

from backoffice.catalog import resolver
from backoffice.core.utils import create_audit_log
from backoffice.inventory.services import sync_inventory
from .exceptions import ExternalSourceError, RowProcessingError
from .legacy import LegacyInventorySource

logger = logging.getLogger('backoffice.sync')

PROGRESS = 'progress'
COMPLETE = 'complete'
ERROR = 'error'

NAME_PREVIEW_LENGTH = 50


@dataclass
class SyncStats:
    total_fetched: int = 0
    products_created: int = 0
    products_updated: int = 0
    inventories_created: int = 0
    inventories_updated: int = 0
    categories_created: int = 0
    sites_created: int = 0
    errors: int = 0

    def add(self, other):
        for field, value in asdict(other).items():
            setattr(self, field, getattr(self, field) + value)

    def as_dict(self):
        return {
            'totalFetched': self.total_fetched,
            'productsCreated': self.products_created,
            'productsUpdated': self.products_updated,
            'inventoriesCreated': self.inventories_created,
            'inventoriesUpdated': self.inventories_updated,
            'categoriesCreated': self.categories_created,
            'sitesCreated': self.sites_created,
            'errors': self.errors,
        }


def frame(frame_type, current, total, message, stats=None, errors=None):
    payload = {'type': frame_type, 'current': current, 'total': total, 'message': message}
    if stats is not None:
        payload['stats'] = stats.as_dict()
    if errors is not None:
        payload['errors'] = list(errors)
    return payload


class LegacySyncOrchestrator:
    """Pulls one legacy site's on-hand snapshot into the catalog and ledger"""

    def __init__(self, site_code, source=None, cancel_event=None, user=None):
        self.site_code = site_code
        self.source = source or LegacyInventorySource()
        self.cancel_event = cancel_event
        self.user = user
        self.stats = SyncStats()
        self.errors = []

    def _cancelled(self):
        return self.cancel_event is not None and self.cancel_event.is_set()

    def sync_item(self, item):
        """Resolve and write one legacy row; returns the counters it produced"""
        counts = SyncStats()
        with transaction.atomic():
            site = resolver.ensure_site(item.site_code or self.site_code, item.site_name)
            if not site.existed:
                counts.sites_created += 1

            category = resolver.ensure_category(item.category_name)
            if not category.existed:
                counts.categories_created += 1

            product = resolver.upsert_product(item, category.id, site.should_enable_on_sale)
            if product.created:
                counts.products_created += 1
            else:
                counts.products_updated += 1

            _, inventory_created = sync_inventory(product.id, site.id, item.on_hand_quantity, user=self.user)
            if inventory_created:
                counts.inventories_created += 1
            else:
                counts.inventories_updated += 1
        return counts

    def run(self):
        yield frame(PROGRESS, 0, 0, 'Fetching data from legacy system...')

        try:
            items = self.source.fetch_site_inventory(self.site_code)
        except ExternalSourceError as e:
            logger.error(f"Sync of site {self.site_code} aborted: {e.message}")
            yield frame(ERROR, 0, 0, e.message, errors=[e.message])
            return

        total = len(items)
        self.stats.total_fetched = total
        logger.info(f"Syncing {total} legacy items for site {self.site_code}")
        yield frame(PROGRESS, 0, total, f"Found {total} items to sync", self.stats)

        for index, item in enumerate(items):
            if self._cancelled():
                message = f"Sync cancelled after {index} of {total} items"
                logger.warning(f"{message} (site {self.site_code})")
                yield frame(ERROR, index, total, message, self.stats, self.errors)
                return

            try:
                self.stats.add(self.sync_item(item))
            except Exception as e:
                error = RowProcessingError(item.barcode, e)
                self.stats.errors += 1
                self.errors.append(error.message)
                logger.warning(error.message)

            yield frame(
                PROGRESS, index + 1, total,
                f"Syncing: {item.name[:NAME_PREVIEW_LENGTH]}...",
                self.stats,
            )

        yield frame(PROGRESS, total, total, 'Updating category counts...', self.stats)
        resolver.recount_category_items()

        logger.info(f"Sync of site {self.site_code} finished: {self.stats.as_dict()}")
        create_audit_log(
            user=self.user,
            action='inventory_sync',
            model_name='Site',
            object_id=self.site_code,
            object_name=self.site_code,
            object_reference=self.site_code,
            changes=dict(self.stats.as_dict(), errorMessages=self.errors[:50]),
        )
        yield frame(COMPLETE, total, total, 'Sync completed successfully!', self.stats, self.errors)
