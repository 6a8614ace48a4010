"""
Stock operation engine: the only code allowed to change inventory quantities.

Every quantity change writes exactly one InventoryMovement for the row it
touches, inside the same transaction as the ledger update. Ledger writes are
conditional on the row version read at the start of the operation; a lost
race raises ConcurrentUpdateError and the whole operation is retried.
"""
import functools
import logging
import uuid
from collections import namedtuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings
from django.db import OperationalError, transaction
from django.db.models import F
from django.utils import timezone

from backoffice.locations.models import Site
from .exceptions import (
    ValidationError, InsufficientStockError, NotFoundError, ConcurrentUpdateError,
)
from .models import Inventory, InventoryMovement

logger = logging.getLogger('backoffice.inventory')

ZERO = Decimal('0.000')
QUANTITY_STEP = Decimal('0.001')
# PostgreSQL deadlock_detected and serialization_failure
RETRYABLE_SQLSTATES = ('40P01', '40001')
ADJUST_IN = 'IN'
ADJUST_OUT = 'OUT'
ADJUSTMENT_TYPES = (ADJUST_IN, ADJUST_OUT)
LEVEL_FIELDS = ('min_stock_level', 'max_stock_level', 'reorder_point')
SYNC_REASON = 'Legacy sync'

TransferResult = namedtuple('TransferResult', ['transfer_group', 'outgoing', 'incoming'])


def to_quantity(value, field='Quantity'):
    """Coerce user input to a finite Decimal rounded to the ledger's 3 places"""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        quantity = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if not quantity.is_finite():
            raise ValidationError(f"{field} must be a number")
        return quantity.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")


def is_lock_conflict(exc):
    """True for database errors raised when two transactions lock rows against each other"""
    cause = exc.__cause__
    code = getattr(cause, 'pgcode', None) or getattr(cause, 'sqlstate', None)
    if code in RETRYABLE_SQLSTATES:
        return True
    return 'deadlock' in str(exc).lower()


def retry_on_conflict(operation):
    """Re-run a ledger operation that lost an optimistic version check or a lock race"""
    @functools.wraps(operation)
    def wrapper(*args, **kwargs):
        attempts = max(1, getattr(settings, 'INVENTORY_WRITE_RETRIES', 3))
        for attempt in range(1, attempts + 1):
            try:
                return operation(*args, **kwargs)
            except ConcurrentUpdateError:
                if attempt == attempts:
                    logger.error(f"{operation.__name__} gave up after {attempts} conflicting attempts")
                    raise
                logger.warning(f"{operation.__name__} hit a concurrent update, retrying ({attempt}/{attempts})")
            except OperationalError as e:
                if not is_lock_conflict(e):
                    raise
                if attempt == attempts:
                    logger.error(f"{operation.__name__} gave up after {attempts} lock conflicts: {str(e)}")
                    raise ConcurrentUpdateError(f"{operation.__name__} kept deadlocking") from e
                logger.warning(f"{operation.__name__} hit a lock conflict, retrying ({attempt}/{attempts})")
    return wrapper


def _actor(user):
    return user if user is not None and user.is_authenticated else None


def _write_inventory(inventory, user=None, **values):
    """Apply values to the row only if nobody wrote it since it was read"""
    values['version'] = F('version') + 1
    values['updated_at'] = timezone.now()
    actor = _actor(user)
    if actor is not None:
        values['last_updated_by'] = actor
    updated = Inventory.objects.filter(pk=inventory.pk, version=inventory.version).update(**values)
    if updated != 1:
        raise ConcurrentUpdateError(f"Inventory {inventory.pk} was modified by another operation")
    inventory.refresh_from_db()
    return inventory


def _record_movement(inventory, movement_type, quantity_before, quantity_after, user=None, **extra):
    return InventoryMovement.objects.create(
        inventory=inventory,
        movement_type=movement_type,
        quantity_before=quantity_before,
        quantity_change=quantity_after - quantity_before,
        quantity_after=quantity_after,
        performed_by=_actor(user),
        **extra
    )


def lock_inventory_rows(pks):
    """
    Lock the given rows for the rest of the transaction, lowest pk first, and
    return them keyed by pk. Every multi-row writer locks in this order so two
    transfers in opposite directions queue instead of deadlocking.
    """
    rows = Inventory.objects.select_for_update().filter(pk__in=pks).order_by('pk')
    return {row.pk: row for row in rows}


def _transfer_note(prefix, site, notes):
    note = f"{prefix}: {site.code}"
    if notes:
        note = f"{note} - {notes}"
    return note


@retry_on_conflict
def adjust_stock(inventory_id, adjustment_type, quantity, reason, reference=None, user=None):
    """
    Manual stock in/out on one inventory row.

    Raises ValidationError, NotFoundError or InsufficientStockError; on
    success returns the ADJUSTMENT movement.
    """
    adjustment_type = (adjustment_type or '').strip().upper()
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError('Adjustment type must be IN or OUT')
    quantity = to_quantity(quantity)
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0')
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError('Reason is required')

    with transaction.atomic():
        inventory = Inventory.objects.select_related('product', 'site').filter(pk=inventory_id).first()
        if inventory is None:
            raise NotFoundError('Inventory not found')

        if adjustment_type == ADJUST_OUT and quantity > inventory.available_quantity:
            raise InsufficientStockError(quantity, inventory.available_quantity)

        quantity_before = inventory.quantity
        quantity_after = quantity_before + (quantity if adjustment_type == ADJUST_IN else -quantity)
        _write_inventory(
            inventory,
            user,
            quantity=quantity_after,
            available_quantity=quantity_after - inventory.reserved_quantity,
        )
        movement = _record_movement(
            inventory,
            InventoryMovement.ADJUSTMENT,
            quantity_before,
            quantity_after,
            user,
            reason=reason,
            notes=f"Ref: {reference}" if reference else '',
        )

    logger.info(
        f"Adjusted inventory {inventory.pk} ({inventory.product.barcode} @ {inventory.site.code}) "
        f"{adjustment_type} {quantity}: {quantity_before} -> {quantity_after}"
    )
    return movement


@retry_on_conflict
def transfer_stock(product_id, from_site_id, to_site_id, quantity, notes=None, user=None):
    """
    Move stock of one product between two sites as a single transaction.

    The destination row is created when missing. Both movements share a
    transfer group id; their notes name the other site.
    """
    if str(from_site_id) == str(to_site_id):
        raise ValidationError('Source and destination sites must be different')
    quantity = to_quantity(quantity)
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0')

    with transaction.atomic():
        from_site = Site.objects.filter(pk=from_site_id).first()
        if from_site is None:
            raise NotFoundError('Source site not found')
        to_site = Site.objects.filter(pk=to_site_id).first()
        if to_site is None:
            raise NotFoundError('Destination site not found')

        source_id = Inventory.objects.filter(product_id=product_id, site=from_site).values_list('pk', flat=True).first()
        if source_id is None:
            raise NotFoundError('Source inventory not found')

        destination, _ = Inventory.objects.get_or_create(
            product_id=product_id,
            site=to_site,
            defaults={
                'quantity': ZERO,
                'reserved_quantity': ZERO,
                'available_quantity': ZERO,
            }
        )

        locked = lock_inventory_rows([source_id, destination.pk])
        source = locked[source_id]
        destination = locked[destination.pk]
        if source.available_quantity < quantity:
            raise InsufficientStockError(
                quantity,
                source.available_quantity,
                f"Insufficient stock at source site: requested {quantity}, available {source.available_quantity}",
            )

        transfer_group = uuid.uuid4()

        source_before = source.quantity
        source_after = source_before - quantity
        _write_inventory(
            source,
            user,
            quantity=source_after,
            available_quantity=source_after - source.reserved_quantity,
        )
        outgoing = _record_movement(
            source,
            InventoryMovement.TRANSFER_OUT,
            source_before,
            source_after,
            user,
            to_site=to_site,
            transfer_group=transfer_group,
            notes=_transfer_note('Transfer to', to_site, notes),
        )

        destination_before = destination.quantity
        destination_after = destination_before + quantity
        _write_inventory(
            destination,
            user,
            quantity=destination_after,
            available_quantity=destination_after - destination.reserved_quantity,
        )
        incoming = _record_movement(
            destination,
            InventoryMovement.TRANSFER_IN,
            destination_before,
            destination_after,
            user,
            from_site=from_site,
            transfer_group=transfer_group,
            notes=_transfer_note('Transfer from', from_site, notes),
        )

    logger.info(
        f"Transferred {quantity} of product {product_id} from {from_site.code} to {to_site.code} "
        f"(group {transfer_group})"
    )
    return TransferResult(transfer_group=transfer_group, outgoing=outgoing, incoming=incoming)


@retry_on_conflict
def sync_inventory(product_id, site_id, quantity, user=None):
    """
    Set a row to the quantity reported by the legacy system.

    Idempotent: the incoming quantity replaces on-hand and available
    quantity, reserved quantity is left alone. A SYNC movement is written
    when the row is created or its quantity changes.
    """
    quantity = to_quantity(quantity)
    if quantity < 0:
        raise ValidationError('Synced quantity cannot be negative')

    with transaction.atomic():
        inventory, created = Inventory.objects.select_related('site').get_or_create(
            product_id=product_id,
            site_id=site_id,
            defaults={
                'quantity': ZERO,
                'reserved_quantity': ZERO,
                'available_quantity': ZERO,
            }
        )
        quantity_before = inventory.quantity
        _write_inventory(
            inventory,
            user,
            quantity=quantity,
            available_quantity=quantity,
            last_synced_at=timezone.now(),
        )
        if created or quantity_before != quantity:
            _record_movement(
                inventory,
                InventoryMovement.SYNC,
                quantity_before,
                quantity,
                user,
                reason=SYNC_REASON,
                notes=f"Synced from legacy site {inventory.site.code}",
            )

    return inventory, created


def update_inventory_levels(inventory_id, user=None, **levels):
    """
    Update min/max/reorder thresholds. Only the given fields change;
    None clears a threshold.
    """
    unknown = set(levels) - set(LEVEL_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown stock level fields: {', '.join(sorted(unknown))}")

    cleaned = {}
    for field, value in levels.items():
        if value is None:
            cleaned[field] = None
            continue
        level = to_quantity(value, field.replace('_', ' ').capitalize())
        if level < 0:
            raise ValidationError(f"{field.replace('_', ' ').capitalize()} cannot be negative")
        cleaned[field] = level

    with transaction.atomic():
        inventory = Inventory.objects.filter(pk=inventory_id).first()
        if inventory is None:
            raise NotFoundError('Inventory not found')

        merged = {field: cleaned.get(field, getattr(inventory, field)) for field in LEVEL_FIELDS}
        if (merged['min_stock_level'] is not None and merged['max_stock_level'] is not None
                and merged['min_stock_level'] > merged['max_stock_level']):
            raise ValidationError('Min stock level cannot exceed max stock level')

        if cleaned:
            values = dict(cleaned, updated_at=timezone.now())
            actor = _actor(user)
            if actor is not None:
                values['last_updated_by'] = actor
            Inventory.objects.filter(pk=inventory.pk).update(**values)
            inventory.refresh_from_db()

    return inventory


def replay_movements(inventory):
    """
    Fold the row's movements in creation order and report every place the
    chain or the final quantity disagrees with the ledger.
    """
    problems = []
    previous = None
    for movement in inventory.movements.order_by('created_at', 'id'):
        if movement.quantity_before + movement.quantity_change != movement.quantity_after:
            problems.append(
                f"Movement {movement.pk}: {movement.quantity_before} + {movement.quantity_change} "
                f"!= {movement.quantity_after}"
            )
        if previous is not None and movement.quantity_before != previous.quantity_after:
            problems.append(
                f"Movement {movement.pk} starts at {movement.quantity_before} "
                f"but movement {previous.pk} ended at {previous.quantity_after}"
            )
        previous = movement

    final_quantity = previous.quantity_after if previous is not None else ZERO
    if final_quantity != inventory.quantity:
        problems.append(f"Movements end at {final_quantity} but ledger quantity is {inventory.quantity}")
    return problems


def availability_matches(inventory):
    return inventory.available_quantity == inventory.quantity - inventory.reserved_quantity
