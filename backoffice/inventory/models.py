from django.conf import settings
from django.db import models
from decimal import Decimal
from backoffice.catalog.models import Product
from backoffice.locations.models import Site


class Inventory(models.Model):
    """Stock ledger row per product/site"""
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='inventories')
    site = models.ForeignKey(Site, on_delete=models.PROTECT, related_name='inventories')
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    reserved_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    # quantity - reserved_quantity, maintained by backoffice.inventory.services
    available_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    min_stock_level = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    max_stock_level = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    reorder_point = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    # Bumped on every ledger write; writes are conditional on the value read
    version = models.PositiveIntegerField(default=0)
    last_synced_at = models.DateTimeField(null=True, blank=True)
    last_updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='inventory_updates')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.name} @ {self.site.code}: {self.quantity}"

    @property
    def is_low_stock(self):
        return self.min_stock_level is not None and self.available_quantity <= self.min_stock_level

    class Meta:
        db_table = 'inventory'
        verbose_name_plural = 'inventory'
        unique_together = [['product', 'site']]
        indexes = [
            models.Index(fields=['site'], name='idx_inventory_site'),
        ]


class InventoryMovement(models.Model):
    """Append-only record of one quantity change to an inventory row"""
    STOCK_IN = 'STOCK_IN'
    STOCK_OUT = 'STOCK_OUT'
    ADJUSTMENT = 'ADJUSTMENT'
    TRANSFER_IN = 'TRANSFER_IN'
    TRANSFER_OUT = 'TRANSFER_OUT'
    SYNC = 'SYNC'
    MOVEMENT_TYPE_CHOICES = [
        (STOCK_IN, 'Stock In'),
        (STOCK_OUT, 'Stock Out'),
        (ADJUSTMENT, 'Adjustment'),
        (TRANSFER_IN, 'Transfer In'),
        (TRANSFER_OUT, 'Transfer Out'),
        (SYNC, 'Legacy Sync'),
    ]

    inventory = models.ForeignKey(Inventory, on_delete=models.PROTECT, related_name='movements')
    movement_type = models.CharField(max_length=20, choices=MOVEMENT_TYPE_CHOICES)
    quantity_before = models.DecimalField(max_digits=12, decimal_places=3)
    quantity_change = models.DecimalField(max_digits=12, decimal_places=3)
    quantity_after = models.DecimalField(max_digits=12, decimal_places=3)
    reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    # Shared by the TRANSFER_OUT and TRANSFER_IN legs of one transfer
    transfer_group = models.UUIDField(null=True, blank=True, db_index=True)
    from_site = models.ForeignKey(Site, on_delete=models.PROTECT, null=True, blank=True, related_name='outgoing_movements')
    to_site = models.ForeignKey(Site, on_delete=models.PROTECT, null=True, blank=True, related_name='incoming_movements')
    performed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='inventory_movements')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.movement_type} {self.quantity_change:+} on inventory {self.inventory_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('Inventory movements are append-only and cannot be modified')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError('Inventory movements are append-only and cannot be deleted')

    class Meta:
        db_table = 'inventory_movements'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['inventory', 'created_at'], name='idx_movement_inventory'),
            models.Index(fields=['movement_type'], name='idx_movement_type'),
        ]
