from django.contrib import admin
from .models import Inventory, InventoryMovement


@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ['product', 'site', 'quantity', 'reserved_quantity', 'available_quantity', 'min_stock_level', 'last_synced_at', 'updated_at']
    list_filter = ['site', 'last_synced_at']
    search_fields = ['product__name', 'product__sku', 'product__barcode']
    ordering = ['site', 'product']
    # Quantities only change through the stock services
    readonly_fields = ['quantity', 'reserved_quantity', 'available_quantity', 'version', 'last_synced_at', 'last_updated_by', 'created_at', 'updated_at']


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ['inventory', 'movement_type', 'quantity_before', 'quantity_change', 'quantity_after', 'reason', 'performed_by', 'created_at']
    list_filter = ['movement_type', 'created_at']
    search_fields = ['inventory__product__name', 'inventory__product__barcode', 'reason', 'notes']
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
