from rest_framework import serializers
from .models import Inventory, InventoryMovement


class InventorySerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_barcode = serializers.CharField(source='product.barcode', read_only=True)
    base_uom = serializers.CharField(source='product.base_uom', read_only=True)
    site_code = serializers.CharField(source='site.code', read_only=True)
    site_name = serializers.CharField(source='site.name', read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Inventory
        fields = [
            'id', 'product', 'product_name', 'product_sku', 'product_barcode', 'base_uom',
            'site', 'site_code', 'site_name',
            'quantity', 'reserved_quantity', 'available_quantity',
            'min_stock_level', 'max_stock_level', 'reorder_point', 'is_low_stock',
            'version', 'last_synced_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class InventoryMovementSerializer(serializers.ModelSerializer):
    performed_by_username = serializers.CharField(source='performed_by.username', read_only=True, default=None)
    from_site_code = serializers.CharField(source='from_site.code', read_only=True, default=None)
    to_site_code = serializers.CharField(source='to_site.code', read_only=True, default=None)

    class Meta:
        model = InventoryMovement
        fields = [
            'id', 'inventory', 'movement_type', 'quantity_before', 'quantity_change', 'quantity_after',
            'reason', 'notes', 'transfer_group', 'from_site', 'from_site_code', 'to_site', 'to_site_code',
            'performed_by', 'performed_by_username', 'created_at',
        ]
        read_only_fields = fields


class StockAdjustmentRequestSerializer(serializers.Serializer):
    """Shape of an adjust request; business rules live in services.adjust_stock"""
    inventory_id = serializers.IntegerField()
    type = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    reason = serializers.CharField(allow_blank=True, required=False, default='')
    reference = serializers.CharField(allow_blank=True, required=False, allow_null=True)


class StockTransferRequestSerializer(serializers.Serializer):
    """Shape of a transfer request; business rules live in services.transfer_stock"""
    product_id = serializers.IntegerField()
    from_site_id = serializers.IntegerField()
    to_site_id = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    notes = serializers.CharField(allow_blank=True, required=False, allow_null=True)


class InventoryLevelsRequestSerializer(serializers.Serializer):
    min_stock_level = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, allow_null=True)
    max_stock_level = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, allow_null=True)
    reorder_point = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, allow_null=True)


class StockTransferHistorySerializer(serializers.Serializer):
    """One transfer, read from its outgoing leg. Pass incoming legs by transfer group in context['incoming']."""
    transfer_group = serializers.UUIDField(read_only=True)
    product = serializers.IntegerField(source='inventory.product_id', read_only=True)
    product_name = serializers.CharField(source='inventory.product.name', read_only=True)
    product_sku = serializers.CharField(source='inventory.product.sku', read_only=True)
    product_barcode = serializers.CharField(source='inventory.product.barcode', read_only=True)
    base_uom = serializers.CharField(source='inventory.product.base_uom', read_only=True)
    from_site_code = serializers.CharField(source='inventory.site.code', read_only=True)
    to_site_code = serializers.CharField(source='to_site.code', read_only=True, default=None)
    quantity = serializers.SerializerMethodField()
    notes = serializers.CharField(read_only=True)
    performed_by_username = serializers.CharField(source='performed_by.username', read_only=True, default=None)
    created_at = serializers.DateTimeField(read_only=True)
    movements = serializers.SerializerMethodField()

    def get_quantity(self, outgoing):
        return str(-outgoing.quantity_change)

    def get_movements(self, outgoing):
        legs = [outgoing]
        incoming = self.context.get('incoming', {}).get(outgoing.transfer_group)
        if incoming is not None:
            legs.append(incoming)
        return InventoryMovementSerializer(legs, many=True).data
