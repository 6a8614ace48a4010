from rest_framework import serializers
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'item_count', 'is_active', 'created_at', 'updated_at']


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)

    class Meta:
        model = Product
        fields = [
            'id', 'barcode', 'sku', 'name', 'slug', 'category', 'category_name',
            'retail_price', 'wholesale_price', 'po_price', 'base_uom', 'legacy_product_code',
            'is_active', 'is_published', 'is_on_sale', 'last_synced_at', 'created_at', 'updated_at',
        ]
