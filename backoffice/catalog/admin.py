from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'item_count', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'slug']
    ordering = ['name']
    readonly_fields = ['item_count']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'barcode', 'sku', 'category', 'retail_price', 'base_uom', 'is_active', 'is_published', 'is_on_sale', 'last_synced_at']
    list_filter = ['is_active', 'is_published', 'is_on_sale', 'category']
    search_fields = ['name', 'barcode', 'sku', 'legacy_product_code']
    ordering = ['name']
    readonly_fields = ['last_synced_at', 'created_at', 'updated_at']
