from django.db import models
from decimal import Decimal


class Category(models.Model):
    """Product categories, identified by a normalized slug"""
    name = models.CharField(max_length=200, db_index=True)
    slug = models.SlugField(max_length=200, unique=True)
    # Recomputed by a full recount after every legacy sync
    item_count = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['name']


class Product(models.Model):
    """Product master, keyed by barcode"""
    barcode = models.CharField(max_length=100, unique=True, db_index=True)
    sku = models.CharField(max_length=100, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    slug = models.SlugField(max_length=100, unique=True)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, null=True, blank=True, related_name='products')
    retail_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    wholesale_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    po_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    base_uom = models.CharField(max_length=20, default='PC')
    legacy_product_code = models.CharField(max_length=100, blank=True, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    is_published = models.BooleanField(default=True)
    is_on_sale = models.BooleanField(default=False)
    last_synced_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.barcode})"

    class Meta:
        db_table = 'products'
        indexes = [
            models.Index(fields=['category', 'is_active', 'is_published'], name='idx_product_category_live'),
        ]
