import django_filters
from django.db.models import F, Q
from .models import Inventory, InventoryMovement


class InventoryFilter(django_filters.FilterSet):
    """Filter for the inventory listing"""

    site = django_filters.NumberFilter(field_name='site_id', lookup_expr='exact')
    site_code = django_filters.CharFilter(field_name='site__code', lookup_expr='exact')
    product = django_filters.NumberFilter(field_name='product_id', lookup_expr='exact')
    search = django_filters.CharFilter(method='filter_search', label='Search')
    low_stock = django_filters.BooleanFilter(method='filter_low_stock', label='Low Stock')

    class Meta:
        model = Inventory
        fields = ['site', 'site_code', 'product', 'search', 'low_stock']

    def filter_search(self, queryset, name, value):
        """Match product name, SKU or barcode"""
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(product__name__icontains=search)
            | Q(product__sku__icontains=search)
            | Q(product__barcode__icontains=search)
        )

    def filter_low_stock(self, queryset, name, value):
        """Rows at or below their minimum stock level"""
        if not value:
            return queryset
        return queryset.filter(
            min_stock_level__isnull=False,
            available_quantity__lte=F('min_stock_level'),
        )


class TransferFilter(django_filters.FilterSet):
    """Filter for transfer history, applied to the outgoing leg of each transfer"""

    site = django_filters.NumberFilter(method='filter_site', label='Site')
    product = django_filters.NumberFilter(field_name='inventory__product_id', lookup_expr='exact')

    class Meta:
        model = InventoryMovement
        fields = ['site', 'product']

    def filter_site(self, queryset, name, value):
        """Transfers leaving or entering the site"""
        return queryset.filter(Q(inventory__site_id=value) | Q(to_site_id=value))
