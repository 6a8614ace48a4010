import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for Product listing"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    barcode = django_filters.CharFilter(field_name='barcode', lookup_expr='exact')
    active = django_filters.BooleanFilter(field_name='is_active')
    on_sale = django_filters.BooleanFilter(field_name='is_on_sale')

    class Meta:
        model = Product
        fields = ['search', 'category', 'barcode', 'active', 'on_sale']

    def filter_search(self, queryset, name, value):
        """Match name, SKU, barcode or legacy code"""
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(name__icontains=search)
            | Q(sku__icontains=search)
            | Q(barcode__icontains=search)
            | Q(legacy_product_code__iexact=search)
        )
