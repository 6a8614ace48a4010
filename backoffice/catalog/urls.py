from django.urls import path
from .views import (
    category_list, category_detail,
    product_list, product_detail, product_by_barcode,
)

urlpatterns = [
    path('categories/', category_list, name='category-list'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('products/', product_list, name='product-list'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/barcode/<str:barcode>/', product_by_barcode, name='product-by-barcode'),
]
