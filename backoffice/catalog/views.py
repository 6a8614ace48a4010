from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer
from .filters import ProductFilter

PRODUCT_LIST_LIMIT = 200


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def category_list(request):
    """List active categories"""
    categories = Category.objects.filter(is_active=True)
    return Response(CategorySerializer(categories, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve a category"""
    category = get_object_or_404(Category, pk=pk)
    return Response(CategorySerializer(category).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_list(request):
    """List products with search/category/barcode filtering"""
    queryset = Product.objects.select_related('category').order_by('name')
    product_filter = ProductFilter(request.query_params, queryset=queryset)
    products = product_filter.qs[:PRODUCT_LIST_LIMIT]
    return Response(ProductSerializer(products, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve a product"""
    product = get_object_or_404(Product.objects.select_related('category'), pk=pk)
    return Response(ProductSerializer(product).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_by_barcode(request, barcode):
    """Retrieve a product by barcode"""
    product = get_object_or_404(Product.objects.select_related('category'), barcode=barcode)
    return Response(ProductSerializer(product).data)
