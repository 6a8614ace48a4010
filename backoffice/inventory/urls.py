from django.urls import path
from .views import (
    inventory_list, inventory_detail, inventory_movements, inventory_levels,
    stock_adjust, stock_transfer, transfer_history,
)

urlpatterns = [
    path('inventory/', inventory_list, name='inventory-list'),
    path('inventory/adjust/', stock_adjust, name='inventory-adjust'),
    path('inventory/transfer/', stock_transfer, name='inventory-transfer'),
    path('inventory/transfers/', transfer_history, name='inventory-transfers'),
    path('inventory/<int:pk>/', inventory_detail, name='inventory-detail'),
    path('inventory/<int:pk>/movements/', inventory_movements, name='inventory-movements'),
    path('inventory/<int:pk>/levels/', inventory_levels, name='inventory-levels'),
]
