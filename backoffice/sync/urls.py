from django.urls import path
from .views import sync_stream

urlpatterns = [
    path('inventory/sync-stream/', sync_stream, name='inventory-sync-stream'),
]
