from django.urls import path
from .views import site_list, site_detail, site_by_code

urlpatterns = [
    path('sites/', site_list, name='site-list'),
    path('sites/<int:pk>/', site_detail, name='site-detail'),
    path('sites/code/<str:code>/', site_by_code, name='site-by-code'),
]
