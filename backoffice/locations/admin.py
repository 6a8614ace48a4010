from django.contrib import admin
from .models import Site


@admin.register(Site)
class SiteAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'site_type', 'is_markdown', 'enables_on_sale', 'is_active', 'created_at']
    list_filter = ['site_type', 'is_markdown', 'enables_on_sale', 'is_active']
    search_fields = ['code', 'name']
    ordering = ['code']
