from rest_framework import serializers
from .models import Site


class SiteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Site
        fields = ['id', 'code', 'name', 'site_type', 'is_markdown', 'enables_on_sale', 'is_active', 'created_at', 'updated_at']
