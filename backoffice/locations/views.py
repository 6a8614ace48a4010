import logging
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from .models import Site
from .serializers import SiteSerializer
from .cache import get_cached_site_list, cache_site_list

logger = logging.getLogger('backoffice.locations')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def site_list(request):
    """List sites (active only unless ?include_inactive=true)"""
    active_only = request.query_params.get('include_inactive', '').lower() not in ('1', 'true', 'yes')

    cached_data = get_cached_site_list(active_only)
    if cached_data is not None:
        return Response(cached_data)

    sites = Site.objects.all()
    if active_only:
        sites = sites.filter(is_active=True)
    response_data = SiteSerializer(sites, many=True).data
    cache_site_list(response_data, active_only)
    logger.debug(f"Cached site list (active_only={active_only}), returning {len(response_data)} sites")
    return Response(response_data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def site_detail(request, pk):
    """Retrieve a site by id"""
    site = get_object_or_404(Site, pk=pk)
    return Response(SiteSerializer(site).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def site_by_code(request, code):
    """Retrieve a site by its legacy site code"""
    site = get_object_or_404(Site, code=code)
    return Response(SiteSerializer(site).data)
