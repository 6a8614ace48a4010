"""
Caching for the site list.

Sites change rarely but are listed on every inventory screen, so the
serialized list is kept in the cache and dropped whenever a site changes.
"""
from django.core.cache import cache
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .models import Site

logger = logging.getLogger('backoffice.locations')

SITE_LIST_KEY_PREFIX = 'site_list:'

# Sites: 10 minutes (change infrequently)
SITE_LIST_CACHE_TTL = 600


def get_site_list_cache_key(active_only: bool = True) -> str:
    """Get cache key for the site list"""
    return f"{SITE_LIST_KEY_PREFIX}{'active' if active_only else 'all'}"


def get_cached_site_list(active_only: bool = True):
    cached_data = cache.get(get_site_list_cache_key(active_only))
    if cached_data is not None:
        logger.debug(f"Cache hit for site list (active_only={active_only})")
    return cached_data


def cache_site_list(data, active_only: bool = True, ttl: int = None):
    cache.set(get_site_list_cache_key(active_only), data, ttl or SITE_LIST_CACHE_TTL)


def invalidate_site_list_cache():
    cache.delete_many([get_site_list_cache_key(True), get_site_list_cache_key(False)])
    logger.debug("Invalidated site list cache")


@receiver(post_save, sender=Site)
def site_saved(sender, instance, **kwargs):
    invalidate_site_list_cache()


@receiver(post_delete, sender=Site)
def site_deleted(sender, instance, **kwargs):
    invalidate_site_list_cache()
