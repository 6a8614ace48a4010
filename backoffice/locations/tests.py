"""
Test suite for sites and the site list cache
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.locations.cache import get_cached_site_list


class SiteAPITests(TestCase):
    """Test site endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())
        self.warehouse = TestDataFactory.create_site(code='001', name='Main Warehouse')
        self.closed = TestDataFactory.create_site(code='009', name='Closed Store', is_active=False)

    def test_list_active_sites(self):
        response = self.client.get('/api/v1/sites/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['code'] for s in response.data], ['001'])

        response = self.client.get('/api/v1/sites/', {'include_inactive': 'true'})
        self.assertEqual([s['code'] for s in response.data], ['001', '009'])

    def test_list_is_cached_and_invalidated(self):
        self.client.get('/api/v1/sites/')
        self.assertIsNotNone(get_cached_site_list(True))

        TestDataFactory.create_site(code='002', name='Store 2')
        self.assertIsNone(get_cached_site_list(True))
        response = self.client.get('/api/v1/sites/')
        self.assertEqual([s['code'] for s in response.data], ['001', '002'])

    def test_site_by_code(self):
        response = self.client.get('/api/v1/sites/code/001/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.warehouse.id)

        response = self.client.get('/api/v1/sites/code/999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/sites/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
