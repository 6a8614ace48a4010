"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backoffice.locations.models import Site
from backoffice.catalog.models import Category, Product
from backoffice.inventory.models import Inventory

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_user(username=None, password='testpass123', roles=None, is_superuser=False):
        """Create a test user, optionally in the given role groups"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        user = User.objects.create_user(
            username=username,
            email=f'{username}@test.com',
            password=password,
            is_superuser=is_superuser,
        )
        for role in roles or []:
            group, _ = Group.objects.get_or_create(name=role)
            user.groups.add(group)
        return user

    @staticmethod
    def create_site(code=None, name=None, **kwargs):
        """Create a test site"""
        if not code:
            code = TestDataFactory.random_string(3).upper()
        return Site.objects.create(code=code, name=name or f'Site {code}', **kwargs)

    @staticmethod
    def create_category(name=None, **kwargs):
        """Create a test category"""
        if not name:
            name = f'Category {TestDataFactory.random_string(6)}'
        slug = kwargs.pop('slug', None) or name.lower().replace(' ', '-')
        return Category.objects.create(name=name, slug=slug, **kwargs)

    @staticmethod
    def create_product(barcode=None, name=None, category=None, **kwargs):
        """Create a test product"""
        if not barcode:
            barcode = f'48{random.randint(10000000000, 99999999999)}'
        if not name:
            name = f'Product {TestDataFactory.random_string(6)}'
        if category is None:
            category = TestDataFactory.create_category()
        return Product.objects.create(
            barcode=barcode,
            sku=kwargs.pop('sku', barcode),
            slug=kwargs.pop('slug', f'{barcode}-{TestDataFactory.random_string(4)}'),
            name=name,
            category=category,
            **kwargs
        )

    @staticmethod
    def create_inventory(product=None, site=None, quantity=Decimal('0.000'), reserved=Decimal('0.000'), **kwargs):
        """Create an inventory row directly, bypassing the movement ledger"""
        product = product or TestDataFactory.create_product()
        site = site or TestDataFactory.create_site()
        quantity = Decimal(str(quantity))
        reserved = Decimal(str(reserved))
        return Inventory.objects.create(
            product=product,
            site=site,
            quantity=quantity,
            reserved_quantity=reserved,
            available_quantity=quantity - reserved,
            **kwargs
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
