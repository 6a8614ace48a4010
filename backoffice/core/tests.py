"""
Test suite for authentication, roles and audit logging
"""
from io import StringIO

from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase, RequestFactory
from rest_framework import status

from backoffice.core.models import AuditLog
from backoffice.core.permissions import ADMIN, MANAGER, STAFF, user_has_role, get_user_roles
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import create_audit_log


class AuthTests(TestCase):
    """Test JWT login"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='manager1', password='s3cret-pass', roles=[MANAGER])

    def test_login_returns_tokens(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'manager1', 'password': 's3cret-pass'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_login_rejects_bad_password(self):
        response = self.client.post('/api/v1/auth/login/', {'username': 'manager1', 'password': 'wrong'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_lists_roles(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.data['roles'], [MANAGER])


class RoleTests(TestCase):
    """Test role checks"""

    def test_group_membership(self):
        staff = TestDataFactory.create_user(roles=[STAFF])
        self.assertTrue(user_has_role(staff, [ADMIN, STAFF]))
        self.assertFalse(user_has_role(staff, [ADMIN, MANAGER]))
        self.assertEqual(get_user_roles(staff), [STAFF])

    def test_superuser_passes_every_check(self):
        root = TestDataFactory.create_user(is_superuser=True)
        self.assertTrue(user_has_role(root, [ADMIN]))

    def test_create_user_groups_command(self):
        call_command('create_user_groups', stdout=StringIO())
        self.assertEqual(
            set(Group.objects.values_list('name', flat=True)),
            {ADMIN, MANAGER, STAFF}
        )
        staff = Group.objects.get(name=STAFF)
        self.assertTrue(staff.permissions.exists())
        self.assertFalse(staff.permissions.exclude(codename__startswith='view_').exists())


class AuditLogTests(TestCase):
    """Test audit log helper and endpoints"""

    def test_create_audit_log_records_ip(self):
        user = TestDataFactory.create_user()
        request = RequestFactory().post('/', HTTP_X_FORWARDED_FOR='10.0.0.7, 10.0.0.1')
        request.user = user

        log = create_audit_log(request=request, action='stock_adjust', model_name='Inventory', object_id=5, changes={'quantity': '1'})

        self.assertEqual(log.user, user)
        self.assertEqual(log.ip_address, '10.0.0.7')
        self.assertEqual(log.object_id, '5')

    def test_missing_fields_skip_logging(self):
        self.assertIsNone(create_audit_log(action='stock_adjust', model_name='Inventory'))
        self.assertFalse(AuditLog.objects.exists())

    def test_audit_logs_need_manager_role(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user(roles=[STAFF]))
        self.assertEqual(client.get('/api/v1/audit-logs/').status_code, status.HTTP_403_FORBIDDEN)

        client.authenticate_user(TestDataFactory.create_user(roles=[ADMIN]))
        self.assertEqual(client.get('/api/v1/audit-logs/').status_code, status.HTTP_200_OK)
