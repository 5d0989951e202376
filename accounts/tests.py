from django.test import TestCase, RequestFactory
from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from .permissions import (
    get_permissions, can_edit, can_view, area_permission, IsAdminRole, RoleAreaPermission,
)
from .serializers import UserSerializer

User = get_user_model()


class UserModelTest(TestCase):
    """Test the custom User model"""

    def setUp(self):
        self.user_data = {
            'email': 'test@example.com',
            'first_name': 'Test',
            'last_name': 'User',
            'password': 'testpass123'
        }

    def test_create_user(self):
        user = User.objects.create_user(**self.user_data)

        self.assertEqual(user.email, 'test@example.com')
        self.assertEqual(user.role, 'warehouse')  # default
        self.assertTrue(user.check_password('testpass123'))
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_superuser)

    def test_create_superuser(self):
        user = User.objects.create_superuser(
            email='admin@example.com',
            password='adminpass123',
            first_name='Admin',
            last_name='User'
        )

        self.assertEqual(user.role, 'admin')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)

    def test_user_string_representation(self):
        user = User.objects.create_user(**self.user_data)
        self.assertEqual(str(user), 'test@example.com (Warehouse)')

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='testpass123')


class RolePermissionMatrixTest(TestCase):
    """Test the role / area matrix"""

    def test_admin_edits_everything(self):
        for area in ['orders', 'pickup', 'warehouse', 'suppliers', 'billing', 'settings']:
            self.assertTrue(get_permissions('admin', area)['can_edit'], area)

    def test_market_person(self):
        self.assertEqual(get_permissions('market_person', 'orders')['mode'], 'view')
        self.assertTrue(get_permissions('market_person', 'pickup')['can_edit'])
        self.assertFalse(get_permissions('market_person', 'billing')['can_view'])

    def test_accountant(self):
        self.assertTrue(get_permissions('accountant', 'billing')['can_edit'])
        self.assertTrue(get_permissions('accountant', 'orders')['can_view'])
        self.assertFalse(get_permissions('accountant', 'orders')['can_edit'])
        self.assertFalse(get_permissions('accountant', 'pickup')['can_view'])

    def test_unknown_role_sees_nothing(self):
        perms = get_permissions('visitor', 'orders')
        self.assertFalse(perms['can_view'])
        self.assertFalse(perms['can_edit'])

    def test_superuser_overrides_role(self):
        user = User.objects.create_user(
            email='root@example.com', password='x', role='accountant', is_superuser=True
        )
        self.assertTrue(can_edit(user, 'pickup'))
        self.assertTrue(can_view(user, 'settings'))


class RoleAreaPermissionTest(TestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.warehouse = User.objects.create_user(email='wh@example.com', password='x', role='warehouse')
        self.accountant = User.objects.create_user(email='acc@example.com', password='x', role='accountant')

    def _request(self, method, user):
        request = getattr(self.factory, method)('/api/test/')
        request.user = user
        return request

    def test_view_only_role_can_read_but_not_write(self):
        permission = area_permission('orders')()
        self.assertTrue(permission.has_permission(self._request('get', self.accountant), None))
        self.assertFalse(permission.has_permission(self._request('post', self.accountant), None))
        self.assertTrue(permission.has_permission(self._request('post', self.warehouse), None))

    def test_area_from_view(self):
        class View:
            permission_area = 'billing'

        permission = RoleAreaPermission()
        self.assertFalse(permission.has_permission(self._request('get', self.warehouse), View()))
        self.assertTrue(permission.has_permission(self._request('post', self.accountant), View()))

    def test_is_admin_role(self):
        admin = User.objects.create_user(email='a@example.com', password='x', role='admin')
        self.assertTrue(IsAdminRole().has_permission(self._request('delete', admin), None))
        self.assertFalse(IsAdminRole().has_permission(self._request('delete', self.warehouse), None))


class AuthenticationAPITest(APITestCase):
    """Test login and profile endpoints"""

    def setUp(self):
        self.user = User.objects.create_user(
            email='runner@example.com',
            password='testpass123',
            first_name='Market',
            last_name='Runner',
            role='market_person',
        )

    def test_login_returns_tokens(self):
        response = self.client.post(reverse('login'), {
            'email': 'runner@example.com',
            'password': 'testpass123'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertEqual(response.data['user']['role'], 'market_person')

    def test_login_with_wrong_password(self):
        response = self.client.post(reverse('login'), {
            'email': 'runner@example.com',
            'password': 'wrong'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_requires_authentication(self):
        response = self.client.get(reverse('profile'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_includes_permissions(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(reverse('profile'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['permissions']['pickup']['can_edit'])
        self.assertFalse(response.data['permissions']['billing']['can_view'])

    def test_serializer_lists_every_area(self):
        data = UserSerializer(self.user).data
        self.assertEqual(
            set(data['permissions']),
            {'orders', 'pickup', 'warehouse', 'suppliers', 'billing', 'settings'}
        )
