from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from accounts.models import User
from marketlens_api.exceptions import ValidationError, SupplierNotFoundError
from .models import Supplier
from . import services


class SupplierModelTest(TestCase):
    """Test Supplier model functionality"""

    def test_supplier_str_representation(self):
        supplier = Supplier.objects.create(name='Ravi Traders')
        self.assertEqual(str(supplier), 'Ravi Traders')

    def test_most_recently_used_first(self):
        older = Supplier.objects.create(name='Older', last_used_at=timezone.now() - timedelta(days=2))
        newer = Supplier.objects.create(name='Newer')

        suppliers = list(Supplier.objects.all())
        self.assertEqual(suppliers[0], newer)
        self.assertEqual(suppliers[1], older)


class SupplierServiceTest(TestCase):
    """Test supplier resolution by name"""

    def setUp(self):
        self.supplier = Supplier.objects.create(name='Ravi Traders', phone='98450')

    def test_resolve_matches_case_insensitively(self):
        found = services.resolve_supplier('  ravi TRADERS ')
        self.assertEqual(found.id, self.supplier.id)
        self.assertEqual(Supplier.objects.count(), 1)

    def test_resolve_creates_trimmed_supplier(self):
        created = services.resolve_supplier('  New Stall  ', phone=' 12345 ')
        self.assertEqual(created.name, 'New Stall')
        self.assertEqual(created.phone, '12345')

    def test_resolve_blank_name_returns_none(self):
        self.assertIsNone(services.resolve_supplier('   '))
        self.assertIsNone(services.resolve_supplier(None))

    def test_resolve_merges_phone(self):
        services.resolve_supplier('Ravi Traders', phone='111')
        self.supplier.refresh_from_db()
        self.assertEqual(self.supplier.phone, '111')

    def test_resolve_touches_last_used(self):
        before = self.supplier.last_used_at
        services.resolve_supplier('Ravi Traders')
        self.supplier.refresh_from_db()
        self.assertGreaterEqual(self.supplier.last_used_at, before)

    def test_refresh_supplier_keeps_current_without_name(self):
        self.assertEqual(services.refresh_supplier(self.supplier), self.supplier)
        updated = services.refresh_supplier(self.supplier, phone='222')
        self.assertEqual(updated.phone, '222')

    def test_refresh_supplier_switches_on_name(self):
        other = services.refresh_supplier(self.supplier, name='Other Stall')
        self.assertNotEqual(other.id, self.supplier.id)

    def test_add_supplier_existing_name_refreshes_phone(self):
        supplier = services.add_supplier('RAVI traders', '777')
        self.assertEqual(supplier.id, self.supplier.id)
        self.assertEqual(supplier.phone, '777')

    def test_add_supplier_requires_name(self):
        with self.assertRaises(ValidationError):
            services.add_supplier('  ')

    def test_update_supplier_keeps_id(self):
        supplier = services.update_supplier(self.supplier.id, ' Ravi & Sons ', tag='Lane 4')
        self.assertEqual(supplier.id, self.supplier.id)
        self.assertEqual(supplier.name, 'Ravi & Sons')
        self.assertEqual(supplier.tag, 'Lane 4')
        self.assertEqual(supplier.phone, '98450')

    def test_update_missing_supplier(self):
        with self.assertRaises(SupplierNotFoundError):
            services.update_supplier('00000000-0000-0000-0000-000000000000', 'Nobody')


class SupplierAPITest(APITestCase):
    """Test supplier API endpoints"""

    def setUp(self):
        self.user = User.objects.create_user(email='wh@example.com', password='x', role='warehouse')
        self.accountant = User.objects.create_user(email='acc@example.com', password='x', role='accountant')
        self.client.force_authenticate(user=self.user)
        Supplier.objects.create(name='Ravi Traders', tag='Lane 4')
        Supplier.objects.create(name='Meena Flowers')

    def test_list_with_search(self):
        response = self.client.get(reverse('supplier-list'), {'search': 'ravi'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['name'], 'Ravi Traders')

    def test_filter_by_tag(self):
        response = self.client.get(reverse('supplier-list'), {'tag': 'lane 4'})
        self.assertEqual(len(response.data['results']), 1)

    def test_create_reuses_existing_name(self):
        response = self.client.post(reverse('supplier-list'), {
            'name': 'meena flowers',
            'phone': '555'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Meena Flowers')
        self.assertEqual(Supplier.objects.count(), 2)

    def test_create_rejects_blank_name(self):
        response = self.client.post(reverse('supplier-list'), {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update(self):
        supplier = Supplier.objects.get(name='Ravi Traders')
        response = self.client.patch(
            reverse('supplier-detail', args=[supplier.id]), {'phone': '999'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['phone'], '999')
        self.assertEqual(response.data['name'], 'Ravi Traders')

    def test_accountant_cannot_create(self):
        self.client.force_authenticate(user=self.accountant)
        response = self.client.post(reverse('supplier-list'), {'name': 'New'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
