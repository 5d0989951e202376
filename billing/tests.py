from decimal import Decimal
import tempfile

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from accounts.models import User
from marketlens_api.exceptions import InvalidStateError, LogNotFoundError, BillingNotFoundError, ValidationError
from procurement import services as procurement_services
from products.tests import make_image_bytes
from .models import BillingEntry
from . import services

HASH_A = 'a1b2' * 16


def received_log(received=None):
    log = procurement_services.create_or_merge_order(HASH_A, {'S': 7, 'M': 3}, has_sizes=True).log
    procurement_services.process_pickup(log.id, {'S': 7, 'M': 1})
    return procurement_services.process_receiving(log.id, received or {'S': 7, 'M': 1})


class BillAmountsTest(TestCase):
    """Pure amount computation"""

    def test_with_gst(self):
        amounts = services.compute_amounts(8, Decimal('100'), True)
        self.assertEqual(amounts.total_amount, Decimal('800.00'))
        self.assertEqual(amounts.gst_amount, Decimal('40.00'))
        self.assertEqual(amounts.final_amount, Decimal('840.00'))

    def test_without_gst(self):
        amounts = services.compute_amounts(3, Decimal('12.50'), False)
        self.assertEqual(amounts.total_amount, Decimal('37.50'))
        self.assertEqual(amounts.gst_amount, Decimal('0.00'))
        self.assertEqual(amounts.final_amount, Decimal('37.50'))

    def test_gst_rounds_half_up(self):
        amounts = services.gst_amounts(Decimal('0.10'), True)
        self.assertEqual(amounts.gst_amount, Decimal('0.01'))


class BillingServiceTest(TestCase):

    def setUp(self):
        self.log = received_log()

    def test_upsert_creates_entry(self):
        entry, created = services.upsert_billing_entry(self.log.id, '100', gst_enabled=True)

        self.assertTrue(created)
        self.assertEqual(entry.inward_log_id, self.log.id)
        self.assertEqual(entry.total_received_qty, 8)
        self.assertEqual(entry.total_amount, Decimal('800.00'))
        self.assertEqual(entry.gst_amount, Decimal('40.00'))
        self.assertEqual(entry.final_amount, Decimal('840.00'))

    def test_upsert_is_idempotent(self):
        first, _ = services.upsert_billing_entry(self.log.id, '99.99', gst_enabled=True)
        second, created = services.upsert_billing_entry(self.log.id, '99.99', gst_enabled=True)

        self.assertFalse(created)
        self.assertEqual(first.id, second.id)
        self.assertEqual(BillingEntry.objects.count(), 1)
        self.assertEqual(
            (first.total_amount, first.gst_amount, first.final_amount),
            (second.total_amount, second.gst_amount, second.final_amount),
        )

    def test_upsert_requires_received_log(self):
        open_log = procurement_services.create_or_merge_order('f' * 64, {'Total': 1}, has_sizes=False).log
        with self.assertRaises(InvalidStateError):
            services.upsert_billing_entry(open_log.id, '10')

    def test_upsert_missing_log(self):
        with self.assertRaises(LogNotFoundError):
            services.upsert_billing_entry('00000000-0000-0000-0000-000000000000', '10')

    def test_upsert_requires_price(self):
        with self.assertRaises(ValidationError):
            services.upsert_billing_entry(self.log.id, None)

    def test_toggle_gst_uses_stored_total(self):
        entry, _ = services.upsert_billing_entry(self.log.id, '100')
        entry = services.toggle_gst(entry.id, True)
        self.assertEqual(entry.final_amount, Decimal('840.00'))

        entry = services.toggle_gst(entry.id, False)
        self.assertEqual(entry.gst_amount, Decimal('0.00'))
        self.assertEqual(entry.final_amount, Decimal('800.00'))

    def test_attach_proof(self):
        entry, _ = services.upsert_billing_entry(self.log.id, '100')
        entry = services.attach_proof(entry.id, 'payment', '/media/billing/payment/x.jpg')
        self.assertEqual(entry.payment_proof_url, '/media/billing/payment/x.jpg')
        self.assertEqual(entry.bill_proof_url, '')

    def test_attach_unknown_kind(self):
        entry, _ = services.upsert_billing_entry(self.log.id, '100')
        with self.assertRaises(ValidationError):
            services.attach_proof(entry.id, 'receipt', '/x.jpg')

    def test_delete_missing(self):
        with self.assertRaises(BillingNotFoundError):
            services.delete_billing_entry('00000000-0000-0000-0000-000000000000')


class BillingAPITest(APITestCase):
    """Test billing endpoints"""

    def setUp(self):
        self.accountant = User.objects.create_user(email='acc@example.com', password='x', role='accountant')
        self.warehouse = User.objects.create_user(email='wh@example.com', password='x', role='warehouse')
        self.client.force_authenticate(user=self.accountant)
        self.log = received_log()

    def test_upsert_then_recompute(self):
        payload = {'inward_log_id': str(self.log.id), 'price_per_unit': '100.00', 'gst_enabled': True}
        response = self.client.post(reverse('upsert_billing_entry'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['final_amount'], '840.00')

        response = self.client.post(reverse('upsert_billing_entry'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_warehouse_cannot_bill(self):
        self.client.force_authenticate(user=self.warehouse)
        response = self.client.post(reverse('upsert_billing_entry'), {
            'inward_log_id': str(self.log.id), 'price_per_unit': '1.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_toggle_gst(self):
        entry, _ = services.upsert_billing_entry(self.log.id, '100')
        response = self.client.post(reverse('toggle_gst', args=[entry.id]), {'enabled': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['gst_amount'], '40.00')

    def test_list_filtered_by_log(self):
        services.upsert_billing_entry(self.log.id, '100')
        response = self.client.get(reverse('billingentry-list'), {'log': str(self.log.id)})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)

    @override_settings(MEDIA_ROOT=tempfile.mkdtemp())
    def test_attach_proof_upload(self):
        entry, _ = services.upsert_billing_entry(self.log.id, '100')
        upload = SimpleUploadedFile('bill.png', make_image_bytes(), content_type='image/png')
        response = self.client.post(
            reverse('attach_billing_proof', args=[entry.id]), {'kind': 'bill', 'image': upload}, format='multipart'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('billing/bill/', response.data['bill_proof_url'])

    @override_settings(MEDIA_ROOT=tempfile.mkdtemp())
    def test_rejected_proof_is_not_kept(self):
        upload = SimpleUploadedFile('bill.png', make_image_bytes(), content_type='image/png')
        response = self.client.post(
            reverse('attach_billing_proof', args=['00000000-0000-0000-0000-000000000000']),
            {'kind': 'bill', 'image': upload}, format='multipart'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(default_storage.listdir('billing/bill')[1], [])

    def test_billing_summary(self):
        response = self.client.get(reverse('summary_billing'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['total_received'], 8)
