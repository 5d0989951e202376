from datetime import timedelta
from decimal import Decimal
import tempfile

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status

from accounts.models import User
from marketlens_api.exceptions import (
    ValidationError, InvalidStateError, InvalidMergeError, LogNotFoundError, ConcurrentModificationError,
)
from products.models import Product, ProductSupplierAssignment
from products.tests import make_image_bytes
from suppliers.models import Supplier
from .constants import (
    STATUS_ORDERED, STATUS_DISPATCHED, STATUS_RECEIVED_FULL, STATUS_RECEIVED_PARTIAL,
)
from . import lifecycle
from .merging import merge_logs
from .models import DailyLog, PurchaseOrder
from . import services

HASH_A = 'a1b2' * 16
HASH_B = 'c3d4' * 16


def actions(log):
    return [entry['action'] for entry in log.history]


class OrderCaptureTest(TestCase):
    """Creating and merging orders for photographed products"""

    def setUp(self):
        self.user = User.objects.create_user(email='wh@example.com', password='x', role='warehouse')

    def test_new_photo_creates_product_supplier_and_log(self):
        result = services.create_or_merge_order(
            HASH_A, {'S': 5, 'M': 3}, has_sizes=True, supplier_name='Acme', user=self.user,
        )

        self.assertFalse(result.merged)
        self.assertEqual(Product.objects.count(), 1)
        self.assertEqual(Supplier.objects.count(), 1)
        self.assertEqual(result.supplier.name, 'Acme')
        self.assertEqual(result.log.ordered_qty, {'S': 5, 'M': 3})
        self.assertEqual(result.log.status, STATUS_ORDERED)
        self.assertEqual(actions(result.log), ['created'])
        self.assertEqual(result.log.history[0]['user_id'], str(self.user.pk))

    def test_same_photo_same_day_merges(self):
        first = services.create_or_merge_order(HASH_A, {'S': 5, 'M': 3}, has_sizes=True, supplier_name='Acme')
        second = services.create_or_merge_order(HASH_A, {'S': 2}, has_sizes=True)

        self.assertTrue(second.merged)
        self.assertEqual(second.log.id, first.log.id)
        self.assertEqual(DailyLog.objects.count(), 1)
        log = DailyLog.objects.get()
        self.assertEqual(log.ordered_qty, {'S': 7, 'M': 3})
        self.assertEqual(log.status, STATUS_ORDERED)
        self.assertEqual(actions(log), ['created', 'updated_order'])
        self.assertEqual(log.version, 2)

    def test_dispatched_log_is_not_reopened(self):
        first = services.create_or_merge_order(HASH_A, {'Total': 4}, has_sizes=False)
        services.process_pickup(first.log.id, {'Total': 4})

        second = services.create_or_merge_order(HASH_A, {'Total': 2}, has_sizes=False)

        self.assertFalse(second.merged)
        self.assertEqual(DailyLog.objects.count(), 2)

    def test_yesterdays_log_is_not_reopened(self):
        first = services.create_or_merge_order(HASH_A, {'Total': 4}, has_sizes=False)
        DailyLog.objects.filter(id=first.log.id).update(date=timezone.localdate() - timedelta(days=1))

        second = services.create_or_merge_order(HASH_A, {'Total': 1}, has_sizes=False)
        self.assertFalse(second.merged)

    def test_unsized_quantities_fold_into_total(self):
        result = services.create_or_merge_order(HASH_A, {'S': 2, 'M': 1}, has_sizes=False)
        self.assertEqual(result.log.ordered_qty, {'Total': 3})

    def test_zero_quantities_rejected(self):
        with self.assertRaises(ValidationError):
            services.create_or_merge_order(HASH_A, {'S': 0}, has_sizes=True)
        self.assertEqual(DailyLog.objects.count(), 0)
        self.assertEqual(Product.objects.count(), 0)

    def test_negative_or_fractional_quantities_rejected(self):
        with self.assertRaises(ValidationError):
            services.create_or_merge_order(HASH_A, {'S': -1}, has_sizes=True)
        with self.assertRaises(ValidationError):
            services.create_or_merge_order(HASH_A, {'S': '1.5'}, has_sizes=True)

    def test_price_and_supplier_are_remembered(self):
        result = services.create_or_merge_order(
            HASH_A, {'Total': 1}, has_sizes=False, supplier_name='Acme', price='12.50',
        )
        product = Product.objects.get(id=result.product.id)
        self.assertEqual(product.last_price, Decimal('12.50'))
        self.assertEqual(product.last_supplier.name, 'Acme')
        self.assertEqual(
            ProductSupplierAssignment.objects.get(product=product).assignment_count, 1
        )


class AdjustAndSupplierTest(TestCase):

    def setUp(self):
        self.log = services.create_or_merge_order(HASH_A, {'S': 5, 'M': 3}, has_sizes=True).log

    def test_adjust_details(self):
        log = services.adjust_log_details(self.log.id, {'S': 1, 'M': 0}, price='9')

        self.assertEqual(log.ordered_qty, {'S': 1})
        self.assertEqual(log.price, Decimal('9.00'))
        self.assertEqual(actions(log)[-1], 'edited_details')

    def test_adjust_rejects_all_zero(self):
        with self.assertRaises(ValidationError):
            services.adjust_log_details(self.log.id, {'S': 0})

    def test_adjust_only_while_ordered(self):
        services.process_pickup(self.log.id, {'S': 5, 'M': 3})
        with self.assertRaises(InvalidStateError):
            services.adjust_log_details(self.log.id, {'S': 1})

    def test_stale_version_rejected(self):
        with self.assertRaises(ConcurrentModificationError):
            services.adjust_log_details(self.log.id, {'S': 1}, expected_version=99)
        self.log.refresh_from_db()
        self.assertEqual(self.log.ordered_qty, {'S': 5, 'M': 3})

    def test_update_supplier(self):
        log = services.update_log_supplier(self.log.id, 'New Stall')

        self.assertEqual(log.supplier.name, 'New Stall')
        self.assertEqual(actions(log)[-1], 'supplier_change')
        self.assertEqual(log.product.last_supplier, log.supplier)

    def test_missing_log(self):
        with self.assertRaises(LogNotFoundError):
            services.update_log_supplier('00000000-0000-0000-0000-000000000000', 'X')


class PickupTest(TestCase):
    """Market pickup outcomes"""

    def setUp(self):
        services.create_or_merge_order(HASH_A, {'S': 5, 'M': 3}, has_sizes=True, supplier_name='Acme')
        self.log = services.create_or_merge_order(HASH_A, {'S': 2}, has_sizes=True).log

    def test_partial_pickup_splits(self):
        result = services.process_pickup(self.log.id, {'S': 7, 'M': 1})

        dispatched, remainder = result.log, result.remainder
        self.assertEqual(dispatched.id, self.log.id)
        self.assertEqual(dispatched.ordered_qty, {'S': 7, 'M': 1})
        self.assertEqual(dispatched.dispatched_qty, {'S': 7, 'M': 1})
        self.assertEqual(dispatched.status, STATUS_DISPATCHED)
        self.assertEqual(remainder.ordered_qty, {'M': 2})
        self.assertEqual(remainder.status, STATUS_ORDERED)
        self.assertEqual(remainder.supplier_id, dispatched.supplier_id)
        self.assertEqual(actions(dispatched)[-1], 'pickup_dispatch')
        self.assertEqual(actions(remainder), ['created', 'updated_order', 'split_remaining'])

    def test_split_conserves_quantities(self):
        original = dict(self.log.ordered_qty)
        result = services.process_pickup(self.log.id, {'S': 3, 'M': 3})

        for key, value in original.items():
            self.assertEqual(
                result.log.ordered_qty.get(key, 0) + result.remainder.ordered_qty.get(key, 0), value
            )

    def test_full_pickup_dispatches_in_place(self):
        result = services.process_pickup(self.log.id, {'S': 7, 'M': 3}, price='20')

        self.assertIsNone(result.remainder)
        self.assertEqual(result.log.status, STATUS_DISPATCHED)
        self.assertEqual(result.log.picked_qty, {'S': 7, 'M': 3})
        self.assertEqual(actions(result.log)[-1], 'pickup_full_dispatch')
        self.assertEqual(DailyLog.objects.count(), 1)
        self.assertEqual(result.log.product.last_price, Decimal('20.00'))

    def test_visit_with_nothing_picked(self):
        result = services.process_pickup(self.log.id, {'S': 0}, notes='Stall closed')

        self.assertIsNone(result.remainder)
        self.assertEqual(result.log.ordered_qty, {'S': 7, 'M': 3})
        self.assertEqual(result.log.status, STATUS_ORDERED)
        self.assertEqual(result.log.notes, 'Stall closed')
        self.assertEqual(actions(result.log)[-1], 'visited_zero')

    def test_over_pick_rejected(self):
        with self.assertRaises(ValidationError):
            services.process_pickup(self.log.id, {'S': 8})

    def test_unknown_size_rejected(self):
        with self.assertRaises(ValidationError):
            services.process_pickup(self.log.id, {'XL': 1})

    def test_dispatched_log_not_active_for_pickup(self):
        services.process_pickup(self.log.id, {'S': 7, 'M': 3})
        with self.assertRaises(InvalidStateError):
            services.process_pickup(self.log.id, {'S': 1})

    def test_pickup_can_switch_supplier(self):
        result = services.process_pickup(self.log.id, {'S': 7, 'M': 3}, supplier_name='Other Stall')
        self.assertEqual(result.log.supplier.name, 'Other Stall')


class ReceivingTest(TestCase):
    """Warehouse inward"""

    def setUp(self):
        log = services.create_or_merge_order(HASH_A, {'S': 7, 'M': 3}, has_sizes=True).log
        self.dispatched = services.process_pickup(log.id, {'S': 7, 'M': 1}).log

    def test_full_receipt(self):
        log = services.process_receiving(self.dispatched.id, {'S': 7, 'M': 1})
        self.assertEqual(log.status, STATUS_RECEIVED_FULL)
        self.assertEqual(actions(log)[-1], 'received')

    def test_short_receipt(self):
        log = services.process_receiving(self.dispatched.id, {'S': 5, 'M': 1})
        self.assertEqual(log.status, STATUS_RECEIVED_PARTIAL)

    def test_zero_received_is_kept(self):
        log = services.process_receiving(self.dispatched.id, {'S': 8, 'M': 0})
        self.assertEqual(log.received_qty, {'S': 8, 'M': 0})
        self.assertEqual(log.status, STATUS_RECEIVED_FULL)

    def test_receiving_again_replaces(self):
        services.process_receiving(self.dispatched.id, {'S': 2})
        log = services.process_receiving(self.dispatched.id, {'S': 7, 'M': 1})
        self.assertEqual(log.status, STATUS_RECEIVED_FULL)
        self.assertEqual(actions(log).count('received'), 2)

    def test_cannot_receive_before_dispatch(self):
        remainder = DailyLog.objects.exclude(id=self.dispatched.id).get()
        with self.assertRaises(InvalidStateError):
            services.process_receiving(remainder.id, {'M': 2})

    def test_received_required(self):
        with self.assertRaises(ValidationError):
            services.process_receiving(self.dispatched.id, {})


class MergeLogsTest(TestCase):
    """Merging duplicate logs"""

    def setUp(self):
        self.supplier = Supplier.objects.create(name='Acme')
        self.product = Product.objects.create(image_hash=HASH_A)
        self.source = DailyLog.objects.create(
            product=self.product, supplier=self.supplier, ordered_qty={'Total': 3},
            history=[{'action': 'created', 'timestamp': 1}],
        )
        self.target = DailyLog.objects.create(
            product=self.product, supplier=self.supplier, ordered_qty={'Total': 5},
            history=[{'action': 'created', 'timestamp': 2}],
        )

    def test_merge_adds_and_deletes_source(self):
        merged = merge_logs(self.source.id, self.target.id)

        self.assertEqual(merged.ordered_qty, {'Total': 8})
        self.assertEqual(merged.status, STATUS_ORDERED)
        self.assertFalse(DailyLog.objects.filter(id=self.source.id).exists())
        self.assertEqual(actions(merged), ['created', 'merged_entries'])
        self.assertEqual(merged.history[-1]['quantity'], 3)
        self.assertIn('[MERGED: Merged duplicate from same date', merged.notes)

    def test_merge_across_dates(self):
        DailyLog.objects.filter(id=self.source.id).update(date=timezone.localdate() - timedelta(days=1))
        merged = merge_logs(self.source.id, self.target.id)
        self.assertIn('Merged entry from', merged.history[-1]['details'])

    def test_sized_into_unsized_lands_on_total(self):
        DailyLog.objects.filter(id=self.source.id).update(ordered_qty={'S': 2, 'M': 1}, has_sizes=True)
        merged = merge_logs(self.source.id, self.target.id)

        self.assertTrue(merged.has_sizes)
        self.assertEqual(merged.ordered_qty, {'Total': 5, 'S': 2, 'M': 1})

    def test_zero_quantity_source_rejected(self):
        DailyLog.objects.filter(id=self.source.id).update(ordered_qty={})
        with self.assertRaises(InvalidMergeError):
            merge_logs(self.source.id, self.target.id)

        self.assertTrue(DailyLog.objects.filter(id=self.source.id).exists())
        self.target.refresh_from_db()
        self.assertEqual(self.target.ordered_qty, {'Total': 5})

    def test_self_merge_rejected(self):
        with self.assertRaises(InvalidMergeError):
            merge_logs(self.target.id, self.target.id)

    def test_received_log_cannot_be_merged(self):
        DailyLog.objects.filter(id=self.target.id).update(status=STATUS_RECEIVED_FULL)
        with self.assertRaises(InvalidMergeError):
            merge_logs(self.source.id, self.target.id)

    def test_merge_reopens_dispatched_target(self):
        DailyLog.objects.filter(id=self.target.id).update(
            dispatched_qty={'Total': 5}, picked_qty={'Total': 5}, status=STATUS_DISPATCHED,
        )
        merged = merge_logs(self.source.id, self.target.id)

        self.assertEqual(merged.status, STATUS_ORDERED)
        self.assertEqual(merged.picked_qty, {})
        self.assertEqual(merged.dispatched_qty, {})
        self.assertEqual(lifecycle.pending_quantities(merged), {'Total': 8})

    def test_pickup_after_reopening_merge_matches_the_queue(self):
        DailyLog.objects.filter(id=self.target.id).update(
            dispatched_qty={'Total': 5}, picked_qty={'Total': 5}, status=STATUS_DISPATCHED,
        )
        merged = merge_logs(self.source.id, self.target.id)
        pending = lifecycle.pending_quantities(merged)

        result = services.process_pickup(merged.id, pending)

        self.assertIsNone(result.remainder)
        self.assertEqual(result.log.dispatched_qty, {'Total': 8})
        self.assertEqual(result.log.status, STATUS_DISPATCHED)
        self.assertEqual(DailyLog.objects.count(), 1)

    def test_missing_log(self):
        with self.assertRaises(LogNotFoundError):
            merge_logs('00000000-0000-0000-0000-000000000000', self.target.id)


class PurchaseOrderTest(TestCase):

    def setUp(self):
        self.first = services.create_or_merge_order(
            HASH_A, {'Total': 4}, has_sizes=False, supplier_name='Acme', price='10',
        ).log
        self.second = services.create_or_merge_order(
            HASH_B, {'S': 2}, has_sizes=True, supplier_name='Acme', price='2.5',
        ).log

    def test_create_freezes_items(self):
        po = services.create_purchase_order([self.first.id, self.second.id])

        self.assertTrue(po.po_number.startswith(f'PO-{timezone.localdate().year}-'))
        self.assertEqual(po.supplier.name, 'Acme')
        self.assertEqual(len(po.items), 2)
        self.assertEqual(po.total_amount, Decimal('45.00'))
        self.assertEqual(po.status, 'pending')
        self.assertEqual(po.history[0]['action'], 'created')

    def test_numbers_increment(self):
        first = services.create_purchase_order([self.first.id])
        second = services.create_purchase_order([self.second.id])
        self.assertEqual(int(second.po_number.split('-')[-1]), int(first.po_number.split('-')[-1]) + 1)

    def test_update_status_and_notes(self):
        po = services.create_purchase_order([self.first.id])
        po = services.update_purchase_order(po.id, status='confirmed', notes='Call before noon')

        self.assertEqual(po.status, 'confirmed')
        self.assertEqual([entry['action'] for entry in po.history], ['created', 'status_change', 'notes_updated'])

    def test_unknown_status(self):
        po = services.create_purchase_order([self.first.id])
        with self.assertRaises(ValidationError):
            services.update_purchase_order(po.id, status='shipped')

    def test_requires_logs(self):
        with self.assertRaises(ValidationError):
            services.create_purchase_order([])

    def test_delete(self):
        po = services.create_purchase_order([self.first.id])
        services.delete_purchase_order(po.id)
        self.assertFalse(PurchaseOrder.objects.exists())


class ProcurementAPITest(APITestCase):
    """Test the procurement endpoints"""

    def setUp(self):
        self.warehouse = User.objects.create_user(email='wh@example.com', password='x', role='warehouse')
        self.runner = User.objects.create_user(email='run@example.com', password='x', role='market_person')
        self.admin = User.objects.create_user(email='admin@example.com', password='x', role='admin')
        self.client.force_authenticate(user=self.warehouse)

    def _create(self, quantities, has_sizes=True, supplier='Acme'):
        return self.client.post(reverse('create_order'), {
            'image_hash': HASH_A,
            'quantities': quantities,
            'has_sizes': has_sizes,
            'supplier_name': supplier,
        }, format='json')

    def test_create_then_merge(self):
        response = self._create({'S': 5, 'M': 3})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['merged'])

        response = self._create({'S': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['merged'])
        self.assertEqual(response.data['log']['ordered_qty'], {'S': 7, 'M': 3})

    def test_create_requires_image_or_hash(self):
        response = self.client.post(reverse('create_order'), {'quantities': {'S': 1}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_rejects_zero_quantities(self):
        response = self._create({'S': 0})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid input data')

    def test_runner_cannot_create_orders(self):
        self.client.force_authenticate(user=self.runner)
        response = self._create({'S': 1})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pickup_and_receive_flow(self):
        log_id = self._create({'S': 7, 'M': 3}).data['log']['id']

        self.client.force_authenticate(user=self.runner)
        response = self.client.post(
            reverse('process_pickup', args=[log_id]), {'picked': {'S': 7, 'M': 1}}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['outcome'], 'split')
        self.assertEqual(response.data['remainder']['ordered_qty'], {'M': 2})

        self.client.force_authenticate(user=self.warehouse)
        response = self.client.post(
            reverse('process_receiving', args=[log_id]), {'received': {'S': 7, 'M': 1}}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], STATUS_RECEIVED_FULL)

    @override_settings(MEDIA_ROOT=tempfile.mkdtemp())
    def test_rejected_pickup_discards_proof(self):
        log_id = self._create({'S': 2}).data['log']['id']
        self.client.force_authenticate(user=self.runner)
        proof = SimpleUploadedFile('proof.png', make_image_bytes(), content_type='image/png')
        response = self.client.post(
            reverse('process_pickup', args=[log_id]),
            {'picked': '{"S": 5}', 'proof_image': proof}, format='multipart'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(default_storage.listdir('pickup-proofs')[1], [])

    def test_receive_before_dispatch_conflicts(self):
        log_id = self._create({'S': 1}).data['log']['id']
        response = self.client.post(
            reverse('process_receiving', args=[log_id]), {'received': {'S': 1}}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_stale_version_conflicts(self):
        log_id = self._create({'S': 1}).data['log']['id']
        response = self.client.post(reverse('adjust_log_details', args=[log_id]), {
            'ordered_qty': {'S': 3}, 'expected_version': 7,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['actual_version'], 1)

    def test_merge_endpoint(self):
        product = Product.objects.create(image_hash=HASH_B)
        source = DailyLog.objects.create(product=product, ordered_qty={'Total': 3})
        target = DailyLog.objects.create(product=product, ordered_qty={'Total': 5})

        response = self.client.post(reverse('merge_logs'), {
            'source_log_id': str(source.id),
            'target_log_id': str(target.id),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['log']['ordered_qty'], {'Total': 8})

    def test_list_logs_filtered_by_status(self):
        self._create({'S': 1})
        response = self.client.get(reverse('dailylog-list'), {'status': 'ordered'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)

    def test_only_admin_deletes_logs(self):
        log_id = self._create({'S': 1}).data['log']['id']
        response = self.client.delete(reverse('dailylog-detail', args=[log_id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('dailylog-detail', args=[log_id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_summaries(self):
        self._create({'S': 2})
        response = self.client.get(reverse('summary_orders'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['supplier_name'], 'Acme')
        self.assertEqual(response.data[0]['total_quantity'], 2)

        response = self.client.get(reverse('summary_pickup'))
        self.assertEqual(response.data[0]['pending_total'], 2)

    def test_purchase_order_endpoints(self):
        log_id = self._create({'S': 2}).data['log']['id']
        response = self.client.post(reverse('purchaseorder-list'), {'log_ids': [log_id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.patch(
            reverse('purchaseorder-detail', args=[response.data['id']]), {'status': 'confirmed'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'confirmed')
