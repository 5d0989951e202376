"""
Unit tests for the read-side summaries
Built on hand-made snapshots, so no database is needed
"""

from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from procurement import summaries
from procurement.merging import find_duplicate_groups
from procurement.snapshot import StoreSnapshot, SupplierRow, ProductRow, LogRow

ACME = SupplierRow(id='s-acme', name='Acme', phone='111')
BLOOM = SupplierRow(id='s-bloom', name='Bloom')
ROSES = ProductRow(id='p-roses', description='Roses', image_hash='a' * 64, last_price=Decimal('10.00'))
LILIES = ProductRow(id='p-lilies', description='Lilies', image_hash='b' * 64)


def row(log_id, status='ordered', product='p-roses', supplier='s-acme', ordered=None, dispatched=None,
        picked=None, received=None, price=None, day=date(2024, 3, 5), history=(), created=1):
    return LogRow(
        id=log_id, product_id=product, supplier_id=supplier, date=day, status=status,
        ordered_qty=ordered or {}, dispatched_qty=dispatched or {}, picked_qty=picked or {},
        received_qty=received or {}, price=price, history=history,
        created_at=datetime(2024, 3, 5, 8, created, tzinfo=dt_timezone.utc),
    )


def snapshot(*logs):
    return StoreSnapshot(suppliers=(ACME, BLOOM), products=(ROSES, LILIES), logs=tuple(logs))


class OrdersSummaryTest(SimpleTestCase):

    def test_grouped_and_valued(self):
        result = summaries.orders_by_supplier(snapshot(
            row('l1', ordered={'S': 2}),
            row('l2', ordered={'Total': 1}, product='p-lilies', price=Decimal('50.00')),
            row('l3', ordered={'Total': 4}, product='p-lilies', supplier='s-bloom', price=Decimal('1.00')),
            row('l4', status='dispatched', ordered={'Total': 9}),
        ))

        self.assertEqual([g['supplier_name'] for g in result], ['Acme', 'Bloom'])
        acme = result[0]
        self.assertEqual(acme['total_quantity'], 3)
        # Roses fall back to the remembered price
        self.assertEqual(acme['total_amount'], Decimal('70.00'))

    def test_missing_supplier_is_unassigned(self):
        result = summaries.orders_by_supplier(snapshot(row('l1', supplier='gone', ordered={'S': 1})))
        self.assertEqual(result[0]['supplier_name'], 'Unassigned')
        self.assertIsNone(result[0]['supplier_id'])

    def test_missing_product_is_tolerated(self):
        result = summaries.orders_by_supplier(snapshot(row('l1', product=None, ordered={'S': 1})))
        self.assertEqual(result[0]['items'][0]['description'], 'Unknown product')
        self.assertEqual(result[0]['items'][0]['amount'], Decimal('0.00'))


class PickupQueueTest(SimpleTestCase):

    def test_same_photo_lines_are_combined(self):
        result = summaries.pickup_queue(snapshot(
            row('l1', ordered={'S': 3}),
            row('l2', ordered={'S': 2, 'M': 1}, dispatched={'S': 1}),
            row('l3', status='dispatched', ordered={'S': 5}, dispatched={'S': 5}),
        ))

        self.assertEqual(len(result), 1)
        line = result[0]['products'][0]
        self.assertEqual(line['log_ids'], ['l1', 'l2'])
        self.assertEqual(line['pending'], {'S': 4, 'M': 1})
        self.assertEqual(result[0]['pending_total'], 5)


class IncomingSummaryTest(SimpleTestCase):

    def test_valued_at_picked(self):
        result = summaries.incoming_by_supplier(snapshot(
            row('l1', status='dispatched', ordered={'S': 3}, picked={'S': 3}, dispatched={'S': 3},
                supplier='gone'),
        ))
        self.assertEqual(result[0]['supplier_name'], 'Unknown')
        self.assertEqual(result[0]['total_quantity'], 3)
        self.assertEqual(result[0]['total_amount'], Decimal('30.00'))


@override_settings(TIME_ZONE='UTC')
class ReceivedHistoryTest(SimpleTestCase):

    def _received(self, log_id, day, when):
        stamp = int(datetime(*when, tzinfo=dt_timezone.utc).timestamp() * 1000)
        return row(
            log_id, status='received_full', ordered={'S': 2}, picked={'S': 2}, dispatched={'S': 2},
            received={'S': 2}, day=day, history=({'action': 'received', 'timestamp': stamp},),
        )

    def test_grouped_by_arrival_day_newest_first(self):
        result = summaries.received_history(snapshot(
            self._received('l1', date(2024, 3, 1), (2024, 3, 2, 9, 0)),
            self._received('l2', date(2024, 3, 1), (2024, 3, 4, 9, 0)),
        ))

        dates = [bucket['date'] for bucket in result[0]['dates']]
        self.assertEqual(dates, [date(2024, 3, 4), date(2024, 3, 2)])

    def test_date_range(self):
        result = summaries.received_history(snapshot(
            self._received('l1', date(2024, 3, 1), (2024, 3, 2, 9, 0)),
            self._received('l2', date(2024, 3, 1), (2024, 3, 4, 9, 0)),
        ), start=date(2024, 3, 3))

        self.assertEqual(len(result[0]['dates']), 1)
        self.assertEqual(result[0]['dates'][0]['total_received'], 2)

    def test_falls_back_to_log_date(self):
        log = row('l1', status='received_partial', received={'S': 1}, day=date(2024, 2, 1))
        self.assertEqual(summaries.received_date(log), date(2024, 2, 1))


class BillingGroupsTest(SimpleTestCase):

    def test_grouped_by_supplier_and_date(self):
        result = summaries.billing_groups(snapshot(
            row('l1', status='received_full', picked={'S': 2}, received={'S': 2}),
            row('l2', status='received_partial', picked={'S': 4}, received={'S': 3}, product='p-lilies',
                price=Decimal('5.00')),
            row('l3', status='received_full', picked={'S': 1}, received={'S': 1}, day=date(2024, 3, 6)),
            row('l4', status='ordered', ordered={'S': 1}),
        ))

        self.assertEqual(len(result), 2)
        self.assertEqual(result[0]['date'], date(2024, 3, 5))
        self.assertEqual(result[0]['total_received'], 5)
        self.assertEqual(result[0]['total_amount'], Decimal('35.00'))


class DuplicateDetectionTest(SimpleTestCase):

    def test_groups_by_product_and_supplier(self):
        logs = (
            row('l2', ordered={'S': 1}, created=5),
            row('l1', ordered={'S': 2}, created=1),
            row('l3', ordered={'S': 1}, supplier='s-bloom'),
            row('l4', status='received_full', received={'S': 1}),
        )

        groups = find_duplicate_groups(logs)

        self.assertEqual(len(groups), 1)
        self.assertEqual([log.id for log in groups[0]], ['l1', 'l2'])

    def test_merge_candidates_summary(self):
        result = summaries.merge_candidates(snapshot(
            row('l1', ordered={'Total': 3}, created=1),
            row('l2', ordered={'Total': 5}, created=2),
        ))

        self.assertEqual(result[0]['total_quantity'], 8)
        self.assertEqual(result[0]['supplier_name'], 'Acme')
