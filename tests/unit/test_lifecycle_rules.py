"""
Unit tests for the pure daily log rules
Quantity maps, status derivation, pickup planning and merge helpers
"""

from datetime import date, datetime, timezone as dt_timezone

from django.test import SimpleTestCase

from marketlens_api.exceptions import ValidationError
from procurement import lifecycle
from procurement.merging import merge_quantities, merge_details
from procurement.snapshot import LogRow


def make_log(status='ordered', ordered=None, picked=None, dispatched=None, received=None):
    return LogRow(
        id='log-1', product_id='p-1', supplier_id='s-1', date=date(2024, 3, 5), status=status,
        ordered_qty=ordered or {}, picked_qty=picked or {},
        dispatched_qty=dispatched or {}, received_qty=received or {},
    )


class QuantityMapTest(SimpleTestCase):

    def test_normalize_trims_and_sums(self):
        self.assertEqual(lifecycle.normalize({' S ': '2', 'S': 1, 'M': 0}), {'S': 3, 'M': 0})

    def test_normalize_unsized_folds_into_total(self):
        self.assertEqual(lifecycle.normalize({'S': 2, 'M': 3}, has_sizes=False), {'Total': 5})

    def test_normalize_rejects_bad_values(self):
        for bad in [{'S': -1}, {'S': 1.5}, {'S': 'two'}, {'S': True}, {'': 1}, ['S']]:
            with self.assertRaises(ValidationError, msg=bad):
                lifecycle.normalize(bad)

    def test_add_and_subtract(self):
        self.assertEqual(lifecycle.add({'S': 5}, {'S': 2, 'M': 1}), {'S': 7, 'M': 1})
        self.assertEqual(lifecycle.subtract({'S': 5, 'M': 1}, {'S': 2}), {'S': 3, 'M': 1})

    def test_format_breakdown(self):
        self.assertEqual(lifecycle.format_breakdown({'Total': 8}), '8')
        self.assertEqual(lifecycle.format_breakdown({'S': 7, 'M': 1}), 'S:7, M:1')


class StatusDerivationTest(SimpleTestCase):

    def test_ordered(self):
        self.assertEqual(lifecycle.derive_status(make_log(ordered={'S': 3})), 'ordered')

    def test_dispatched_when_everything_went_out(self):
        log = make_log(ordered={'S': 3}, picked={'S': 3}, dispatched={'S': 3})
        self.assertEqual(lifecycle.derive_status(log), 'dispatched')

    def test_received_is_judged_against_picked(self):
        picked = {'S': 7, 'M': 1}
        full = make_log(ordered={'S': 10, 'M': 3}, picked=picked, dispatched=picked, received={'S': 7, 'M': 1})
        short = make_log(ordered={'S': 10, 'M': 3}, picked=picked, dispatched=picked, received={'S': 6})
        self.assertEqual(lifecycle.derive_status(full), 'received_full')
        self.assertEqual(lifecycle.derive_status(short), 'received_partial')

    def test_active_for_pickup(self):
        self.assertTrue(lifecycle.is_active_for_pickup(make_log(ordered={'S': 3})))
        self.assertFalse(lifecycle.is_active_for_pickup(make_log(status='dispatched', ordered={'S': 3})))
        self.assertFalse(lifecycle.is_active_for_pickup(make_log(ordered={'S': 3}, dispatched={'S': 3})))

    def test_pending_quantities(self):
        log = make_log(ordered={'S': 3, 'M': 1}, dispatched={'S': 1, 'M': 1})
        self.assertEqual(lifecycle.pending_quantities(log), {'S': 2})


class PickupPlanTest(SimpleTestCase):

    def test_visited_zero(self):
        plan = lifecycle.plan_pickup({'S': 3}, {'S': 0})
        self.assertEqual(plan.kind, lifecycle.PLAN_VISITED_ZERO)

    def test_full(self):
        plan = lifecycle.plan_pickup({'S': 3, 'M': 1}, {'S': 3, 'M': 1})
        self.assertEqual(plan.kind, lifecycle.PLAN_FULL)
        self.assertEqual(plan.dispatched_total, 4)

    def test_split_conserves_every_size(self):
        ordered = {'S': 7, 'M': 3, 'L': 2}
        plan = lifecycle.plan_pickup(ordered, {'S': 7, 'M': 1, 'L': 0})

        self.assertEqual(plan.kind, lifecycle.PLAN_SPLIT)
        self.assertEqual(plan.dispatched, {'S': 7, 'M': 1})
        for key, value in ordered.items():
            self.assertEqual(plan.dispatched.get(key, 0) + plan.remaining.get(key, 0), value)

    def test_more_than_ordered(self):
        with self.assertRaises(ValidationError):
            lifecycle.plan_pickup({'S': 3}, {'S': 4})

    def test_unknown_size(self):
        with self.assertRaises(ValidationError):
            lifecycle.plan_pickup({'S': 3}, {'XL': 1})


class HistoryEntryTest(SimpleTestCase):

    def test_entry_fields(self):
        now = datetime(2024, 3, 5, 10, 0, tzinfo=dt_timezone.utc)
        entry = lifecycle.history_entry('received', details='Received 8', quantity=8, now=now)
        self.assertEqual(entry, {
            'action': 'received',
            'timestamp': 1709632800000,
            'details': 'Received 8',
            'quantity': 8,
        })


class MergeHelperTest(SimpleTestCase):

    def test_unsized_merge(self):
        self.assertEqual(merge_quantities({'Total': 5}, {'Total': 3}, False), {'Total': 8})

    def test_sized_merge_keeps_keys(self):
        self.assertEqual(merge_quantities({'S': 1}, {'S': 2, 'M': 1}, True), {'S': 3, 'M': 1})

    def test_mixed_merge_keeps_total_bucket(self):
        self.assertEqual(merge_quantities({'Total': 5}, {'S': 2}, True), {'Total': 5, 'S': 2})

    def test_merge_details(self):
        self.assertEqual(
            merge_details(date(2024, 3, 5), date(2024, 3, 5))[0],
            'Merged duplicate from same date (5 Mar 24)'
        )
        summary, details = merge_details(date(2024, 3, 4), date(2024, 3, 5))
        self.assertEqual(summary, 'Merged entry from 4 Mar 24 into 5 Mar 24')
        self.assertIn('(Source Date: 4 Mar 24, Target Date: 5 Mar 24)', details)
