"""
Test management commands
"""
from io import StringIO

from django.test import TestCase
from django.core.management import call_command

from accounts.models import User
from procurement.models import DailyLog
from products.models import Product


class RecomputeLogStatusesCommandTest(TestCase):
    """Test recompute_log_statuses management command"""

    def setUp(self):
        product = Product.objects.create(image_hash='a1b2' * 16)
        # Fully dispatched quantities but the stored status was never moved on
        self.stale = DailyLog.objects.create(
            product=product, ordered_qty={'Total': 4}, picked_qty={'Total': 4},
            dispatched_qty={'Total': 4}, status='ordered',
            history=[{'action': 'created', 'timestamp': 1}],
        )
        self.fresh = DailyLog.objects.create(product=product, ordered_qty={'Total': 2})
        self.flagged = DailyLog.objects.create(
            product=product, ordered_qty={'Total': 1}, status='discrepancy',
        )

    def test_dry_run_reports_without_changing(self):
        out = StringIO()
        call_command('recompute_log_statuses', '--dry-run', stdout=out)

        output = out.getvalue()
        self.assertIn(f'{self.stale.id}', output)
        self.assertIn('1 stale log(s) found', output)
        self.stale.refresh_from_db()
        self.assertEqual(self.stale.status, 'ordered')
        self.assertEqual(self.stale.version, 1)
        self.assertEqual(len(self.stale.history), 1)

    def test_fixes_stale_status_and_records_it(self):
        out = StringIO()
        call_command('recompute_log_statuses', stdout=out)

        self.assertIn('Fixed 1 stale log(s)', out.getvalue())
        self.stale.refresh_from_db()
        self.assertEqual(self.stale.status, 'dispatched')
        self.assertEqual(self.stale.version, 2)
        self.assertEqual(self.stale.history[-1]['action'], 'status_recomputed')
        self.assertEqual(self.stale.history[-1]['details'], 'Status ordered -> dispatched')

        self.fresh.refresh_from_db()
        self.assertEqual(self.fresh.version, 1)
        self.flagged.refresh_from_db()
        self.assertEqual(self.flagged.status, 'discrepancy')


class SeedUsersCommandTest(TestCase):
    """Test seed_users management command"""

    def test_creates_one_user_per_role(self):
        out = StringIO()
        call_command('seed_users', stdout=out)

        self.assertIn('Seeded 4 new user(s)', out.getvalue())
        self.assertEqual(
            set(User.objects.values_list('role', flat=True)),
            {'admin', 'warehouse', 'market_person', 'accountant'},
        )

    def test_second_run_keeps_existing_users(self):
        call_command('seed_users', stdout=StringIO())
        out = StringIO()
        call_command('seed_users', stdout=out)

        self.assertIn('Seeded 0 new user(s)', out.getvalue())
        self.assertEqual(User.objects.count(), 4)
