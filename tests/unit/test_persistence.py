"""
Unit tests for the transactional write helpers
Database errors are mapped to domain errors and failed batches leave no trace
"""

from unittest.mock import patch

from django.db import DatabaseError, IntegrityError, OperationalError, ProgrammingError
from django.test import TestCase

from marketlens_api.exceptions import (
    PersistenceError, PermissionDeniedError, UnavailableError, ValidationError,
)
from marketlens_api.persistence import atomic_batch, is_access_denied
from procurement import services
from procurement.models import DailyLog
from suppliers.models import Supplier

HASH_A = 'a1b2' * 16


class AtomicBatchErrorMappingTest(TestCase):
    """Database failures surface as PersistenceError subclasses"""

    def _raise_inside(self, error):
        with atomic_batch():
            raise error

    def test_operational_error_is_unavailable(self):
        with self.assertRaises(UnavailableError) as context:
            self._raise_inside(OperationalError('database is locked'))
        self.assertEqual(context.exception.code, 'unavailable')

    def test_mysql_access_denied_is_permission_denied(self):
        with self.assertRaises(PermissionDeniedError) as context:
            self._raise_inside(OperationalError(1045, "Access denied for user 'shop'@'localhost'"))
        self.assertEqual(context.exception.code, 'permission_denied')
        self.assertEqual(context.exception.status_code, 403)

    def test_table_privilege_error_is_permission_denied(self):
        with self.assertRaises(PermissionDeniedError):
            self._raise_inside(ProgrammingError('permission denied for table procurement_dailylog'))

    def test_readonly_sqlite_is_permission_denied(self):
        with self.assertRaises(PermissionDeniedError):
            self._raise_inside(OperationalError('attempt to write a readonly database'))

    def test_other_database_error_is_generic(self):
        with self.assertRaises(PersistenceError) as context:
            self._raise_inside(IntegrityError('UNIQUE constraint failed'))
        self.assertIs(type(context.exception), PersistenceError)
        self.assertEqual(context.exception.code, 'unknown')

    def test_domain_errors_pass_through(self):
        with self.assertRaises(ValidationError):
            self._raise_inside(ValidationError('bad input'))

    def test_access_denied_detection(self):
        self.assertTrue(is_access_denied(OperationalError(1142, 'INSERT command denied')))
        self.assertFalse(is_access_denied(OperationalError(2006, 'MySQL server has gone away')))

    def test_failed_batch_is_rolled_back(self):
        with self.assertRaises(PersistenceError):
            with atomic_batch():
                Supplier.objects.create(name='Acme')
                raise DatabaseError('disk I/O error')

        self.assertFalse(Supplier.objects.filter(name='Acme').exists())


class SplitPickupAtomicityTest(TestCase):
    """A split pickup writes both logs or neither"""

    def setUp(self):
        self.log = services.create_or_merge_order(HASH_A, {'S': 7, 'M': 3}, has_sizes=True).log

    def test_failed_remainder_save_leaves_log_untouched(self):
        real_save = DailyLog.save

        def save(log, *args, **kwargs):
            if log._state.adding:
                raise DatabaseError('disk I/O error')
            return real_save(log, *args, **kwargs)

        with patch.object(DailyLog, 'save', autospec=True, side_effect=save):
            with self.assertRaises(PersistenceError):
                services.process_pickup(self.log.id, {'S': 7, 'M': 1})

        self.assertEqual(DailyLog.objects.count(), 1)
        log = DailyLog.objects.get(id=self.log.id)
        self.assertEqual(log.ordered_qty, {'S': 7, 'M': 3})
        self.assertEqual(log.dispatched_qty, {})
        self.assertEqual(log.status, 'ordered')
        self.assertEqual(log.version, self.log.version)
        self.assertEqual(len(log.history), len(self.log.history))
