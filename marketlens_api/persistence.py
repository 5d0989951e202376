"""
Transactional write access shared by the service layer.

Every mutating operation runs inside one ``atomic_batch()`` so that either all
of its row writes land or none do.
"""

from contextlib import contextmanager
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction, DatabaseError, OperationalError

from .exceptions import PersistenceError, PermissionDeniedError, UnavailableError, ConcurrentModificationError

logger = logging.getLogger(__name__)

# MySQL access errors: db access, login, table, column and privilege denied
ACCESS_DENIED_CODES = {1044, 1045, 1142, 1143, 1227}
ACCESS_DENIED_MESSAGES = ('permission denied', 'access denied', 'readonly database')


def is_access_denied(error) -> bool:
    """True when the database refused the statement for lack of rights."""
    if error.args and error.args[0] in ACCESS_DENIED_CODES:
        return True
    text = str(error).lower()
    return any(message in text for message in ACCESS_DENIED_MESSAGES)


@contextmanager
def atomic_batch():
    """
    Run the enclosed block in a single database transaction.

    Database failures surface as ``PersistenceError`` subclasses: refused
    access becomes ``PermissionDeniedError``, other ``OperationalError``s
    ``UnavailableError``. Domain errors raised inside the block roll the
    transaction back and propagate unchanged.
    """
    try:
        with transaction.atomic():
            yield
    except DatabaseError as e:
        if is_access_denied(e):
            logger.error(f"Store refused access during atomic batch: {e}")
            raise PermissionDeniedError(str(e)) from e
        if not isinstance(e, OperationalError):
            logger.error(f"Atomic batch failed: {e}")
            raise PersistenceError(str(e)) from e
        logger.error(f"Store unavailable during atomic batch: {e}")
        raise UnavailableError(str(e)) from e


def lock_row(queryset, pk, not_found_error):
    """Fetch one row for update, raising ``not_found_error`` when missing."""
    try:
        return queryset.select_for_update().get(pk=pk)
    except (queryset.model.DoesNotExist, DjangoValidationError, ValueError) as e:
        raise not_found_error(f"{not_found_error.error}: {pk}") from e


def check_version(instance, expected_version):
    """Fail when a caller-supplied version token no longer matches the row."""
    if expected_version is None:
        return
    if int(expected_version) != instance.version:
        raise ConcurrentModificationError(
            expected_version=int(expected_version),
            actual_version=instance.version,
        )
