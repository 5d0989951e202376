"""
Domain errors raised by the Market Lens services.

Services raise these unchanged; the API views turn them into
``{'error': ..., 'message': ...}`` responses using ``error_response``.
"""

from rest_framework import status
from rest_framework.response import Response


class MarketLensError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = 'Request failed'

    def __init__(self, message=None):
        self.message = message or self.error
        super().__init__(self.message)


class NotFoundError(MarketLensError):
    status_code = status.HTTP_404_NOT_FOUND
    error = 'Not found'


class LogNotFoundError(NotFoundError):
    error = 'Daily log not found'


class SupplierNotFoundError(NotFoundError):
    error = 'Supplier not found'


class ProductNotFoundError(NotFoundError):
    error = 'Product not found'


class BillingNotFoundError(NotFoundError):
    error = 'Billing entry not found'


class PurchaseOrderNotFoundError(NotFoundError):
    error = 'Purchase order not found'


class StoreNotFoundError(NotFoundError):
    error = 'Store configuration not found'


class InvalidStateError(MarketLensError):
    status_code = status.HTTP_409_CONFLICT
    error = 'Invalid state'


class InvalidMergeError(MarketLensError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = 'Invalid merge'


class ValidationError(MarketLensError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = 'Invalid input data'


class ConcurrentModificationError(MarketLensError):
    status_code = status.HTTP_409_CONFLICT
    error = 'Concurrent modification'

    def __init__(self, message=None, expected_version=None, actual_version=None):
        self.expected_version = expected_version
        self.actual_version = actual_version
        if message is None and expected_version is not None:
            message = (
                f'Record changed since it was read '
                f'(expected version {expected_version}, found {actual_version})'
            )
        super().__init__(message)


class PersistenceError(MarketLensError):
    """The store rejected a read or write. ``code`` tells callers why."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = 'Persistence failure'
    code = 'unknown'


class PermissionDeniedError(PersistenceError):
    status_code = status.HTTP_403_FORBIDDEN
    error = 'Permission denied'
    code = 'permission_denied'


class UnavailableError(PersistenceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = 'Store unavailable'
    code = 'unavailable'


class ExternalLookupError(MarketLensError):
    """Order lookup against a storefront failed."""

    NOT_FOUND = 'not_found'
    AUTH_INVALID = 'auth_invalid'
    TIMEOUT = 'timeout'
    RATE_LIMITED = 'rate_limited'
    INVALID_CONFIG = 'invalid_config'
    UNAVAILABLE = 'unavailable'

    STATUS_BY_REASON = {
        NOT_FOUND: status.HTTP_404_NOT_FOUND,
        AUTH_INVALID: status.HTTP_401_UNAUTHORIZED,
        TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
        RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
        INVALID_CONFIG: status.HTTP_400_BAD_REQUEST,
        UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    }

    error = 'Order lookup failed'

    def __init__(self, reason, message=None):
        self.reason = reason
        self.status_code = self.STATUS_BY_REASON.get(reason, status.HTTP_502_BAD_GATEWAY)
        super().__init__(message)


def error_response(exc):
    """Build the API error payload for a domain error."""
    payload = {
        'error': exc.error,
        'message': exc.message,
    }
    if isinstance(exc, ExternalLookupError):
        payload['reason'] = exc.reason
    if isinstance(exc, PersistenceError):
        payload['code'] = exc.code
    if isinstance(exc, ConcurrentModificationError) and exc.expected_version is not None:
        payload['expected_version'] = exc.expected_version
        payload['actual_version'] = exc.actual_version
    return Response(payload, status=exc.status_code)


def invalid_input_response(errors, message='Please check your input and try again'):
    """400 response for serializer validation failures."""
    return Response(
        {
            'error': 'Invalid input data',
            'message': message,
            'details': errors,
        },
        status=status.HTTP_400_BAD_REQUEST
    )
