"""Domain exceptions raised by the service layer.

Routers translate these into HTTP responses; see ``http_status_for``.
"""
from fastapi import status


class KuluError(Exception):
    """Base exception for all service-layer errors."""


class NotFoundError(KuluError):
    """Raised when a referenced record does not exist."""


class PermissionDeniedError(KuluError):
    """Raised when an authenticated user may not touch a record."""


class InvalidOperationError(KuluError):
    """Raised when a record is in the wrong state for the operation."""


class PersistenceError(KuluError):
    """Raised when an atomic unit of work fails and is rolled back."""


_STATUS_CODES = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    InvalidOperationError: status.HTTP_400_BAD_REQUEST,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_status_for(error: KuluError) -> int:
    for error_type, code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
