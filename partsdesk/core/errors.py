"""Application error taxonomy and the store-error boundary.

Route handlers raise (or let bubble) one of the AppError subclasses; the
API helpers turn them into JSON responses with the matching status code.

Raw psycopg2 errors are classified once, here, into a small closed set of
StoreErrorKind values. Nothing else in the codebase looks at SQLSTATE codes.
"""

from enum import Enum
from typing import Optional, Dict, Any

import psycopg2
import psycopg2.errors


class AppError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {'success': False, 'error': self.message}


class ValidationError(AppError):
    """Malformed or missing input, detected before any mutation."""
    status_code = 400


class AuthenticationError(AppError):
    """Missing or invalid credential."""
    status_code = 401


class AuthorizationError(AppError):
    """Valid identity, insufficient role or tab permission."""
    status_code = 403

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class NotFoundError(AppError):
    """Referenced entity is absent."""
    status_code = 404


class ConflictError(AppError):
    """Uniqueness violation, referenced row on delete, or cross-entity mismatch.

    `current` carries the server-side state of the contended row so the
    client can reconcile.
    """
    status_code = 409

    def __init__(self, message: str, current: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.current = current

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.current is not None:
            body['current'] = self.current
        return body


class InternalError(AppError):
    status_code = 500


# ============== Store error boundary ==============

class StoreErrorKind(Enum):
    DUPLICATE_KEY = 'duplicate_key'
    FOREIGN_KEY = 'foreign_key'
    LOCK_TIMEOUT = 'lock_timeout'
    DEADLOCK = 'deadlock'
    OTHER = 'other'


_SQLSTATE_KINDS = {
    '23505': StoreErrorKind.DUPLICATE_KEY,   # unique_violation
    '23503': StoreErrorKind.FOREIGN_KEY,     # foreign_key_violation
    '55P03': StoreErrorKind.LOCK_TIMEOUT,    # lock_not_available (lock_timeout)
    '40P01': StoreErrorKind.DEADLOCK,        # deadlock_detected
}

# Errors the audit trail swallows instead of failing the business operation
CONTENTION_KINDS = frozenset({StoreErrorKind.LOCK_TIMEOUT, StoreErrorKind.DEADLOCK})


def classify_store_error(exc: BaseException) -> StoreErrorKind:
    """Map a database exception to a StoreErrorKind.

    Non-database exceptions are always OTHER.
    """
    if isinstance(exc, psycopg2.errors.UniqueViolation):
        return StoreErrorKind.DUPLICATE_KEY
    if isinstance(exc, psycopg2.errors.ForeignKeyViolation):
        return StoreErrorKind.FOREIGN_KEY
    if isinstance(exc, psycopg2.errors.LockNotAvailable):
        return StoreErrorKind.LOCK_TIMEOUT
    if isinstance(exc, psycopg2.errors.DeadlockDetected):
        return StoreErrorKind.DEADLOCK
    if isinstance(exc, psycopg2.Error):
        return _SQLSTATE_KINDS.get(getattr(exc, 'pgcode', None), StoreErrorKind.OTHER)
    return StoreErrorKind.OTHER


def is_contention_error(exc: BaseException) -> bool:
    return classify_store_error(exc) in CONTENTION_KINDS
