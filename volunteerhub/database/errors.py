"""
Translation of SQLAlchemy failures into the coordination error taxonomy.
"""

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError, StatementError
from sqlalchemy.orm.exc import StaleDataError

from volunteerhub.core.exceptions import ConflictError, CoordinationError, InvalidValue, StorageError

# serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}

UNIQUE_VIOLATION_SQLSTATE = "23505"

SQLITE_BUSY_MESSAGES = ("database is locked", "database table is locked")

SQLITE_UNIQUE_MESSAGE = "unique constraint failed"


def _sqlstate(exc: DBAPIError):
    orig = exc.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _is_unique_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    return SQLITE_UNIQUE_MESSAGE in str(exc.orig).lower()


def translate_db_error(exc: SQLAlchemyError) -> CoordinationError:
    """Map a store exception onto ConflictError, StorageError or InvalidValue."""
    if isinstance(exc, StaleDataError):
        return ConflictError(f"Row changed concurrently: {exc}")

    if isinstance(exc, IntegrityError):
        # Unique constraints are checked before every insert, so a violation at
        # flush time means a concurrent transaction got there first.
        if _is_unique_violation(exc):
            return ConflictError(f"Concurrent write conflict: {exc.orig}")
        # NOT NULL, foreign key and CHECK failures come from the request itself.
        return InvalidValue(f"Rejected by the store: {exc.orig}")

    if isinstance(exc, DBAPIError):
        if exc.connection_invalidated:
            return StorageError(f"Database connection lost: {exc.orig}")
        if _sqlstate(exc) in RETRYABLE_SQLSTATES:
            return ConflictError(f"Transaction conflict: {exc.orig}")
        if isinstance(exc, OperationalError):
            message = str(exc.orig).lower()
            if any(busy in message for busy in SQLITE_BUSY_MESSAGES):
                return ConflictError(f"Database busy: {exc.orig}")
    elif isinstance(exc, StatementError) and isinstance(exc.orig, (TypeError, ValueError)):
        # Parameter could not be bound; the statement never reached the store.
        return InvalidValue(f"Invalid parameter: {exc.orig}")

    return StorageError(f"Storage failure: {exc}")
