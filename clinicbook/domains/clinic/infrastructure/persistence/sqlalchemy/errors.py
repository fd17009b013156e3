"""
Translation of SQLAlchemy errors into domain exceptions.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from clinicbook.core.domain import (
    ConcurrencyException,
    DuplicateEntityException,
    ReferentialIntegrityException,
    UnavailableException,
    ValidationException,
)

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}
_FOREIGN_KEY_VIOLATION = "23503"
_CHECK_VIOLATION = "23514"


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    cause = getattr(orig, "__cause__", None)
    return getattr(cause, "sqlstate", None)


@contextmanager
def translate_errors(operation: str, entity_type: str = "Entity") -> Iterator[None]:
    """
    Re-raise database errors as domain exceptions.

    IntegrityError becomes Duplicate (unique key) or InvalidState (foreign
    key restrict); serialization failures and stale rows become Conflict;
    connection problems become Unavailable.
    """
    try:
        yield
    except StaleDataError as e:
        raise ConcurrencyException(resource=entity_type, message=f"{operation}: {e}") from e
    except IntegrityError as e:
        state = _sqlstate(e)
        logger.warning(f"Integrity error during {operation}: {e.orig}")
        if state == _FOREIGN_KEY_VIOLATION:
            raise ReferentialIntegrityException(entity_type, None, "dependent rows") from e
        if state == _CHECK_VIOLATION:
            raise ValidationException(f"{entity_type} violates a check constraint: {e.orig}") from e
        raise DuplicateEntityException(entity_type, "unique key", str(e.orig)) from e
    except (OperationalError, InterfaceError, DBAPIError) as e:
        if _sqlstate(e) in _RETRYABLE_SQLSTATES:
            raise ConcurrencyException(resource=entity_type, message=f"{operation}: serialization failure") from e
        if isinstance(e, (OperationalError, InterfaceError)) or e.connection_invalidated:
            logger.error(f"Database unavailable during {operation}: {e}")
            raise UnavailableException(
                service="database",
                message=f"Database unavailable during {operation}",
                original_error=e,
            ) from e
        raise
