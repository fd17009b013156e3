"""
Clinic domain exceptions.

Each exception class carries an ErrorKind, a machine code and a details
dict. Application services turn them into OperationResult failures; the
calling layer maps the kind onto its own transport (HTTP status, exit code).
"""

from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    """Error taxonomy shared by every clinic operation."""

    NOT_FOUND = "not_found"
    SCHEDULING_CONFLICT = "scheduling_conflict"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_STATE = "invalid_state"
    INVALID_AMOUNT = "invalid_amount"
    MISMATCH = "mismatch"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"
    INVALID_INPUT = "invalid_input"
    DUPLICATE = "duplicate"
    UNAUTHORIZED = "unauthorized"


class DomainException(Exception):
    """Root of the hierarchy; subclasses pin ``kind`` and usually ``code``."""

    kind: ClassVar[ErrorKind] = ErrorKind.INVALID_STATE

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serializable form: error code, kind, message and details."""
        return {
            "error": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(DomainException):
    """Malformed arguments: end before start, quantity below one, blank names."""

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class EntityNotFoundException(DomainException):
    """A referenced id does not resolve."""

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        message: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        msg = message or f"{entity_type} with ID {entity_id} not found"
        super().__init__(
            msg,
            "ENTITY_NOT_FOUND",
            {"entity_type": entity_type, "entity_id": str(entity_id)},
        )


class SchedulingConflictException(DomainException):
    """Raised when a requested interval overlaps a committed reservation."""

    kind = ErrorKind.SCHEDULING_CONFLICT

    def __init__(
        self,
        subject: str,
        requested: str,
        existing: str | None = None,
        holder_id: int | None = None,
        message: str | None = None,
    ):
        self.subject = subject
        self.requested = requested
        self.existing = existing
        self.holder_id = holder_id
        msg = message or f"{subject} is not available for {requested}"
        details: dict[str, Any] = {"subject": subject, "requested": requested}
        if existing:
            details["existing"] = existing
        if holder_id is not None:
            details["holder_id"] = holder_id
        super().__init__(msg, "SCHEDULING_CONFLICT", details)


class InvalidTransitionException(DomainException):
    """Raised when a status change is not allowed by the state machine."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, entity_type: str, current_state: str, requested_state: str, message: str | None = None):
        self.entity_type = entity_type
        self.current_state = current_state
        self.requested_state = requested_state
        msg = message or f"Cannot move {entity_type} from '{current_state}' to '{requested_state}'"
        super().__init__(
            msg,
            "INVALID_TRANSITION",
            {
                "entity_type": entity_type,
                "current_state": current_state,
                "requested_state": requested_state,
            },
        )


class InvalidStateException(DomainException):
    """Raised when an operation is not valid given the aggregate's current state."""

    kind = ErrorKind.INVALID_STATE

    def __init__(self, operation: str, current_state: str, message: str | None = None, code: str | None = None):
        self.operation = operation
        self.current_state = current_state
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(
            msg,
            code or "INVALID_STATE",
            {"operation": operation, "current_state": current_state},
        )


class ReferentialIntegrityException(InvalidStateException):
    """Raised when a delete is restricted by rows that still reference the entity."""

    def __init__(self, entity_type: str, entity_id: Any, referenced_by: str, count: int = 0):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.referenced_by = referenced_by
        self.count = count
        super().__init__(
            operation="delete",
            current_state=f"referenced by {referenced_by}",
            message=f"{entity_type} {entity_id} is still referenced by {count} {referenced_by} row(s)",
            code="REFERENTIAL_RESTRICT",
        )
        self.details.update(
            {
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "referenced_by": referenced_by,
                "count": count,
            }
        )


class InvalidAmountException(DomainException):
    """Raised when a payment amount is not strictly positive."""

    kind = ErrorKind.INVALID_AMOUNT

    def __init__(self, amount: Any, message: str | None = None):
        self.amount = amount
        super().__init__(
            message or f"Payment amount must be greater than zero, got {amount}",
            "INVALID_AMOUNT",
            {"amount": str(amount)},
        )


class MismatchException(DomainException):
    """Raised when a cross-entity relationship is violated."""

    kind = ErrorKind.MISMATCH

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, "MISMATCH", details)


class ConcurrencyException(DomainException):
    """Raised when a concurrent write race is detected. Callers may retry."""

    kind = ErrorKind.CONFLICT

    def __init__(self, resource: str, message: str | None = None, details: dict[str, Any] | None = None):
        self.resource = resource
        details = details or {}
        details["resource"] = resource
        super().__init__(
            message or f"Concurrent modification detected on {resource}",
            "CONCURRENCY_CONFLICT",
            details,
        )


class UnavailableException(DomainException):
    """Raised when the persistence layer cannot be reached."""

    kind = ErrorKind.UNAVAILABLE

    def __init__(self, service: str, message: str, original_error: Exception | None = None):
        self.service = service
        self.original_error = original_error
        details: dict[str, Any] = {"service": service}
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(message, "SERVICE_UNAVAILABLE", details)


class DuplicateEntityException(DomainException):
    """Raised when attempting to create a duplicate entity."""

    kind = ErrorKind.DUPLICATE

    def __init__(self, entity_type: str, field: str, value: Any):
        self.entity_type = entity_type
        self.field = field
        self.value = value
        super().__init__(
            f"{entity_type} with {field}='{value}' already exists",
            "DUPLICATE_ENTITY",
            {
                "entity_type": entity_type,
                "field": field,
                "value": str(value),
            },
        )


class AuthorizationException(DomainException):
    """Raised when a caller's role is not allowed to perform an operation."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, operation: str, role: str | None = None):
        self.operation = operation
        self.role = role
        msg = f"Not authorized to perform '{operation}'"
        if role:
            msg += f" with role '{role}'"
        super().__init__(
            msg,
            "AUTHORIZATION_ERROR",
            {
                "operation": operation,
                "role": role,
            },
        )
