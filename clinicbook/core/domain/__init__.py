"""
Domain Layer - Core DDD building blocks

This module provides base classes for Domain-Driven Design:
- Entities: Objects with identity and lifecycle
- Value Objects: Immutable objects compared by value
- Events: Domain events for communication
- Exceptions: Domain-specific error handling
"""

from clinicbook.core.domain.entities import (
    AggregateRoot,
    Entity,
)
from clinicbook.core.domain.events import (
    DomainEvent,
    DomainEventPublisher,
)
from clinicbook.core.domain.exceptions import (
    AuthorizationException,
    ConcurrencyException,
    DomainException,
    DuplicateEntityException,
    EntityNotFoundException,
    ErrorKind,
    InvalidAmountException,
    InvalidStateException,
    InvalidTransitionException,
    MismatchException,
    ReferentialIntegrityException,
    SchedulingConflictException,
    UnavailableException,
    ValidationException,
)
from clinicbook.core.domain.value_objects import (
    Email,
    Money,
    StatusEnum,
    ValueObject,
    quantize_money,
    to_decimal,
)

__all__ = [
    # Entities
    "Entity",
    "AggregateRoot",
    # Value Objects
    "ValueObject",
    "Money",
    "Email",
    "StatusEnum",
    "quantize_money",
    "to_decimal",
    # Events
    "DomainEvent",
    "DomainEventPublisher",
    # Exceptions
    "ErrorKind",
    "DomainException",
    "ValidationException",
    "EntityNotFoundException",
    "SchedulingConflictException",
    "InvalidTransitionException",
    "InvalidStateException",
    "ReferentialIntegrityException",
    "InvalidAmountException",
    "MismatchException",
    "ConcurrencyException",
    "UnavailableException",
    "DuplicateEntityException",
    "AuthorizationException",
]
