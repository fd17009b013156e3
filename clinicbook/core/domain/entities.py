"""
Entity and aggregate root base classes.

Identity is the store-allocated integer id: two clinic records are the same
record when they are of the same type and carry the same id. Records that
have not been saved yet (``id is None``) are only equal to themselves.
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

TId = TypeVar("TId")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class Entity(ABC, Generic[TId]):
    """
    A persisted clinic record (patient, room, treatment, ...).

    ``created_at`` and ``updated_at`` are timezone-aware UTC timestamps;
    services pass their clock's ``now()`` so tests stay deterministic.
    """

    id: TId | None = field(default=None)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return False
        return self.id is not None and self.id == other.id  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        if self.id is None:
            return id(self)
        return hash((type(self).__name__, self.id))

    def touch(self, at: datetime | None = None) -> None:
        self.updated_at = at or _utcnow()


@dataclass
class AggregateRoot(Entity[TId], Generic[TId]):
    """
    Entry point of a consistency boundary (appointment with its lines,
    invoice with its payments, prescription with its items).

    Carries an optimistic-concurrency ``version`` that repositories compare
    and bump on every update, and buffers the domain events raised by its
    methods until the owning service has committed.

    Example:
        ```python
        invoice.record_payment(Decimal("95.00"))
        await repos.invoices.save(invoice)  # version 0 -> 1
        events = invoice.pull_domain_events()
        ```
    """

    _domain_events: list[Any] = field(default_factory=list, repr=False, compare=False)
    version: int = field(default=0)

    def _record_event(self, event: Any) -> None:
        self._domain_events.append(event)

    def get_domain_events(self) -> list[Any]:
        """Events raised since the last pull, oldest first."""
        return list(self._domain_events)

    def clear_domain_events(self) -> None:
        self._domain_events.clear()

    def pull_domain_events(self) -> list[Any]:
        """Return the buffered events and empty the buffer."""
        events, self._domain_events = self._domain_events, []
        return events

    def increment_version(self) -> None:
        self.version += 1
