"""
Domain events and the in-process publisher.

Aggregates record events while a service mutates them; the service hands
them to the publisher only after its transaction has committed, so a
rolled back attempt never announces anything.
"""

import logging
from abc import ABC
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Coroutine
from uuid import UUID, uuid4

logger = logging.getLogger(__name__)


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class DomainEvent(ABC):
    """
    Immutable record of something that happened to a clinic aggregate.

    Example:
        ```python
        @dataclass(frozen=True)
        class InvoiceGenerated(DomainEvent):
            invoice_id: int = 0
            total_amount: Decimal = Decimal("0.00")
        ```
    """

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    version: int = field(default=1)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-friendly representation including ``event_type``."""
        data = {f.name: _serialize(getattr(self, f.name)) for f in fields(self)}
        data["event_type"] = self.event_type
        return data


EventHandler = Callable[[DomainEvent], Coroutine[Any, Any, None]]


class DomainEventPublisher:
    """
    Dispatches committed events to async handlers by event class name.

    Handlers run in subscription order. The transaction behind an event has
    already committed, so a handler error is logged with its traceback and
    the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        self._handlers.setdefault(event_type.__name__, []).append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type.__name__, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: DomainEvent) -> None:
        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                await handler(event)
            except Exception:
                logger.exception(f"Handler {getattr(handler, '__name__', handler)!r} failed for {event.event_type}")

    async def publish_all(self, events: list[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)
