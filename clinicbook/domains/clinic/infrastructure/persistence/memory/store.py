"""
In-memory store and unit of work.

Tables are dicts of id -> entity copy. Stored objects are never mutated in
place (repositories replace them), so a shallow copy of every table is a
complete snapshot. Transactions are serialized: one writer at a time, with
a bounded wait.
"""

import logging
from contextlib import asynccontextmanager
from copy import deepcopy
from typing import Any, AsyncIterator, Callable, TypeVar

from clinicbook.core.infrastructure import KeyedLocks
from clinicbook.domains.clinic.application.ports import ClinicRepositories

logger = logging.getLogger(__name__)

E = TypeVar("E")

TABLES = (
    "specialties",
    "doctors",
    "patients",
    "rooms",
    "treatments",
    "medications",
    "appointments",
    "invoices",
    "payments",
    "prescriptions",
)


class InMemoryStore:
    """Process-local storage backing the in-memory repositories."""

    def __init__(self, lock_timeout: float = 2.0):
        self.tables: dict[str, dict[int, Any]] = {name: {} for name in TABLES}
        self._counters: dict[str, int] = {name: 0 for name in TABLES}
        self._locks = KeyedLocks(timeout=lock_timeout, name="store")

    def next_id(self, table: str) -> int:
        """Allocate the next id; ids are never reused, even after a rollback."""
        self._counters[table] += 1
        return self._counters[table]

    def snapshot(self) -> dict[str, dict[int, Any]]:
        return {name: dict(rows) for name, rows in self.tables.items()}

    def restore(self, snapshot: dict[str, dict[int, Any]]) -> None:
        self.tables = snapshot

    # Row helpers shared by the repositories

    def get(self, table: str, row_id: int | None) -> Any | None:
        if row_id is None:
            return None
        row = self.tables[table].get(row_id)
        return self.load(row) if row is not None else None

    def rows(self, table: str, predicate: Callable[[Any], bool] | None = None) -> list[Any]:
        return [
            self.load(row)
            for _, row in sorted(self.tables[table].items())
            if predicate is None or predicate(row)
        ]

    def put(self, table: str, entity: Any) -> None:
        copy = deepcopy(entity)
        if hasattr(copy, "clear_domain_events"):
            copy.clear_domain_events()
        self.tables[table][entity.id] = copy

    def update(self, table: str, row_id: int, mutate: Callable[[Any], None]) -> None:
        """Copy-on-write update of one stored row."""
        copy = deepcopy(self.tables[table][row_id])
        mutate(copy)
        self.tables[table][row_id] = copy

    def remove(self, table: str, row_id: int) -> bool:
        return self.tables[table].pop(row_id, None) is not None

    @staticmethod
    def load(row: E) -> E:
        return deepcopy(row)

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._locks.hold("store"):
            yield


class InMemoryUnitOfWork:
    """
    Unit of work over an InMemoryStore.

    Leaving the block with an exception restores the snapshot taken when
    the block was entered.
    """

    def __init__(self, store: InMemoryStore, repositories: ClinicRepositories):
        self._store = store
        self._repositories = repositories

    @property
    def store(self) -> InMemoryStore:
        return self._store

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ClinicRepositories]:
        async with self._store.exclusive():
            snapshot = self._store.snapshot()
            try:
                yield self._repositories
            except BaseException:
                self._store.restore(snapshot)
                logger.debug("In-memory transaction rolled back")
                raise
