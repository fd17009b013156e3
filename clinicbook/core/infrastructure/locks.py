"""
Keyed asyncio locks

One ``asyncio.Lock`` per key, created on first use. Several keys are always
acquired in sorted order and every wait is bounded, so two operations that
share keys can neither deadlock nor wait forever.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable

from clinicbook.core.domain.exceptions import ConcurrencyException

logger = logging.getLogger(__name__)


class KeyedLocks:
    """
    Registry of per-key locks.

    Example:
        ```python
        locks = KeyedLocks(timeout=2.0)
        async with locks.hold(("doctor", 1), ("room", 3)):
            ...
        ```
    """

    def __init__(self, timeout: float = 2.0, name: str = "locks"):
        self.timeout = timeout
        self.name = name
        self._locks: dict[Hashable, asyncio.Lock] = {}

    def _get_lock(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """
        Acquire the locks of all keys (deduplicated, in sorted order).

        Raises:
            ConcurrencyException: a lock could not be acquired within the timeout.
        """
        ordered = sorted(set(keys))
        acquired: list[asyncio.Lock] = []
        deadline = time.monotonic() + self.timeout
        try:
            for key in ordered:
                lock = self._get_lock(key)
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=remaining)
                except TimeoutError as e:
                    logger.warning(f"{self.name}: timed out after {self.timeout}s waiting for {key}")
                    raise ConcurrencyException(
                        resource=str(key),
                        message=f"Timed out waiting for lock on {key}",
                        details={"timeout_seconds": self.timeout},
                    ) from e
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
