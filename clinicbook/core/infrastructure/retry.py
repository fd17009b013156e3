"""
Conflict retries.

An operation attempt that loses a concurrency race (lock wait timed out,
stale optimistic version, database serialization failure) raises
ConcurrencyException and is re-run from scratch after a short exponential
backoff. Every other exception, business errors included, goes straight
through.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

from clinicbook.core.domain.exceptions import ConcurrencyException

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, Exception, float], None]


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    initial_delay: float = 0.05
    max_delay: float = 1.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1
    retryable_exceptions: tuple[type[Exception], ...] = (ConcurrencyException,)


@dataclass
class RetryStats:
    total_attempts: int = 0
    successful_attempts: int = 0
    failed_attempts: int = 0
    retries: int = 0
    total_delay_seconds: float = 0.0
    last_exception: Exception | None = None


class Retryer:
    """
    Bounded re-execution of operations that hit a concurrency conflict.

    Once the attempts run out the last ConcurrencyException propagates
    unchanged, so the caller reports a ``conflict`` error.

    Example:
        ```python
        retryer = Retryer.from_settings(settings)
        appointment = await retryer.execute(self._create_once, request)
        ```
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.05,
        max_delay: float = 1.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        retryable_exceptions: tuple[type[Exception], ...] | None = None,
        on_retry: OnRetry | None = None,
    ):
        """
        Args:
            max_attempts: Attempts including the first one (at least 1)
            initial_delay: Seconds to wait before the first retry
            max_delay: Cap for any single wait
            exponential_base: Growth factor of the wait between retries
            jitter: Spread waits by +/- ``jitter_factor`` to avoid lockstep
            retryable_exceptions: Exception types that trigger a retry
            on_retry: Called with (attempt, error, delay) before each wait
        """
        self.config = RetryConfig(
            max_attempts=max(1, max_attempts),
            initial_delay=initial_delay,
            max_delay=max_delay,
            exponential_base=exponential_base,
            jitter=jitter,
            retryable_exceptions=retryable_exceptions or (ConcurrencyException,),
        )
        self.on_retry = on_retry
        self.stats = RetryStats()

    @classmethod
    def from_settings(cls, settings: Any) -> "Retryer":
        return cls(
            max_attempts=settings.CONFLICT_RETRY_ATTEMPTS,
            initial_delay=settings.CONFLICT_RETRY_INITIAL_DELAY,
            max_delay=settings.CONFLICT_RETRY_MAX_DELAY,
        )

    def _calculate_delay(self, attempt: int) -> float:
        config = self.config
        delay = min(config.initial_delay * config.exponential_base ** (attempt - 1), config.max_delay)
        if config.jitter:
            spread = delay * config.jitter_factor
            delay += random.uniform(-spread, spread)
        return max(0.0, delay)

    async def execute(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``func(*args, **kwargs)``, re-running it on retryable errors."""
        attempt = 0
        while True:
            attempt += 1
            self.stats.total_attempts += 1
            try:
                result = await func(*args, **kwargs)
            except self.config.retryable_exceptions as e:
                self.stats.last_exception = e
                if attempt >= self.config.max_attempts:
                    self.stats.failed_attempts += 1
                    logger.warning(f"Giving up after {attempt} attempt(s): {e}")
                    raise
                error = e
                delay = self._calculate_delay(attempt)
            except Exception as e:
                self.stats.last_exception = e
                self.stats.failed_attempts += 1
                raise
            else:
                self.stats.successful_attempts += 1
                return result

            self.stats.retries += 1
            self.stats.total_delay_seconds += delay
            logger.info(f"Attempt {attempt}/{self.config.max_attempts} hit a conflict, retrying in {delay:.3f}s")
            if self.on_retry:
                self.on_retry(attempt, error, delay)
            await asyncio.sleep(delay)

    def __call__(self, func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        """Use the retryer as a decorator."""

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await self.execute(func, *args, **kwargs)

        return wrapper
