"""
Core Infrastructure Module

Cross-cutting infrastructure patterns for fault tolerance and concurrency.

Components:
- Retry: bounded retry with exponential backoff for concurrency conflicts
- KeyedLocks: per-key asyncio locks with ordered, time-bounded acquisition
"""

from clinicbook.core.infrastructure.locks import KeyedLocks
from clinicbook.core.infrastructure.retry import (
    Retryer,
    RetryConfig,
    RetryStats,
)

__all__ = [
    "KeyedLocks",
    "Retryer",
    "RetryConfig",
    "RetryStats",
]
