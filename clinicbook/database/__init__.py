"""
Database layer: declarative base and async engine helpers.
"""

from clinicbook.database.async_db import (
    create_async_database_engine,
    create_session_factory,
    get_async_database_url,
)
from clinicbook.database.base import Base, TimestampMixin

__all__ = [
    "Base",
    "TimestampMixin",
    "create_async_database_engine",
    "create_session_factory",
    "get_async_database_url",
]
