"""Database layer - engine, base classes, and column types."""

from budget_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from budget_kernel.db.engine import (
    connect_with_retry,
    create_tables,
    get_engine,
    get_session_factory,
    session_scope,
)
from budget_kernel.db.types import UTCDateTime

__all__ = [
    "get_engine",
    "get_session_factory",
    "connect_with_retry",
    "create_tables",
    "session_scope",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "UTCDateTime",
]
