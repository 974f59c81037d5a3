"""Database layer - engine, base classes and column types."""

from timesheet_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from timesheet_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
]
