"""
Module: timesheet_kernel.db.base
Responsibility: Declarative base and shared column types for every ORM model.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    must not import models/, services/, selectors/ or domain/.

Invariants enforced:
    - Every row has a uuid4 primary key, stored as its canonical 36-character
      string so PostgreSQL and SQLite schemas are identical.
    - Hours are Numeric(10, 2), never float.
    - Timestamps are timezone-aware.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID column stored as String(36).

    Bind values may be UUIDs or UUID strings in any accepted spelling
    (upper case, braces, no hyphens); they are written in canonical form
    so lookups by a route parameter match.  Loaded values are UUIDs.

    Raises:
        ValueError: On bind, if a string is not a UUID.
    """

    impl = String(36)
    cache_ok = True

    @property
    def python_type(self):
        return PyUUID

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, PyUUID):
            value = PyUUID(str(value))
        return str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    """Declarative base: uuid4 ``id`` plus the kernel's type annotation map."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(10, 2),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TimestampedBase(Base):
    """
    Abstract base adding ``created_at`` / ``updated_at``.

    Services stamp both from their injected Clock; the server defaults only
    cover rows written outside the services (fixtures, backfills).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


UUID = PyUUID
