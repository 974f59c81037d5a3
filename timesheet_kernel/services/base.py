"""
BaseService -- abstract base for all workflow services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    write-path service.  Services persist with ``session.flush()`` inside
    SAVEPOINTs (``session.begin_nested()``) -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - The caller owns the outer transaction.  A failed write rolls back only
      its own savepoint, so earlier work in the caller's transaction
      survives.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from timesheet_kernel.db.base import Base
from timesheet_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all workflow services.

    Contract:
        Accepts a SQLAlchemy ``Session`` and an optional ``Clock``.  All
        timestamps written by a service come from the clock.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback of the
          outer transaction).
        - Does NOT provide dashboard reads -- those belong in
          ``timesheet_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
