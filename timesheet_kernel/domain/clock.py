"""
Clock -- injectable source of "now".

Responsibility:
    Services stamp ``created_at``, ``updated_at``, ``acted_at`` and contract
    windows from a Clock handed to them, never from ``datetime.now()``, so
    tests can pin and step time.

Architecture position:
    Kernel > Domain.  SystemClock is the only place the kernel reads the
    wall clock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """``now()`` is always timezone-aware UTC; ``today()`` is its date."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock that only moves when told to.

    Raises:
        ValueError: If given a naive datetime.
    """

    DEFAULT_START = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: datetime | None = None):
        self._current = self._checked(start or self.DEFAULT_START)

    @staticmethod
    def _checked(moment: datetime) -> datetime:
        if moment.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        return moment

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        self._current = self._checked(moment)

    def advance(self, seconds: float | timedelta = 1) -> datetime:
        """Move forward and return the new time."""
        step = seconds if isinstance(seconds, timedelta) else timedelta(seconds=seconds)
        self._current += step
        return self._current

    def tick(self) -> datetime:
        return self.advance(1)
