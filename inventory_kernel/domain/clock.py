"""
Injectable time source.

Services ask a Clock for "today" when they need a reference date for expiry
classification; engines take that date as an explicit argument and never
read the system time themselves.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta, tzinfo


class Clock(ABC):
    """Source of the current time. ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in a fixed zone (UTC unless given)."""

    def __init__(self, tz: tzinfo = UTC):
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Naive datetimes are taken as UTC.
    """

    DEFAULT_START = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __init__(self, start: datetime | None = None):
        self._current = self._aware(start or self.DEFAULT_START)

    @staticmethod
    def _aware(moment: datetime) -> datetime:
        return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        self._current = self._aware(moment)

    def advance(self, seconds: float = 0, *, days: int = 0) -> None:
        """Move forward; crossing midnight changes ``today()``."""
        self._current += timedelta(days=days, seconds=seconds)
