"""
Injectable time source.

Services stamp ``submitted_at``, ``decided_at``, ``completed_at`` and
history/comment times from a ``Clock`` instead of reading the system time,
so tests can order submissions and decisions exactly.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Manually driven clock for tests.

    ``now()`` is stable until the clock is moved with ``advance()``,
    ``tick()`` or ``set_time()``.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, when: datetime) -> None:
        if when.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._current = when

    def advance(self, seconds: float | timedelta = 1) -> datetime:
        step = seconds if isinstance(seconds, timedelta) else timedelta(seconds=seconds)
        self._current += step
        return self._current

    def tick(self) -> datetime:
        return self.advance(1)
