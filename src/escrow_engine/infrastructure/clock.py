"""Clock sources for deadline comparisons.

SystemClock reads wall-clock UTC and never goes backwards. ManualClock is
driven explicitly, for simulations and tests.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta


class SystemClock:
    """UTC wall clock clamped to be monotonic non-decreasing."""

    def __init__(self) -> None:
        self._last: datetime | None = None
        self._guard = threading.Lock()

    def now(self) -> datetime:
        current = datetime.now(UTC)
        with self._guard:
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
        return current


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        start = start or datetime(2024, 1, 1, tzinfo=UTC)
        if start.tzinfo is None:
            start = start.replace(tzinfo=UTC)
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta | float) -> datetime:
        """Move forward by a timedelta or a number of seconds."""
        if not isinstance(delta, timedelta):
            delta = timedelta(seconds=delta)
        if delta < timedelta(0):
            raise ValueError("ManualClock cannot move backwards")
        self._now += delta
        return self._now

    def set(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        if moment < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = moment
        return self._now
