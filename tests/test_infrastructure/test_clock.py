"""Tests for the clock sources."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from escrow_engine.infrastructure.clock import ManualClock, SystemClock

T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


class TestSystemClock:
    def test_returns_aware_utc(self) -> None:
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_never_goes_backwards(self) -> None:
        clock = SystemClock()
        readings = [clock.now() for _ in range(50)]
        assert readings == sorted(readings)


class TestManualClock:
    def test_starts_where_told(self) -> None:
        assert ManualClock(T0).now() == T0

    def test_naive_start_is_utc(self) -> None:
        assert ManualClock(datetime(2024, 6, 1, 12)).now() == T0

    def test_advance_by_seconds_and_timedelta(self) -> None:
        clock = ManualClock(T0)
        clock.advance(5)
        clock.advance(timedelta(minutes=1))
        assert clock.now() == T0 + timedelta(seconds=65)

    def test_set_forward(self) -> None:
        clock = ManualClock(T0)
        later = T0 + timedelta(days=1)
        assert clock.set(later) == later

    def test_cannot_move_backwards(self) -> None:
        clock = ManualClock(T0)
        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(T0 - timedelta(seconds=1))
