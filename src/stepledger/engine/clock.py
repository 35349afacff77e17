# src/stepledger/engine/clock.py
"""Clock abstraction for testable timestamps.

Step executions stamp start, end and last-updated times through a Clock so
tests can control time without patching the datetime module.

Production code uses SystemClock (the default).
Tests inject MockClock to control time advancement.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Abstract wall clock.

    Implementations:
    - SystemClock: Uses datetime.now(UTC) (production)
    - MockClock: Returns controllable times (testing)
    """

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    """Production clock backed by the system wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=datetime(2026, 1, 1, tzinfo=UTC))
        execution = StepExecution("loadOrders", job, clock=clock)

        clock.advance(30)
        execution.close(BatchStatus.COMPLETED)
        assert execution.end_time - execution.start_time == timedelta(seconds=30)
    """

    def __init__(self, start: datetime | None = None) -> None:
        """Initialize mock clock.

        Args:
            start: Initial time (default 2000-01-01T00:00:00Z). Naive values
                are taken as UTC.
        """
        if start is None:
            start = datetime(2000, 1, 1, tzinfo=UTC)
        elif start.tzinfo is None:
            start = start.replace(tzinfo=UTC)
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance mock time by specified seconds.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += timedelta(seconds=seconds)

    def set(self, value: datetime) -> None:
        """Set mock time to an absolute value (may move backwards)."""
        self._current = value


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
