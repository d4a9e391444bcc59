"""Exceptions raised by the period progress engine."""

from __future__ import annotations

from datetime import date


class PeriodProgressError(Exception):
    """Base class for all engine errors."""


class InvalidRange(PeriodProgressError, ValueError):
    """Raised when an aggregation range ends before it starts.

    Callers should treat this as a programming error rather than a
    transient condition; retrying with the same input will fail again.
    """

    def __init__(self, range_start: date, range_end: date) -> None:
        self.range_start = range_start
        self.range_end = range_end
        super().__init__(
            f"range_end ({range_end.isoformat()}) must not be before "
            f"range_start ({range_start.isoformat()})"
        )
