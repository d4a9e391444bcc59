"""Calendar helpers shared by the aggregation and risk components.

Periods are anchored to an entity's enrollment date rather than to the
calendar, so most of the work here is turning inclusive date ranges into
day counts and walking the calendar months a range touches.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterator


def as_date(value: date | datetime) -> date:
    """Return the calendar date of ``value``.

    Aware datetimes are converted to UTC first so that the same instant
    always lands on the same day regardless of the source timezone.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def as_utc_datetime(value: date | datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Plain dates map to midnight UTC and naive datetimes are assumed to be
    UTC already.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def inclusive_days(start: date, end: date) -> int:
    """Number of days in ``[start, end]`` counting both ends.

    Returns zero or a negative number when ``end`` is before ``start``;
    callers decide how to recover from that.
    """
    return (end - start).days + 1


def month_start(value: date) -> date:
    return value.replace(day=1)


def month_end(value: date) -> date:
    """Last day of the month containing ``value``."""
    return next_month_start(value) - timedelta(days=1)


def next_month_start(value: date) -> date:
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def iter_months(start: date, end: date) -> Iterator[tuple[int, int]]:
    """Yield ``(year, month)`` for every calendar month from ``start`` to ``end``.

    Both months are included. Nothing is yielded when ``end`` falls in an
    earlier month than ``start``.
    """
    current = month_start(start)
    last = month_start(end)
    while current <= last:
        yield current.year, current.month
        current = next_month_start(current)


def overlap_days(start: date, end: date, other_start: date, other_end: date) -> int:
    """Inclusive day count of the intersection of two date ranges (0 if disjoint)."""
    return max(inclusive_days(max(start, other_start), min(end, other_end)), 0)
