"""Calendar-month aggregation of cadence-aligned periods.

Periods are generated on a cadence anchored to each entity's enrollment
date (monthly periods starting on the 10th, weekly periods starting on a
Thursday, ...), so a dashboard asking for "this calendar month" cannot just
look a period up. Instead every period is spread over the calendar months
it touches in proportion to the days it spends in each.

Day counting is inclusive on both sides: a period ``2024-01-25..2024-02-05``
spans 12 days, 7 in January and 5 in February. Shares of a split period
therefore add up to exactly one before rounding. Rounding each share
half-up to the metric's quantum ``q`` means the distributed total can drift
from the recorded value by at most ``k * q / 2`` for a period touching
``k`` months. A period that sits entirely inside one month is passed
through unrounded.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Sequence

from period_progress.exceptions import InvalidRange
from period_progress.foundation.dates import (
    inclusive_days,
    iter_months,
    month_end,
    month_start,
    overlap_days,
)
from period_progress.foundation.periods import ZERO, MonthBucket, Period
from period_progress.foundation.tracking_config import NumericKind, TrackingConfig

# Default rounding quantum for distributed shares (whole units)
DEFAULT_QUANTUM = Decimal("1")

# Quantum per numeric kind when derived from a tracking config
QUANTUM_BY_KIND = {
    NumericKind.NUMBER: Decimal("1"),
    NumericKind.CURRENCY: Decimal("0.01"),
    NumericKind.PERCENTAGE: Decimal("0.01"),
}

logger = logging.getLogger(__name__)


def rounding_quanta(config: TrackingConfig) -> dict[str, Decimal]:
    """Map each configured metric to the quantum its shares are rounded to.

    Plain numbers (cases, courses) round to whole units; currency and
    percentage metrics keep cents.
    """
    return {metric.id: QUANTUM_BY_KIND[metric.numeric_kind] for metric in config.metrics}


def _round_share(value: Decimal, quantum: Decimal) -> Decimal:
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def aggregate_monthly(
    periods: Iterable[Period],
    metric_ids: Sequence[str],
    range_start: date,
    range_end: date,
    *,
    quanta: Mapping[str, Decimal] | None = None,
) -> list[MonthBucket]:
    """Distribute period metrics onto calendar months.

    Parameters
    ----------
    periods:
        Periods for one entity (or several; buckets simply add up). Order,
        gaps and overlaps are tolerated.
    metric_ids:
        Metrics to aggregate. Metrics missing from a period count as zero.
    range_start, range_end:
        Dates selecting the first and last calendar month to report. Only
        the months matter: every month from ``range_start``'s month to
        ``range_end``'s month gets a bucket.
    quanta:
        Optional per-metric rounding quantum for split shares (see
        :func:`rounding_quanta`). Metrics not listed round to whole units.

    Returns
    -------
    list[MonthBucket]
        One bucket per month in range, ordered by ``(year, month)``.

    Raises
    ------
    InvalidRange:
        If ``range_end`` is before ``range_start``.

    Examples
    --------
    >>> from datetime import date
    >>> period = Period("p1", date(2024, 1, 25), date(2024, 2, 5), metrics={"cases": 12})
    >>> buckets = aggregate_monthly([period], ["cases"], date(2024, 1, 1), date(2024, 2, 29))
    >>> [(b.month, b.metrics["cases"]) for b in buckets]
    [(1, Decimal('7')), (2, Decimal('5'))]
    """
    if range_end < range_start:
        raise InvalidRange(range_start, range_end)

    metric_ids = list(dict.fromkeys(metric_ids))
    quanta = quanta or {}
    months: dict[tuple[int, int], dict[str, Decimal]] = {
        key: {metric_id: ZERO for metric_id in metric_ids}
        for key in iter_months(range_start, range_end)
    }

    for period in periods:
        start, end = period.period_start, period.period_end
        period_days = inclusive_days(start, end)
        if period_days < 1:
            logger.warning(
                "Period %s ends before it starts (%s..%s); treating it as a single day",
                period.period_id,
                start.isoformat(),
                end.isoformat(),
            )
            end = start
            period_days = 1

        for year, month in iter_months(start, end):
            bucket = months.get((year, month))
            if bucket is None:
                continue

            first_day = date(year, month, 1)
            days = overlap_days(start, end, first_day, month_end(first_day))
            for metric_id in metric_ids:
                value = period.value(metric_id)
                if days == period_days:
                    bucket[metric_id] += value
                else:
                    share = value * days / period_days
                    bucket[metric_id] += _round_share(
                        share, quanta.get(metric_id, DEFAULT_QUANTUM)
                    )

    return [
        MonthBucket(year=year, month=month, metrics=values)
        for (year, month), values in sorted(months.items())
    ]


def current_month(
    periods: Iterable[Period],
    metric_ids: Sequence[str],
    *,
    today: date | None = None,
    quanta: Mapping[str, Decimal] | None = None,
) -> MonthBucket:
    """Aggregate periods onto the calendar month containing ``today``.

    ``today`` defaults to the local date and exists so callers (and tests)
    can pin the clock.
    """
    today = today or date.today()
    first_day = month_start(today)
    buckets = aggregate_monthly(
        periods, metric_ids, first_day, month_end(first_day), quanta=quanta
    )
    if buckets:
        return buckets[0]
    return MonthBucket(
        year=today.year,
        month=today.month,
        metrics={metric_id: ZERO for metric_id in metric_ids},
    )


def totals(periods: Iterable[Period], metric_ids: Sequence[str]) -> dict[str, Decimal]:
    """Sum every period's raw metric values, ignoring calendar alignment.

    Used for all-time figures where proportional splitting is meaningless.
    The sum is exact: no division and no rounding take place.

    Examples
    --------
    >>> from datetime import date
    >>> periods = [
    ...     Period("p1", date(2024, 1, 10), date(2024, 2, 9), metrics={"cases": 12}),
    ...     Period("p2", date(2024, 2, 10), date(2024, 3, 9), metrics={"cases": 15}),
    ... ]
    >>> totals(periods, ["cases"])
    {'cases': Decimal('27')}
    """
    result = {metric_id: ZERO for metric_id in metric_ids}
    for period in periods:
        for metric_id in result:
            result[metric_id] += period.value(metric_id)
    return result
