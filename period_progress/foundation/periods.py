"""Core value objects for period-based progress tracking.

A tracked entity (a member, a client, a doctor in a programme) has its
metrics recorded in periods: inclusive date ranges generated on a cadence
anchored to the entity's enrollment date. The engine never creates or
edits periods, it only reads immutable snapshots of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Union

Number = Union[int, float, Decimal]

ZERO = Decimal("0")


def to_decimal(value: Number | None) -> Decimal:
    """Convert a metric value to Decimal without float representation noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected numeric metric value, got {type(value)}")
    return Decimal(str(value))


@dataclass(frozen=True)
class TrackedEntity:
    """An entity whose progress is tracked over time.

    Attributes
    ----------
    entity_id:
        Identifier owned by the surrounding application.
    enrollment_date:
        Date tracking started. Period cadence is anchored to it and the
        risk classifier measures expected engagement from it.
    status:
        Lifecycle status (``"active"``, ``"inactive"``, ...). Only the
        portfolio summary looks at it.
    """

    entity_id: str
    enrollment_date: date
    status: str = "active"


@dataclass(frozen=True)
class Period:
    """Metric values recorded for one entity over an inclusive date range.

    Attributes
    ----------
    period_id:
        Identifier of the stored period record.
    period_start:
        First day of the period (inclusive).
    period_end:
        Last day of the period (inclusive). Expected to be on or after
        ``period_start``; the aggregator recovers if it is not.
    period_label:
        Display label, e.g. ``"November 2024"``, ``"Week 48"`` or ``"Q4 2024"``.
    metrics:
        Metric id to recorded value, converted to Decimal on construction.
        A missing key means zero.

    Raises
    ------
    TypeError:
        If a metric value is not numeric.
    """

    period_id: str
    period_start: date
    period_end: date
    period_label: str = ""
    metrics: Mapping[str, Number] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Snapshot the caller's mapping so later edits on their side can't leak in.
        converted = {key: to_decimal(value) for key, value in dict(self.metrics).items()}
        object.__setattr__(self, "metrics", MappingProxyType(converted))

    def value(self, metric_id: str) -> Decimal:
        """Recorded value for ``metric_id`` as a Decimal (zero when absent)."""
        return to_decimal(self.metrics.get(metric_id))

    def contains(self, day: date) -> bool:
        return self.period_start <= day <= self.period_end


@dataclass(frozen=True)
class ActivityEvent:
    """A contact event from the activity log (call, email, meeting, ...)."""

    entity_id: str
    occurred_at: datetime
    type: str = ""
    outcome: str = ""


@dataclass(frozen=True)
class MonthBucket:
    """Metric totals for one calendar month.

    Attributes
    ----------
    year:
        Calendar year.
    month:
        Calendar month, 1-12.
    metrics:
        Metric id to aggregated value.
    """

    year: int
    month: int
    metrics: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate month bucket."""
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be between 1 and 12: {self.month}")
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    @property
    def key(self) -> tuple[int, int]:
        return (self.year, self.month)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def as_dict(self) -> dict[str, object]:
        """Return JSON-serialisable representation of the bucket."""
        return {
            "year": self.year,
            "month": self.month,
            "metrics": {key: float(value) for key, value in self.metrics.items()},
        }
