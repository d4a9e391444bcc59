"""Portfolio roll-up of risk assessments and period metrics.

Dashboards show one summary over every tracked entity in a table: how
many are at risk, how many were contacted recently, how much was produced
this calendar month and overall. This module computes that summary from
already-classified :class:`RiskAssessment` objects and the period snapshots
they were computed from.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Sequence

from period_progress.analyses.monthly import current_month, totals
from period_progress.analyses.risk import (
    DEFAULT_THRESHOLDS,
    RiskAssessment,
    RiskLevel,
    RiskThresholds,
)
from period_progress.foundation.dates import as_date, as_utc_datetime
from period_progress.foundation.periods import ZERO, Period, TrackedEntity
from period_progress.foundation.providers import ActivityLogProvider

PERCENTAGE_PRECISION = Decimal("0.01")  # 2 decimal places
AVERAGE_PRECISION = Decimal("0.1")  # 1 decimal place

ACTIVE_STATUS = "active"

logger = logging.getLogger(__name__)


def _validate_percentage(value: Decimal, field_name: str) -> None:
    if not (Decimal("0") <= value <= Decimal("100")):
        raise ValueError(f"{field_name} must be in [0, 100], got {value}")


def _percentage(part: int, whole: int) -> Decimal:
    if whole == 0:
        return Decimal("0.00")
    return (Decimal(part) * 100 / Decimal(whole)).quantize(
        PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP
    )


@dataclass(frozen=True)
class PortfolioSummary:
    """Dashboard summary over a set of tracked entities.

    Attributes
    ----------
    total_entities:
        Number of entities summarised.
    active_entities:
        Entities whose status is ``"active"``.
    risk_distribution:
        Count of entities per risk level; every level is present.
    at_risk_count:
        Entities at ``high`` or ``critical`` risk.
    critical_risk_count:
        Entities at ``critical`` risk.
    on_track_count:
        Entities at ``low`` or ``medium`` risk.
    needing_attention:
        Entities without contact for the critical number of days (or never).
    engagement_rate:
        Percentage of entities contacted within the SLA window (0-100).
    completion_rate:
        Percentage of entities whose earliest-starting period containing the
        evaluation date has a positive value for some metric (0-100).
    average_days_in_program:
        Mean days since enrollment.
    metric_totals:
        All-time totals per metric across entities.
    avg_per_entity:
        ``metric_totals`` divided by ``total_entities``.
    this_month:
        Calendar-month totals per metric for the month of the evaluation date.
    recent_activities_count:
        Activity events logged within the SLA window before the evaluation
        time, across entities. Zero when no activity provider is given.
    """

    total_entities: int
    active_entities: int
    risk_distribution: Mapping[RiskLevel, int]
    at_risk_count: int
    critical_risk_count: int
    on_track_count: int
    needing_attention: int
    engagement_rate: Decimal
    completion_rate: Decimal
    average_days_in_program: Decimal
    metric_totals: Mapping[str, Decimal] = field(default_factory=dict)
    avg_per_entity: Mapping[str, Decimal] = field(default_factory=dict)
    this_month: Mapping[str, Decimal] = field(default_factory=dict)
    recent_activities_count: int = 0

    def __post_init__(self) -> None:
        """Validate portfolio summary."""
        if self.total_entities < 0:
            raise ValueError(f"total_entities must be >= 0, got {self.total_entities}")
        if not 0 <= self.active_entities <= self.total_entities:
            raise ValueError(
                f"active_entities must be in [0, {self.total_entities}], "
                f"got {self.active_entities}"
            )
        if sum(self.risk_distribution.values()) != self.total_entities:
            raise ValueError(
                f"risk_distribution counts ({sum(self.risk_distribution.values())}) "
                f"must equal total_entities ({self.total_entities})"
            )
        if self.at_risk_count + self.on_track_count != self.total_entities:
            raise ValueError(
                f"at_risk_count ({self.at_risk_count}) + on_track_count "
                f"({self.on_track_count}) must equal total_entities ({self.total_entities})"
            )
        _validate_percentage(self.engagement_rate, "engagement_rate")
        _validate_percentage(self.completion_rate, "completion_rate")
        if self.recent_activities_count < 0:
            raise ValueError(
                f"recent_activities_count must be >= 0, got {self.recent_activities_count}"
            )

    def as_dict(self) -> dict[str, object]:
        """Return JSON-serialisable representation of the summary."""
        return {
            "total_entities": self.total_entities,
            "active_entities": self.active_entities,
            "risk_distribution": {
                level.value: count for level, count in self.risk_distribution.items()
            },
            "at_risk_count": self.at_risk_count,
            "critical_risk_count": self.critical_risk_count,
            "on_track_count": self.on_track_count,
            "needing_attention": self.needing_attention,
            "engagement_rate": float(self.engagement_rate),
            "completion_rate": float(self.completion_rate),
            "average_days_in_program": float(self.average_days_in_program),
            "metric_totals": {k: float(v) for k, v in self.metric_totals.items()},
            "avg_per_entity": {k: float(v) for k, v in self.avg_per_entity.items()},
            "this_month": {k: float(v) for k, v in self.this_month.items()},
            "recent_activities_count": self.recent_activities_count,
        }


def summarize_portfolio(
    entities: Sequence[TrackedEntity],
    assessments: Sequence[RiskAssessment],
    periods_by_entity: Mapping[str, Sequence[Period]],
    metric_ids: Sequence[str],
    now: date | datetime,
    *,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
    quanta: Mapping[str, Decimal] | None = None,
    activity_provider: ActivityLogProvider | None = None,
) -> PortfolioSummary:
    """Summarise risk and progress across a set of entities.

    Parameters
    ----------
    entities:
        Entities to summarise.
    assessments:
        One assessment per entity (matched by ``entity_id``), typically from
        :func:`~period_progress.analyses.risk.assess_entities`.
    periods_by_entity:
        Period snapshots keyed by entity id. Missing entities have no periods.
    metric_ids:
        Metrics to total.
    now:
        Evaluation time; picks the calendar month and current period.
    thresholds:
        Must match the thresholds the assessments were produced with.
    quanta:
        Rounding quanta for the calendar-month split (see
        :func:`~period_progress.analyses.monthly.rounding_quanta`).
    activity_provider:
        Optional activity log. When given, events logged in the
        ``thresholds.sla_days`` days before ``now`` are counted into
        ``recent_activities_count`` with one bulk call.

    Raises
    ------
    ValueError:
        If an entity has no assessment.
    """
    today = as_date(now)
    by_entity = {assessment.entity_id: assessment for assessment in assessments}
    missing = [e.entity_id for e in entities if e.entity_id not in by_entity]
    if missing:
        raise ValueError(f"No risk assessment for entities: {missing}")

    distribution = {level: 0 for level in RiskLevel}
    metric_totals = {metric_id: ZERO for metric_id in metric_ids}
    this_month = {metric_id: ZERO for metric_id in metric_ids}
    engaged = completed = needing_attention = 0
    days_in_program = 0

    for entity in entities:
        assessment = by_entity[entity.entity_id]
        periods = sorted(
            periods_by_entity.get(entity.entity_id, ()), key=lambda p: p.period_start
        )

        distribution[assessment.risk_level] += 1
        if not assessment.sla_breach:
            engaged += 1
        if assessment.days_since_activity >= thresholds.critical_days:
            needing_attention += 1
        days_in_program += max((today - entity.enrollment_date).days, 0)

        for metric_id, value in totals(periods, metric_ids).items():
            metric_totals[metric_id] += value
        month = current_month(periods, metric_ids, today=today, quanta=quanta)
        for metric_id, value in month.metrics.items():
            this_month[metric_id] += value

        # First period containing today, by start date
        current = next((p for p in periods if p.contains(today)), None)
        if current is not None and any(current.value(m) > 0 for m in metric_ids):
            completed += 1

    recent_activities = 0
    if activity_provider is not None and entities:
        since = as_utc_datetime(now) - timedelta(days=thresholds.sla_days)
        counts = activity_provider.count_since([e.entity_id for e in entities], since)
        recent_activities = sum(counts.values())

    total = len(entities)
    if total:
        average_days = (Decimal(days_in_program) / total).quantize(
            AVERAGE_PRECISION, rounding=ROUND_HALF_UP
        )
        avg_per_entity = {
            metric_id: (value / total).quantize(AVERAGE_PRECISION, rounding=ROUND_HALF_UP)
            for metric_id, value in metric_totals.items()
        }
    else:
        logger.info("Summarising an empty portfolio")
        average_days = Decimal("0.0")
        avg_per_entity = {metric_id: Decimal("0.0") for metric_id in metric_ids}

    at_risk = distribution[RiskLevel.HIGH] + distribution[RiskLevel.CRITICAL]
    return PortfolioSummary(
        total_entities=total,
        active_entities=sum(1 for e in entities if e.status == ACTIVE_STATUS),
        risk_distribution=distribution,
        at_risk_count=at_risk,
        critical_risk_count=distribution[RiskLevel.CRITICAL],
        on_track_count=distribution[RiskLevel.LOW] + distribution[RiskLevel.MEDIUM],
        needing_attention=needing_attention,
        engagement_rate=_percentage(engaged, total),
        completion_rate=_percentage(completed, total),
        average_days_in_program=average_days,
        metric_totals=metric_totals,
        avg_per_entity=avg_per_entity,
        this_month=this_month,
        recent_activities_count=recent_activities,
    )
