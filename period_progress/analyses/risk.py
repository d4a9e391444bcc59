"""Risk classification from contact recency and engagement.

Each tracked entity is labelled ``low``, ``medium``, ``high`` or
``critical`` from two signals:

- Recency: whole days since the most recent activity event (contact,
  call, meeting). No activity at all counts as :data:`NO_ACTIVITY_DAYS`.
- Engagement: for every metric with a baseline rate (expected units per
  month), the ratio of the all-time total to what the entity should have
  produced since enrollment, averaged over metrics.

The decision tree is evaluated top to bottom and the first match wins:

1. critical if days since activity >= 14
2. critical if days since activity >= 7 and engagement < 0.3
3. high if days since activity >= 7
4. high if engagement < 0.2
5. medium if days since activity >= 3 or engagement < 0.5
6. low otherwise

The SLA breach flag (no contact for 7+ days) is computed separately from
the label and is used for alerting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Mapping, Sequence

from period_progress.analyses.monthly import totals
from period_progress.foundation.dates import as_utc_datetime
from period_progress.foundation.periods import (
    ActivityEvent,
    Number,
    Period,
    TrackedEntity,
    to_decimal,
)
from period_progress.foundation.providers import (
    ActivityLogProvider,
    PeriodSnapshotProvider,
)
from period_progress.foundation.tracking_config import BaselineRates

# Days reported when an entity has no activity at all
NO_ACTIVITY_DAYS = 999

# Days per month when measuring time since enrollment
DAYS_PER_MONTH = 30

# Engagement used when no metric has a baseline rate
NEUTRAL_ENGAGEMENT = Decimal("1")

SCORE_PRECISION = Decimal("0.0001")

logger = logging.getLogger(__name__)


class RiskLevel(str, Enum):
    """Ordered risk label: ``low < medium < high < critical``."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank >= other.rank


_RISK_ORDER = (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL)


@dataclass(frozen=True)
class RiskThresholds:
    """Cut-offs used by the risk decision tree.

    Attributes
    ----------
    critical_days:
        Days without activity that are critical on their own.
    high_days:
        Days without activity that are high risk on their own, and critical
        when engagement is below ``critical_engagement``.
    medium_days:
        Days without activity that make an otherwise healthy entity medium.
    critical_engagement:
        Engagement below which a stale entity (``high_days``) is critical.
    high_engagement:
        Engagement below which an entity is high risk regardless of recency.
    medium_engagement:
        Engagement below which an entity is at least medium risk.
    sla_days:
        Days without activity that breach the contact SLA.
    """

    critical_days: int = 14
    high_days: int = 7
    medium_days: int = 3
    critical_engagement: Decimal = Decimal("0.3")
    high_engagement: Decimal = Decimal("0.2")
    medium_engagement: Decimal = Decimal("0.5")
    sla_days: int = 7

    def __post_init__(self) -> None:
        """Validate threshold ordering."""
        if not 0 <= self.medium_days <= self.high_days <= self.critical_days:
            raise ValueError(
                f"Day thresholds must satisfy 0 <= medium ({self.medium_days}) "
                f"<= high ({self.high_days}) <= critical ({self.critical_days})"
            )
        if not self.high_engagement <= self.critical_engagement:
            raise ValueError(
                f"high_engagement ({self.high_engagement}) must not exceed "
                f"critical_engagement ({self.critical_engagement})"
            )
        if self.sla_days < 0:
            raise ValueError(f"sla_days must be >= 0, got {self.sla_days}")


DEFAULT_THRESHOLDS = RiskThresholds()


@dataclass(frozen=True)
class RiskAssessment:
    """Risk label for one entity together with the inputs that produced it.

    Attributes
    ----------
    entity_id:
        Entity the assessment belongs to.
    risk_level:
        Classified risk level.
    days_since_activity:
        Whole days since last activity (``NO_ACTIVITY_DAYS`` when none).
    months_since_enrollment:
        Whole 30-day months since enrollment.
    engagement_score:
        Mean actual/expected ratio across metrics with a baseline rate.
    metric_engagement:
        Per-metric actual/expected ratio.
    sla_breach:
        Whether the contact SLA is breached.
    """

    entity_id: str
    risk_level: RiskLevel
    days_since_activity: int
    months_since_enrollment: int
    engagement_score: Decimal
    metric_engagement: Mapping[str, Decimal] = field(default_factory=dict)
    sla_breach: bool = False

    @property
    def is_at_risk(self) -> bool:
        return self.risk_level >= RiskLevel.HIGH

    def as_dict(self) -> dict[str, object]:
        """Return JSON-serialisable representation of the assessment."""
        return {
            "entity_id": self.entity_id,
            "risk_level": self.risk_level.value,
            "days_since_activity": self.days_since_activity,
            "months_since_enrollment": self.months_since_enrollment,
            "engagement_score": float(self.engagement_score),
            "metric_engagement": {
                key: float(value) for key, value in self.metric_engagement.items()
            },
            "sla_breach": self.sla_breach,
        }


def _normalise_rates(
    baseline_rates: Mapping[str, Number] | BaselineRates | None,
) -> dict[str, Decimal]:
    if baseline_rates is None:
        return {}
    if isinstance(baseline_rates, BaselineRates):
        return baseline_rates.as_mapping()
    return {metric_id: to_decimal(rate) for metric_id, rate in baseline_rates.items()}


def days_since_activity(
    last_activity: ActivityEvent | None, now: date | datetime
) -> int:
    """Whole days elapsed since ``last_activity``.

    Returns :data:`NO_ACTIVITY_DAYS` when there is no activity. An event
    dated after ``now`` counts as zero days.
    """
    if last_activity is None:
        return NO_ACTIVITY_DAYS
    delta = as_utc_datetime(now) - as_utc_datetime(last_activity.occurred_at)
    return max(delta.days, 0)


def months_since_enrollment(enrollment_date: date, now: date | datetime) -> int:
    """Whole 30-day months since ``enrollment_date`` (zero if it is in the future)."""
    delta = as_utc_datetime(now) - as_utc_datetime(enrollment_date)
    return max(delta.days // DAYS_PER_MONTH, 0)


def has_sla_breach(
    last_activity: ActivityEvent | None,
    now: date | datetime,
    *,
    sla_days: int = DEFAULT_THRESHOLDS.sla_days,
) -> bool:
    """Return True when there has been no contact for ``sla_days`` or more.

    Independent of the risk label: an engaged entity that hasn't been
    contacted for a week still breaches the SLA.
    """
    if last_activity is None:
        return True
    return days_since_activity(last_activity, now) >= sla_days


def metric_engagement(
    enrollment_date: date,
    periods: Iterable[Period],
    baseline_rates: Mapping[str, Number] | BaselineRates | None,
    now: date | datetime,
) -> dict[str, Decimal]:
    """Actual-to-expected ratio for every metric with a baseline rate.

    The expectation is ``months_since_enrollment * rate`` but never less
    than one unit, so brand-new entities are not divided by zero.
    """
    rates = _normalise_rates(baseline_rates)
    if not rates:
        return {}
    months = months_since_enrollment(enrollment_date, now)
    actual = totals(periods, list(rates))
    ratios: dict[str, Decimal] = {}
    for metric_id, rate in rates.items():
        expected = max(months * rate, Decimal("1"))
        ratios[metric_id] = actual[metric_id] / expected
    return ratios


def _mean_engagement(ratios: Mapping[str, Decimal]) -> Decimal:
    if not ratios:
        return NEUTRAL_ENGAGEMENT
    return sum(ratios.values(), Decimal("0")) / len(ratios)


def engagement_score(
    enrollment_date: date,
    periods: Iterable[Period],
    baseline_rates: Mapping[str, Number] | BaselineRates | None,
    now: date | datetime,
) -> Decimal:
    """Mean of :func:`metric_engagement` ratios.

    Returns :data:`NEUTRAL_ENGAGEMENT` when no metric has a baseline rate,
    leaving recency as the only signal.
    """
    return _mean_engagement(
        metric_engagement(enrollment_date, periods, baseline_rates, now)
    )


def risk_level_from_scores(
    days_since_activity: int,
    engagement_score: Number,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> RiskLevel:
    """Apply the risk decision tree to precomputed recency and engagement.

    Rules are checked in order and the first match wins; reordering them
    changes results (a 10-day-stale, well-engaged entity is ``high``, not
    ``critical``).

    Examples
    --------
    >>> risk_level_from_scores(0, 1.0)
    <RiskLevel.LOW: 'low'>
    >>> risk_level_from_scores(10, 0.9)
    <RiskLevel.HIGH: 'high'>
    >>> risk_level_from_scores(10, 0.1)
    <RiskLevel.CRITICAL: 'critical'>
    """
    days = max(days_since_activity, 0)
    score = to_decimal(engagement_score)

    if days >= thresholds.critical_days:
        return RiskLevel.CRITICAL
    if days >= thresholds.high_days and score < thresholds.critical_engagement:
        return RiskLevel.CRITICAL
    if days >= thresholds.high_days:
        return RiskLevel.HIGH
    if score < thresholds.high_engagement:
        return RiskLevel.HIGH
    if days >= thresholds.medium_days or score < thresholds.medium_engagement:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def classify_risk(
    enrollment_date: date,
    periods: Iterable[Period],
    baseline_rates: Mapping[str, Number] | BaselineRates | None,
    last_activity: ActivityEvent | None,
    now: date | datetime,
    *,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> RiskLevel:
    """Classify an entity's risk level.

    Parameters
    ----------
    enrollment_date:
        Date the entity started being tracked.
    periods:
        The entity's period history. Only all-time totals are used.
    baseline_rates:
        Expected units per month, keyed by metric id.
    last_activity:
        Most recent activity event, or None.
    now:
        Evaluation time.
    thresholds:
        Decision tree cut-offs.
    """
    score = engagement_score(enrollment_date, periods, baseline_rates, now)
    return risk_level_from_scores(
        days_since_activity(last_activity, now), score, thresholds
    )


def assess_entity(
    entity: TrackedEntity,
    periods: Sequence[Period],
    baseline_rates: Mapping[str, Number] | BaselineRates | None,
    last_activity: ActivityEvent | None,
    now: date | datetime,
    *,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> RiskAssessment:
    """Classify one entity and keep the intermediate signals for display."""
    ratios = metric_engagement(entity.enrollment_date, periods, baseline_rates, now)
    score = _mean_engagement(ratios)
    days = days_since_activity(last_activity, now)
    return RiskAssessment(
        entity_id=entity.entity_id,
        risk_level=risk_level_from_scores(days, score, thresholds),
        days_since_activity=days,
        months_since_enrollment=months_since_enrollment(entity.enrollment_date, now),
        engagement_score=score.quantize(SCORE_PRECISION, rounding=ROUND_HALF_UP),
        metric_engagement={
            metric_id: ratio.quantize(SCORE_PRECISION, rounding=ROUND_HALF_UP)
            for metric_id, ratio in ratios.items()
        },
        sla_breach=has_sla_breach(last_activity, now, sla_days=thresholds.sla_days),
    )


def assess_entities(
    entities: Sequence[TrackedEntity],
    period_provider: PeriodSnapshotProvider,
    activity_provider: ActivityLogProvider,
    baseline_rates: Mapping[str, Number] | BaselineRates | None,
    now: date | datetime,
    *,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> list[RiskAssessment]:
    """Assess a table of entities with one bulk fetch per provider.

    Returns assessments in the order of ``entities``.
    """
    if not entities:
        return []

    entity_ids = [entity.entity_id for entity in entities]
    periods_by_entity = period_provider.fetch_periods(entity_ids)
    activity_by_entity = activity_provider.latest_activity(entity_ids)

    assessments = [
        assess_entity(
            entity,
            periods_by_entity.get(entity.entity_id, []),
            baseline_rates,
            activity_by_entity.get(entity.entity_id),
            now,
            thresholds=thresholds,
        )
        for entity in entities
    ]
    logger.info(
        "Assessed %d entities: %d at risk, %d SLA breaches",
        len(assessments),
        sum(1 for assessment in assessments if assessment.is_at_risk),
        sum(1 for assessment in assessments if assessment.sla_breach),
    )
    return assessments
