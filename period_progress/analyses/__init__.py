"""Analyses over period snapshots.

1. Calendar-month aggregation - spreads cadence-aligned periods onto
   calendar months and totals them
2. Risk classification - labels entities from contact recency and
   engagement against baseline rates
3. Portfolio summary - dashboard roll-up over many entities
"""

from .monthly import aggregate_monthly, current_month, rounding_quanta, totals
from .portfolio import PortfolioSummary, summarize_portfolio
from .risk import (
    DEFAULT_THRESHOLDS,
    NO_ACTIVITY_DAYS,
    RiskAssessment,
    RiskLevel,
    RiskThresholds,
    assess_entities,
    assess_entity,
    classify_risk,
    days_since_activity,
    engagement_score,
    has_sla_breach,
    metric_engagement,
    months_since_enrollment,
    risk_level_from_scores,
)

__all__ = [
    # Monthly aggregation
    "aggregate_monthly",
    "current_month",
    "rounding_quanta",
    "totals",
    # Risk
    "DEFAULT_THRESHOLDS",
    "NO_ACTIVITY_DAYS",
    "RiskAssessment",
    "RiskLevel",
    "RiskThresholds",
    "assess_entities",
    "assess_entity",
    "classify_risk",
    "days_since_activity",
    "engagement_score",
    "has_sla_breach",
    "metric_engagement",
    "months_since_enrollment",
    "risk_level_from_scores",
    # Portfolio
    "PortfolioSummary",
    "summarize_portfolio",
]
