"""Pandas DataFrame adapters for risk assessments."""

from typing import Sequence

import pandas as pd  # type: ignore

from period_progress.analyses.risk import RiskAssessment, RiskLevel
from ._utils import decimal_to_float

ASSESSMENT_COLUMNS = [
    "entity_id",
    "risk_level",
    "days_since_activity",
    "months_since_enrollment",
    "engagement_score",
    "sla_breach",
]


def assessments_to_dataframe(assessments: Sequence[RiskAssessment]) -> pd.DataFrame:
    """Convert risk assessments to a DataFrame.

    ``risk_level`` is an ordered categorical column (low < medium < high <
    critical), so ``df.sort_values("risk_level")`` and comparisons such as
    ``df[df.risk_level >= "high"]`` follow risk order. Per-metric engagement
    ratios are added as ``engagement_<metric_id>`` columns.

    Returns:
        DataFrame sorted by entity_id
    """
    if not assessments:
        return pd.DataFrame(columns=ASSESSMENT_COLUMNS)

    rows = []
    for assessment in assessments:
        row = {
            "entity_id": assessment.entity_id,
            "risk_level": assessment.risk_level.value,
            "days_since_activity": assessment.days_since_activity,
            "months_since_enrollment": assessment.months_since_enrollment,
            "engagement_score": decimal_to_float(assessment.engagement_score),
            "sla_breach": assessment.sla_breach,
        }
        for metric_id, ratio in assessment.metric_engagement.items():
            row[f"engagement_{metric_id}"] = decimal_to_float(ratio)
        rows.append(row)

    df = pd.DataFrame(rows)
    df["risk_level"] = pd.Categorical(
        df["risk_level"], categories=[level.value for level in RiskLevel], ordered=True
    )
    return df.sort_values("entity_id").reset_index(drop=True)
