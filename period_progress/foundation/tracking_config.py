"""Time tracking configuration supplied by the surrounding application.

A table of tracked entities carries one ``TrackingConfig``: whether time
tracking is switched on, the cadence periods are generated at, and the
metrics recorded in every period.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator

MAX_TRACKED_METRICS = 5


class TrackingFrequency(str, Enum):
    """Cadence at which periods are generated."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class NumericKind(str, Enum):
    """How a metric value should be interpreted and displayed."""

    NUMBER = "number"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"


class MetricDefinition(BaseModel):
    """A metric recorded in every period.

    ``numeric_kind`` is read from ``type`` in stored configs.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1, description="Key used in Period.metrics")
    name: str = Field(min_length=1, description="Display name")
    numeric_kind: NumericKind = Field(
        default=NumericKind.NUMBER,
        alias="type",
        description="number, currency or percentage",
    )


class TrackingConfig(BaseModel):
    """Time tracking settings for a table of entities."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    frequency: TrackingFrequency = TrackingFrequency.MONTHLY
    metrics: tuple[MetricDefinition, ...] = Field(
        default=(), max_length=MAX_TRACKED_METRICS
    )

    @model_validator(mode="after")
    def _check_metrics(self) -> "TrackingConfig":
        if self.enabled and not self.metrics:
            raise ValueError("At least one metric is required when tracking is enabled")
        ids = [metric.id for metric in self.metrics]
        duplicates = sorted({metric_id for metric_id in ids if ids.count(metric_id) > 1})
        if duplicates:
            raise ValueError(f"Duplicate metric ids: {duplicates}")
        return self

    @property
    def metric_ids(self) -> list[str]:
        return [metric.id for metric in self.metrics]

    def metric(self, metric_id: str) -> MetricDefinition:
        """Return the definition for ``metric_id``.

        Raises
        ------
        KeyError:
            If the metric is not configured.
        """
        for metric in self.metrics:
            if metric.id == metric_id:
                return metric
        raise KeyError(metric_id)


class BaselineRates(RootModel[dict[str, Annotated[Decimal, Field(ge=0)]]]):
    """Expected units per month for each metric, keyed by metric id.

    Only metrics listed here contribute to the engagement score.
    """

    def as_mapping(self) -> dict[str, Decimal]:
        return dict(self.root)


# Defaults used by the reference programme: ~2 cases and ~1 course per month.
DEFAULT_BASELINE_RATES = BaselineRates(
    {"cases_submitted": Decimal("2"), "courses_completed": Decimal("1")}
)
