"""Foundational building blocks for period-based progress tracking.

This package exposes the period, entity and activity value objects, the
time tracking configuration, and the provider interfaces through which
snapshots reach the engine.
"""

from .periods import ActivityEvent, MonthBucket, Period, TrackedEntity
from .providers import (
    ActivityLogProvider,
    InMemoryActivityLog,
    InMemoryPeriodStore,
    PeriodSnapshotProvider,
    StaticTrackingConfig,
    TrackingConfigProvider,
)
from .tracking_config import (
    DEFAULT_BASELINE_RATES,
    BaselineRates,
    MetricDefinition,
    NumericKind,
    TrackingConfig,
    TrackingFrequency,
)

__all__ = [
    "ActivityEvent",
    "MonthBucket",
    "Period",
    "TrackedEntity",
    "ActivityLogProvider",
    "InMemoryActivityLog",
    "InMemoryPeriodStore",
    "PeriodSnapshotProvider",
    "StaticTrackingConfig",
    "TrackingConfigProvider",
    "DEFAULT_BASELINE_RATES",
    "BaselineRates",
    "MetricDefinition",
    "NumericKind",
    "TrackingConfig",
    "TrackingFrequency",
]
