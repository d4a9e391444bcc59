"""Interfaces to the collaborators that feed the engine.

Storage of periods, activity logs and tracking configuration lives outside
this package. Dashboards render whole tables of entities at once, so the
period and activity providers fetch in bulk by entity list rather than one
entity at a time.

The in-memory implementations back the CLI and the tests, and are a
reasonable adapter target for callers that already hold snapshots.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Mapping, Protocol, Sequence

from period_progress.foundation.dates import as_utc_datetime
from period_progress.foundation.periods import ActivityEvent, Period
from period_progress.foundation.tracking_config import TrackingConfig

logger = logging.getLogger(__name__)


class PeriodSnapshotProvider(Protocol):
    def fetch_periods(self, entity_ids: Sequence[str]) -> dict[str, list[Period]]:
        """Return each entity's periods ordered by ``period_start``."""
        ...


class ActivityLogProvider(Protocol):
    def latest_activity(
        self, entity_ids: Sequence[str]
    ) -> dict[str, ActivityEvent | None]:
        """Return the most recent activity event per entity (``None`` if none)."""
        ...

    def count_since(
        self, entity_ids: Sequence[str], since: datetime
    ) -> dict[str, int]:
        """Return how many activity events each entity has at or after ``since``."""
        ...


class TrackingConfigProvider(Protocol):
    def get_config(self) -> TrackingConfig:
        ...


class InMemoryPeriodStore:
    """Period snapshots held in memory, keyed by entity id."""

    def __init__(self, periods: Mapping[str, Iterable[Period]] | None = None) -> None:
        self._periods: dict[str, list[Period]] = {}
        for entity_id, entity_periods in (periods or {}).items():
            self.put(entity_id, entity_periods)

    def put(self, entity_id: str, periods: Iterable[Period]) -> None:
        self._periods[entity_id] = sorted(periods, key=lambda p: p.period_start)

    def fetch_periods(self, entity_ids: Sequence[str]) -> dict[str, list[Period]]:
        result = {
            entity_id: list(self._periods.get(entity_id, ()))
            for entity_id in entity_ids
        }
        logger.debug(
            "Fetched periods for %d entities (%d periods)",
            len(result),
            sum(len(periods) for periods in result.values()),
        )
        return result


class InMemoryActivityLog:
    """Activity events held in memory; only the latest per entity is served."""

    def __init__(self, events: Iterable[ActivityEvent] = ()) -> None:
        self._events: dict[str, list[ActivityEvent]] = defaultdict(list)
        for event in events:
            self.record(event)

    def record(self, event: ActivityEvent) -> None:
        self._events[event.entity_id].append(event)

    def latest_activity(
        self, entity_ids: Sequence[str]
    ) -> dict[str, ActivityEvent | None]:
        latest: dict[str, ActivityEvent | None] = {}
        for entity_id in entity_ids:
            events = self._events.get(entity_id)
            latest[entity_id] = (
                max(events, key=lambda event: as_utc_datetime(event.occurred_at))
                if events
                else None
            )
        return latest

    def count_since(
        self, entity_ids: Sequence[str], since: datetime
    ) -> dict[str, int]:
        cutoff = as_utc_datetime(since)
        return {
            entity_id: sum(
                1
                for event in self._events.get(entity_id, ())
                if as_utc_datetime(event.occurred_at) >= cutoff
            )
            for entity_id in entity_ids
        }


class StaticTrackingConfig:
    """Serve a fixed tracking configuration."""

    def __init__(self, config: TrackingConfig) -> None:
        self._config = config

    def get_config(self) -> TrackingConfig:
        return self._config
