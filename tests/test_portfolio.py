"""Tests for the portfolio summary."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from period_progress.analyses.portfolio import PortfolioSummary, summarize_portfolio
from period_progress.analyses.risk import RiskLevel, assess_entities
from period_progress.foundation import (
    DEFAULT_BASELINE_RATES,
    ActivityEvent,
    InMemoryActivityLog,
    InMemoryPeriodStore,
    Period,
    TrackedEntity,
)

METRICS = ["cases_submitted", "courses_completed"]
NOW = date(2024, 4, 15)


def _period(period_id, start, end, cases, courses):
    return Period(
        period_id,
        start,
        end,
        metrics={"cases_submitted": cases, "courses_completed": courses},
    )


@pytest.fixture
def activity_log():
    return InMemoryActivityLog(
        [
            ActivityEvent("A", datetime(2024, 4, 14, 10, 0, tzinfo=timezone.utc), "call"),
            ActivityEvent("A", datetime(2024, 4, 2, 10, 0, tzinfo=timezone.utc), "call"),
            ActivityEvent("A", datetime(2024, 4, 8, 0, 0, tzinfo=timezone.utc), "meeting"),
            ActivityEvent("B", datetime(2024, 4, 1, 15, 0, tzinfo=timezone.utc), "email"),
            ActivityEvent("B", datetime(2024, 4, 5, 9, 0, tzinfo=timezone.utc), "email"),
        ]
    )


@pytest.fixture
def portfolio(activity_log):
    """Three entities: one healthy, one gone quiet, one never contacted."""
    entities = [
        TrackedEntity("A", date(2024, 1, 1), "active"),
        TrackedEntity("B", date(2024, 3, 1), "active"),
        TrackedEntity("C", date(2024, 2, 1), "inactive"),
    ]
    store = InMemoryPeriodStore(
        {
            "A": [
                _period("a1", date(2024, 1, 10), date(2024, 2, 9), 4, 2),
                _period("a2", date(2024, 2, 10), date(2024, 3, 9), 4, 2),
                _period("a3", date(2024, 3, 10), date(2024, 4, 9), 2, 1),
                _period("a4", date(2024, 4, 10), date(2024, 5, 9), 3, 0),
            ],
            "C": [_period("c1", date(2024, 2, 1), date(2024, 2, 29), 1, 1)],
        }
    )
    assessments = assess_entities(entities, store, activity_log, DEFAULT_BASELINE_RATES, NOW)
    periods = store.fetch_periods([entity.entity_id for entity in entities])
    return entities, assessments, periods


class TestSummarizePortfolio:
    """Test summarize_portfolio figures."""

    def test_assessments_feeding_the_summary(self, portfolio):
        _, assessments, _ = portfolio
        by_id = {a.entity_id: a for a in assessments}

        assert by_id["A"].risk_level is RiskLevel.LOW
        assert by_id["B"].risk_level is RiskLevel.CRITICAL
        assert by_id["B"].days_since_activity == 9
        assert by_id["C"].days_since_activity == 999

    def test_risk_counts(self, portfolio):
        summary = summarize_portfolio(*portfolio, METRICS, NOW)

        assert summary.total_entities == 3
        assert summary.risk_distribution == {
            RiskLevel.LOW: 1,
            RiskLevel.MEDIUM: 0,
            RiskLevel.HIGH: 0,
            RiskLevel.CRITICAL: 2,
        }
        assert summary.at_risk_count == 2
        assert summary.critical_risk_count == 2
        assert summary.on_track_count == 1
        assert summary.needing_attention == 1

    def test_rates(self, portfolio):
        summary = summarize_portfolio(*portfolio, METRICS, NOW)

        assert summary.engagement_rate == Decimal("33.33")
        assert summary.completion_rate == Decimal("33.33")
        assert summary.active_entities == 2

    def test_program_days_and_totals(self, portfolio):
        summary = summarize_portfolio(*portfolio, METRICS, NOW)

        # (105 + 45 + 74) / 3
        assert summary.average_days_in_program == Decimal("74.7")
        assert summary.metric_totals == {
            "cases_submitted": Decimal("14"),
            "courses_completed": Decimal("6"),
        }
        assert summary.avg_per_entity == {
            "cases_submitted": Decimal("4.7"),
            "courses_completed": Decimal("2.0"),
        }

    def test_this_month_uses_calendar_split(self, portfolio):
        """April gets 9/31 of a3 and 21/30 of a4."""
        summary = summarize_portfolio(*portfolio, METRICS, NOW)

        assert summary.this_month == {
            "cases_submitted": Decimal("3"),
            "courses_completed": Decimal("0"),
        }

    def test_datetime_now_is_accepted(self, portfolio):
        summary = summarize_portfolio(
            *portfolio, METRICS, datetime(2024, 4, 15, 8, 30, tzinfo=timezone.utc)
        )
        assert summary.average_days_in_program == Decimal("74.7")

    def test_as_dict_is_json_friendly(self, portfolio):
        payload = summarize_portfolio(*portfolio, METRICS, NOW).as_dict()

        assert payload["risk_distribution"] == {"low": 1, "medium": 0, "high": 0, "critical": 2}
        assert payload["engagement_rate"] == 33.33
        assert payload["metric_totals"] == {"cases_submitted": 14.0, "courses_completed": 6.0}

    def test_recent_activities_count_uses_sla_window(self, portfolio, activity_log):
        """Events at or after now - 7 days count; the window start is inclusive."""
        summary = summarize_portfolio(
            *portfolio, METRICS, NOW, activity_provider=activity_log
        )

        assert summary.recent_activities_count == 2
        assert summary.as_dict()["recent_activities_count"] == 2

    def test_recent_activities_count_without_provider_is_zero(self, portfolio):
        summary = summarize_portfolio(*portfolio, METRICS, NOW)
        assert summary.recent_activities_count == 0

    def test_completion_uses_earliest_period_containing_today(self):
        """An overlapping later period with progress does not count."""
        entity = TrackedEntity("A", date(2024, 1, 1))
        periods = {
            "A": [
                _period("late", date(2024, 4, 10), date(2024, 5, 9), 5, 0),
                _period("early", date(2024, 3, 20), date(2024, 4, 19), 0, 0),
            ]
        }
        assessments = assess_entities(
            [entity], InMemoryPeriodStore(periods), InMemoryActivityLog(), None, NOW
        )

        summary = summarize_portfolio([entity], assessments, periods, METRICS, NOW)

        assert summary.completion_rate == Decimal("0")

    def test_completion_requires_positive_value(self):
        entity = TrackedEntity("A", date(2024, 1, 1))
        periods = {"A": [_period("corr", date(2024, 4, 1), date(2024, 4, 30), -2, 0)]}
        assessments = assess_entities(
            [entity], InMemoryPeriodStore(periods), InMemoryActivityLog(), None, NOW
        )

        summary = summarize_portfolio([entity], assessments, periods, METRICS, NOW)

        assert summary.completion_rate == Decimal("0")

    def test_missing_assessment_raises(self, portfolio):
        entities, assessments, periods = portfolio
        with pytest.raises(ValueError, match="No risk assessment for entities"):
            summarize_portfolio(entities, assessments[:1], periods, METRICS, NOW)

    def test_empty_portfolio(self):
        summary = summarize_portfolio([], [], {}, METRICS, NOW)

        assert summary.total_entities == 0
        assert summary.engagement_rate == Decimal("0")
        assert summary.completion_rate == Decimal("0")
        assert summary.average_days_in_program == Decimal("0")
        assert summary.avg_per_entity == {
            "cases_submitted": Decimal("0"),
            "courses_completed": Decimal("0"),
        }
        assert sum(summary.risk_distribution.values()) == 0


class TestPortfolioSummary:
    """Test PortfolioSummary validation."""

    def _kwargs(self, **overrides):
        kwargs = dict(
            total_entities=2,
            active_entities=2,
            risk_distribution={RiskLevel.LOW: 1, RiskLevel.CRITICAL: 1},
            at_risk_count=1,
            critical_risk_count=1,
            on_track_count=1,
            needing_attention=1,
            engagement_rate=Decimal("50.00"),
            completion_rate=Decimal("50.00"),
            average_days_in_program=Decimal("30.0"),
        )
        kwargs.update(overrides)
        return kwargs

    def test_valid_summary(self):
        assert PortfolioSummary(**self._kwargs()).total_entities == 2

    def test_percentage_out_of_range_raises(self):
        with pytest.raises(ValueError, match="engagement_rate must be in"):
            PortfolioSummary(**self._kwargs(engagement_rate=Decimal("100.01")))

    def test_distribution_must_cover_every_entity(self):
        with pytest.raises(ValueError, match="risk_distribution counts"):
            PortfolioSummary(**self._kwargs(risk_distribution={RiskLevel.LOW: 1}))

    def test_at_risk_plus_on_track_must_match_total(self):
        with pytest.raises(ValueError, match="at_risk_count"):
            PortfolioSummary(**self._kwargs(on_track_count=0))

    def test_negative_recent_activities_raises(self):
        with pytest.raises(ValueError, match="recent_activities_count"):
            PortfolioSummary(**self._kwargs(recent_activities_count=-1))

    def test_active_cannot_exceed_total(self):
        with pytest.raises(ValueError, match="active_entities"):
            PortfolioSummary(**self._kwargs(active_entities=3))
