"""Tests for pandas DataFrame adapters."""

from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from period_progress.analyses.risk import RiskAssessment, RiskLevel
from period_progress.foundation import MonthBucket, Period
from period_progress.pandas import (
    aggregate_monthly_df,
    assessments_to_dataframe,
    dataframe_to_periods,
    month_buckets_to_dataframe,
    periods_to_dataframe,
)


class TestMonthBucketsToDataFrame:
    """Test month_buckets_to_dataframe."""

    def test_basic_conversion(self):
        buckets = [
            MonthBucket(2024, 2, {"cases": Decimal("5")}),
            MonthBucket(2024, 1, {"cases": Decimal("7")}),
        ]
        df = month_buckets_to_dataframe(buckets, ["cases"])

        assert list(df.columns) == ["year", "month", "cases"]
        assert df["month"].tolist() == [1, 2]
        assert df["cases"].tolist() == [7.0, 5.0]

    def test_empty_buckets(self):
        df = month_buckets_to_dataframe([], ["cases", "courses"])
        assert df.empty
        assert list(df.columns) == ["year", "month", "cases", "courses"]


class TestPeriodsDataFrame:
    """Test conversion between periods and DataFrames."""

    def test_periods_to_dataframe_fills_missing_metrics(self):
        periods = [Period("p1", date(2024, 1, 1), date(2024, 1, 31), "January 2024", {"cases": 3})]
        df = periods_to_dataframe(periods, ["cases", "courses"])

        assert df.loc[0, "period_label"] == "January 2024"
        assert df.loc[0, "cases"] == 3.0
        assert df.loc[0, "courses"] == 0.0

    def test_dataframe_to_periods_parses_strings_and_sorts(self):
        df = pd.DataFrame(
            {
                "period_id": ["p2", "p1"],
                "period_start": ["2024-02-10", "2024-01-10"],
                "period_end": ["2024-03-09", "2024-02-09"],
                "cases": [4, 2.5],
            }
        )
        periods = dataframe_to_periods(df, ["cases"])

        assert [p.period_id for p in periods] == ["p1", "p2"]
        assert periods[0].period_start == date(2024, 1, 10)
        assert periods[0].value("cases") == Decimal("2.5")
        assert periods[1].value("cases") == Decimal("4")
        assert periods[0].period_label == ""

    def test_nan_metric_is_left_out(self):
        df = pd.DataFrame(
            {
                "period_id": ["p1"],
                "period_start": [pd.Timestamp("2024-01-01")],
                "period_end": [pd.Timestamp("2024-01-31")],
                "cases": [float("nan")],
            }
        )
        period = dataframe_to_periods(df, ["cases"])[0]

        assert "cases" not in period.metrics
        assert period.value("cases") == Decimal("0")

    def test_custom_column_names(self):
        df = pd.DataFrame(
            {
                "id": ["p1"],
                "start": ["2024-01-01"],
                "end": ["2024-01-31"],
                "label": ["Jan"],
                "cases": [1],
            }
        )
        periods = dataframe_to_periods(
            df,
            ["cases"],
            period_id_col="id",
            period_start_col="start",
            period_end_col="end",
            period_label_col="label",
        )
        assert periods[0].period_label == "Jan"

    def test_missing_column_raises(self):
        df = pd.DataFrame({"period_id": ["p1"], "period_start": ["2024-01-01"]})
        with pytest.raises(ValueError, match="missing required columns"):
            dataframe_to_periods(df, ["cases"])

    def test_null_date_raises(self):
        df = pd.DataFrame(
            {
                "period_id": ["p1"],
                "period_start": [None],
                "period_end": ["2024-01-31"],
                "cases": [1],
            }
        )
        with pytest.raises(ValueError, match="Null/NaN values found"):
            dataframe_to_periods(df, ["cases"])

    def test_empty_dataframe(self):
        df = pd.DataFrame(columns=["period_id", "period_start", "period_end", "cases"])
        assert dataframe_to_periods(df, ["cases"]) == []


class TestAggregateMonthlyDf:
    """Test aggregate_monthly_df convenience wrapper."""

    def test_split_period(self):
        df = pd.DataFrame(
            {
                "period_id": ["p1"],
                "period_start": ["2024-01-25"],
                "period_end": ["2024-02-05"],
                "cases": [12],
            }
        )
        result = aggregate_monthly_df(df, ["cases"], date(2024, 1, 1), date(2024, 2, 29))

        assert result["cases"].tolist() == [7.0, 5.0]
        assert result["month"].tolist() == [1, 2]


class TestAssessmentsToDataFrame:
    """Test assessments_to_dataframe."""

    def _assessment(self, entity_id, level):
        return RiskAssessment(
            entity_id=entity_id,
            risk_level=level,
            days_since_activity=1,
            months_since_enrollment=2,
            engagement_score=Decimal("0.75"),
            metric_engagement={"cases": Decimal("0.5")},
        )

    def test_risk_level_is_ordered_categorical(self):
        df = assessments_to_dataframe(
            [
                self._assessment("b", RiskLevel.CRITICAL),
                self._assessment("a", RiskLevel.LOW),
                self._assessment("c", RiskLevel.HIGH),
            ]
        )

        assert df["entity_id"].tolist() == ["a", "b", "c"]
        assert df["risk_level"].cat.ordered
        assert df[df["risk_level"] >= "high"]["entity_id"].tolist() == ["b", "c"]
        assert df["engagement_cases"].tolist() == [0.5, 0.5, 0.5]

    def test_empty_assessments(self):
        df = assessments_to_dataframe([])
        assert df.empty
        assert "risk_level" in df.columns
