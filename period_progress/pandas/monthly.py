"""Pandas DataFrame adapters for periods and calendar-month aggregation."""

from datetime import date
from typing import List, Mapping, Optional, Sequence

import pandas as pd  # type: ignore

from period_progress.analyses.monthly import aggregate_monthly
from period_progress.foundation.periods import MonthBucket, Period
from ._utils import decimal_to_float, float_to_decimal, to_date

PERIOD_COLUMNS = ["period_id", "period_start", "period_end", "period_label"]


def month_buckets_to_dataframe(
    buckets: Sequence[MonthBucket], metric_ids: Sequence[str]
) -> pd.DataFrame:
    """Convert month buckets to a DataFrame.

    Args:
        buckets: Sequence of MonthBucket objects
        metric_ids: Metrics to include, one float column each

    Returns:
        DataFrame with columns: year, month, then one column per metric,
        sorted by (year, month)

    Example:
        >>> buckets = aggregate_monthly(periods, ["cases"], date(2024, 1, 1), date(2024, 6, 30))
        >>> month_buckets_to_dataframe(buckets, ["cases"]).plot(x="month", y="cases")
    """
    columns = ["year", "month", *metric_ids]
    if not buckets:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "year": bucket.year,
            "month": bucket.month,
            **{
                metric_id: decimal_to_float(bucket.metrics.get(metric_id, 0))
                for metric_id in metric_ids
            },
        }
        for bucket in buckets
    ]
    df = pd.DataFrame(rows, columns=columns)
    return df.sort_values(["year", "month"]).reset_index(drop=True)


def periods_to_dataframe(
    periods: Sequence[Period], metric_ids: Sequence[str]
) -> pd.DataFrame:
    """Convert periods to a DataFrame.

    Missing metric values become 0.0 so the frame has no gaps.

    Returns:
        DataFrame with columns: period_id, period_start, period_end,
        period_label, then one column per metric
    """
    columns = [*PERIOD_COLUMNS, *metric_ids]
    if not periods:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "period_id": period.period_id,
            "period_start": period.period_start,
            "period_end": period.period_end,
            "period_label": period.period_label,
            **{
                metric_id: decimal_to_float(period.value(metric_id))
                for metric_id in metric_ids
            },
        }
        for period in periods
    ]
    return pd.DataFrame(rows, columns=columns)


def dataframe_to_periods(
    periods_df: pd.DataFrame,
    metric_ids: Sequence[str],
    period_id_col: str = "period_id",
    period_start_col: str = "period_start",
    period_end_col: str = "period_end",
    period_label_col: str = "period_label",
) -> List[Period]:
    """Convert a DataFrame to Period objects.

    Args:
        periods_df: DataFrame with one row per period
        metric_ids: Metric columns to read. A null cell means the metric
            was not recorded for that period (treated as zero downstream).
        *_col: Column name mappings for flexibility. The label column is
            optional.

    Returns:
        List of Period objects sorted by period_start

    Raises:
        ValueError: If DataFrame is missing required columns or has null
            identifiers or dates
    """
    required_cols = [period_id_col, period_start_col, period_end_col, *metric_ids]
    missing_cols = set(required_cols) - set(periods_df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if periods_df.empty:
        return []

    key_cols = [period_id_col, period_start_col, period_end_col]
    null_cols = periods_df[key_cols].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in columns: {null_col_names}. "
            "Periods require an id and both dates."
        )

    has_label = period_label_col in periods_df.columns
    periods = []
    for record in periods_df.to_dict("records"):
        metrics = {
            metric_id: float_to_decimal(record[metric_id])
            for metric_id in metric_ids
            if not pd.isna(record[metric_id])
        }
        label = record[period_label_col] if has_label else ""
        periods.append(
            Period(
                period_id=str(record[period_id_col]),
                period_start=to_date(record[period_start_col]),
                period_end=to_date(record[period_end_col]),
                period_label="" if pd.isna(label) else str(label),
                metrics=metrics,
            )
        )

    periods.sort(key=lambda period: period.period_start)
    return periods


def aggregate_monthly_df(
    periods_df: pd.DataFrame,
    metric_ids: Sequence[str],
    range_start: date,
    range_end: date,
    quanta: Optional[Mapping] = None,
    **column_names: str,
) -> pd.DataFrame:
    """Aggregate a periods DataFrame onto calendar months.

    Convenience function that combines conversion and aggregation.

    Example:
        >>> periods_df = pd.read_csv("periods.csv", parse_dates=["period_start", "period_end"])
        >>> monthly = aggregate_monthly_df(periods_df, ["cases"], date(2024, 1, 1), date(2024, 12, 31))
    """
    periods = dataframe_to_periods(periods_df, metric_ids, **column_names)
    buckets = aggregate_monthly(periods, metric_ids, range_start, range_end, quanta=quanta)
    return month_buckets_to_dataframe(buckets, metric_ids)
