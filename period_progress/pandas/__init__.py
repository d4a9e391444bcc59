"""Pandas DataFrame adapters for the period progress engine."""

from .monthly import (
    aggregate_monthly_df,
    dataframe_to_periods,
    month_buckets_to_dataframe,
    periods_to_dataframe,
)
from .risk import assessments_to_dataframe

__all__ = [
    # Period / monthly adapters
    "aggregate_monthly_df",
    "dataframe_to_periods",
    "month_buckets_to_dataframe",
    "periods_to_dataframe",
    # Risk adapters
    "assessments_to_dataframe",
]
