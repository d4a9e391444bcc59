"""Shared utilities for pandas conversion operations."""

from datetime import date
from decimal import Decimal

import pandas as pd  # type: ignore


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def float_to_decimal(value: float) -> Decimal:
    """Convert a numeric cell to Decimal, avoiding binary float noise.

    Args:
        value: Numeric cell value (int, float or numpy scalar)

    Returns:
        Decimal representation of the value

    Raises:
        TypeError: If value is not numeric

    Example:
        >>> float_to_decimal(123.45)
        Decimal('123.45')
    """
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected numeric type, got {type(value)}")
    return Decimal(str(value))


def to_date(value: object) -> date:
    """Convert a date-like cell (string, datetime, Timestamp) to a date."""
    return pd.Timestamp(value).date()
