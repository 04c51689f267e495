"""Descriptive statistics used by the pattern and bias detectors."""

from collections import Counter
from datetime import datetime
from typing import Hashable, Optional, Sequence

import pandas as pd

from ..models.data_models import as_utc


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return float(pd.Series(values, dtype="float64").mean())


def consistency(values: Sequence[float]) -> float:
    """1 minus the coefficient of variation, floored at zero.

    Uses the population standard deviation. Fewer than two values, or a zero
    mean, give 0.
    """
    if len(values) < 2:
        return 0.0

    series = pd.Series(values, dtype="float64")
    avg = series.mean()
    if avg == 0:
        return 0.0
    return max(0.0, 1 - float(series.std(ddof=0)) / avg)


def diversity(values: Sequence[float]) -> float:
    """Spread of the values relative to the largest one."""
    if len(values) < 2:
        return 0.0

    high = max(values)
    if high == 0:
        return 0.0
    return (high - min(values)) / high


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation, 0 when undefined."""
    if len(x) != len(y) or len(x) < 2:
        return 0.0

    value = pd.Series(x, dtype="float64").corr(pd.Series(y, dtype="float64"))
    if pd.isna(value):
        return 0.0
    return float(value)


def categorical_consistency(values: Sequence[Hashable]) -> float:
    """Share of the most common value."""
    if len(values) < 2:
        return 0.0
    return Counter(values).most_common(1)[0][1] / len(values)


def dominant_value(values: Sequence[Hashable], default: str = "unknown") -> Hashable:
    """Most common value, first seen wins ties."""
    if not values:
        return default
    return Counter(values).most_common(1)[0][0]


def days_between(start: datetime, end: Optional[datetime]) -> float:
    """Signed number of days from start to end.

    Naive datetimes are treated as UTC.
    """
    if end is None:
        return 0.0
    return (as_utc(end) - as_utc(start)).total_seconds() / 86400


def sort_key(moment: datetime) -> datetime:
    """Key for ordering a mix of naive and aware datetimes."""
    return as_utc(moment)
