"""Number formatting and metric normalization."""

from __future__ import annotations

import math
from typing import Any, Iterable


def number_format(value: Any) -> str:
    """Group thousands with spaces: ``1234567`` -> ``"1 234 567"``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value:,}".replace(",", " ")


def normalize_value(value: float, min_value: float, max_value: float) -> float:
    """Linear position of ``value`` in ``[min_value, max_value]``; 0.5 for a degenerate range."""
    if max_value == min_value:
        return 0.5
    return (value - min_value) / (max_value - min_value)


def coerce_metric(value: Any) -> float:
    """Numeric metric value, 0 for anything missing or non-numeric."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def metric_range(values: Iterable[float]) -> tuple[float, float]:
    series = [value for value in values if not math.isnan(value)]
    if not series:
        return (0.0, 0.0)
    return (min(series), max(series))
