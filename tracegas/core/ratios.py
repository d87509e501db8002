"""Guarded arithmetic helpers. Never return NaN or Infinity."""

from __future__ import annotations

import math
from collections.abc import Sequence


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Return ``numerator / denominator`` or ``default`` when undefined."""
    if not denominator:
        return default
    value = numerator / denominator
    if math.isnan(value) or math.isinf(value):
        return default
    return value


def percentages(values: Sequence[float], total: float) -> list[float]:
    """Percentage of each value against ``total``.

    The denominator is ``max(total, sum(values))`` so the result never sums
    above 100. A zero ``total`` yields all zeros, whatever the values.
    """
    if not total:
        return [0.0] * len(values)
    denominator = max(total, sum(values))
    return [safe_ratio(v, denominator) * 100 for v in values]


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))
