"""Rounding and averaging helpers with zero-denominator guards."""

from __future__ import annotations

import math
from typing import Iterable, Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    if value is None or math.isnan(value) or math.isinf(value):
        return 0
    return int(math.floor(value + 0.5))


def safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def percentage(numerator: float, denominator: float) -> float:
    """Unrounded percentage; 0 when the denominator is empty."""
    return safe_ratio(numerator, denominator) * 100


def rounded_percentage(numerator: float, denominator: float) -> int:
    return round_half_up(percentage(numerator, denominator))


def mean(values: Iterable[float]) -> float:
    items = [float(value) for value in values]
    if not items:
        return 0.0
    return sum(items) / len(items)


def rounded_mean(values: Iterable[float]) -> int:
    return round_half_up(mean(values))


def positive_values(values: Iterable[Optional[float]]) -> list[float]:
    return [float(value) for value in values if value is not None and value > 0]


__all__ = [
    "mean",
    "percentage",
    "positive_values",
    "round_half_up",
    "rounded_mean",
    "rounded_percentage",
    "safe_ratio",
]
