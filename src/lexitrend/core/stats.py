"""Numeric helpers that never raise on empty or degenerate input."""

import math
import statistics
from collections.abc import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.fmean(values)


def pstdev(values: Sequence[float]) -> float:
    """Population standard deviation, 0.0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return statistics.pstdev(values)


def pvariance(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    return statistics.pvariance(values)


def ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


def percentage(numerator: float, denominator: float) -> float:
    return ratio(numerator, denominator) * 100


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson correlation coefficient of paired values.

    Returns 0.0 for fewer than two pairs or when either series is constant.
    """
    n = min(len(xs), len(ys))
    if n < 2:
        return 0.0
    xs, ys = xs[:n], ys[:n]
    mean_x = statistics.fmean(xs)
    mean_y = statistics.fmean(ys)
    sxy = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
    sxx = sum((x - mean_x) ** 2 for x in xs)
    syy = sum((y - mean_y) ** 2 for y in ys)
    denominator = math.sqrt(sxx * syy)
    if denominator == 0:
        return 0.0
    return clamp(sxy / denominator, -1.0, 1.0)


def linear_regression(ys: Sequence[float]) -> tuple[float, float, float]:
    """Least-squares fit of ys against their index.

    Returns (slope, intercept, r_squared); all zero for fewer than two points.
    """
    n = len(ys)
    if n < 2:
        return 0.0, 0.0, 0.0
    xs = range(n)
    mean_x = (n - 1) / 2
    mean_y = statistics.fmean(ys)
    sxx = sum((x - mean_x) ** 2 for x in xs)
    slope = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys)) / sxx
    intercept = mean_y - slope * mean_x
    ss_total = sum((y - mean_y) ** 2 for y in ys)
    if ss_total == 0:
        return slope, intercept, 0.0
    ss_residual = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, ys))
    return slope, intercept, 1 - ss_residual / ss_total


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values, matching percentage displays."""
    return int(math.floor(value + 0.5))
