"""
Calculation Helpers - Derived Rates

Every derived value in the dashboard (turnout, averages, ratios, density,
correlations) is computed here from raw counts. All helpers guard against
division by zero and return 0 instead of raising.
"""

import math
from typing import Mapping, Sequence, Union

import numpy as np

Number = Union[int, float]


def safe_divide(numerator: Number, denominator: Number, fill_value: float = 0.0) -> float:
    """
    Safe division with configurable fill value for division by zero.

    Args:
        numerator: Value to divide
        denominator: Value to divide by
        fill_value: Value to use when denominator is zero

    Returns:
        Division result with safe handling
    """
    if not denominator:
        return fill_value
    return numerator / denominator


def calculate_percentage(numerator: Number, denominator: Number, round_digits: int = 1) -> float:
    """
    Safe percentage calculation with zero handling.

    Args:
        numerator: Value to divide
        denominator: Value to divide by
        round_digits: Number of decimal places to round to

    Returns:
        Percentage value (numerator/denominator * 100), 0 when denominator is 0
    """
    return round(safe_divide(numerator, denominator) * 100, round_digits)


def calculate_turnout_rate(voted: int, registered: int) -> float:
    """Turnout as a fraction in [0, 1]."""
    return safe_divide(voted, registered)


def calculate_density(count: Number, scale: Number) -> float:
    """
    Voter density score normalized to [0, 1].

    Precinct areas are not part of the input, so density is the registered
    count relative to a configured reference size, capped at 1.
    """
    if scale <= 0:
        return 0.0
    return min(1.0, count / scale)


def pick_majority(counts: Mapping[str, int], default: str = "Unknown") -> str:
    """
    Label with the highest count.

    Ties go to the label that sorts first, so the result never depends on
    mapping iteration order.
    """
    if not counts:
        return default
    return min(counts.items(), key=lambda item: (-item[1], item[0]))[0]


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson correlation coefficient of two parallel sequences.

    Returns 0.0 for fewer than two points or when either series is constant.
    """
    if len(x) != len(y):
        raise ValueError("Correlation inputs must have the same length")
    if len(x) < 2:
        return 0.0

    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    x_dev = x_arr - x_arr.mean()
    y_dev = y_arr - y_arr.mean()
    denominator = math.sqrt(float((x_dev**2).sum()) * float((y_dev**2).sum()))
    if denominator == 0:
        return 0.0

    return float((x_dev * y_dev).sum() / denominator)

