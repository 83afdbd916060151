"""
trend/classifier.py

Three-way trend direction classification.
"""

from __future__ import annotations


class TrendDirection:
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def classify_direction(change_pct: float, threshold_pct: float = 5.0) -> str:
    """
    ``up`` above ``+threshold_pct``, ``down`` below ``-threshold_pct``,
    ``stable`` otherwise (boundaries inclusive of stable).
    """

    if change_pct > threshold_pct:
        return TrendDirection.UP
    if change_pct < -threshold_pct:
        return TrendDirection.DOWN
    return TrendDirection.STABLE
