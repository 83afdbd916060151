"""
normalization/scaler.py

Deterministic linear rescaling onto the canonical 0-100 scale.
"""

from __future__ import annotations

from collections.abc import Sequence

from app.scoring_config import ScaleRange

NEUTRAL_SCORE: float = 50.0
SCALE_MIN: float = 0.0
SCALE_MAX: float = 100.0


def clamp(value: float, min_value: float = SCALE_MIN, max_value: float = SCALE_MAX) -> float:
    """Clamp *value* to ``[min_value, max_value]``."""
    return max(min_value, min(value, max_value))


def normalize(value: float, min_value: float, max_value: float) -> float:
    """
    Linearly rescale *value* from ``[min_value, max_value]`` onto 0-100.

    The result is clamped, so out-of-range inputs saturate at the bounds.
    A degenerate range (``min_value == max_value``) returns the neutral
    midpoint 50 instead of dividing by zero.
    """

    if max_value == min_value:
        return NEUTRAL_SCORE
    scaled = (value - min_value) / (max_value - min_value) * SCALE_MAX
    return clamp(scaled)


def normalize_range(value: float, scale_range: ScaleRange) -> float:
    return normalize(value, scale_range.low, scale_range.high)


def normalize_to_history(value: float, history: Sequence[float]) -> float:
    """
    Adaptive scaling: rescale *value* against the observed min/max of its own
    history (the current value included).  An empty or flat history is
    neutral.
    """

    if not history:
        return NEUTRAL_SCORE
    observed = [*history, value]
    return normalize(value, min(observed), max(observed))


def ratio_score(numerator: float, denominator: float) -> float:
    """
    ``numerator / denominator * 100`` clamped to 0-100, or the neutral 50
    when there is nothing to divide by.  Zero volume is neutral, not a
    penalty.
    """

    if denominator <= 0:
        return NEUTRAL_SCORE
    return clamp(numerator / denominator * SCALE_MAX)


def inverse_ratio_score(numerator: float, denominator: float, factor: float = 1.0) -> float:
    """``100 - numerator / denominator * 100 * factor`` floored at 0, neutral when empty."""
    if denominator <= 0:
        return NEUTRAL_SCORE
    return clamp(SCALE_MAX - numerator / denominator * SCALE_MAX * factor)
