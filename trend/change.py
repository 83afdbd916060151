"""
trend/change.py

Percentage-change helpers with an explicit zero-baseline policy.

Every relative change in the pipeline goes through
:func:`relative_change_pct`, and each caller names what a zero baseline
means for it:

- ``ZeroBaseline.NEUTRAL``: report 0.  Used by week-over-week activity
  change and latency deviation, where "no prior data" is not growth.
- ``ZeroBaseline.SENTINEL``: report a fixed large deviation when the
  observed value is positive.  Used by error-rate detection, where errors
  appearing from a clean baseline must trip the deviation rule.
"""

from __future__ import annotations

from enum import Enum

ZERO_BASELINE_SENTINEL_PCT: float = 1000.0


class ZeroBaseline(str, Enum):
    NEUTRAL = "neutral"
    SENTINEL = "sentinel"


def relative_change_pct(
    observed: float,
    baseline: float,
    zero_baseline: ZeroBaseline = ZeroBaseline.NEUTRAL,
    sentinel_pct: float = ZERO_BASELINE_SENTINEL_PCT,
) -> float:
    """
    ``(observed - baseline) / baseline * 100``.

    For ``baseline <= 0`` the result follows *zero_baseline*: 0 for
    ``NEUTRAL``; *sentinel_pct* for ``SENTINEL`` when ``observed > 0``
    (0 otherwise).
    """

    if baseline <= 0:
        if zero_baseline is ZeroBaseline.SENTINEL and observed > 0:
            return sentinel_pct
        return 0.0
    return (observed - baseline) / baseline * 100.0


def week_over_week_change(current_count: int, previous_count: int) -> float:
    """
    Event-count change between the current and the previous 7-day window.

    A previous count of zero yields 0 rather than infinite growth.
    """

    return relative_change_pct(float(current_count), float(previous_count), ZeroBaseline.NEUTRAL)
