"""
anomaly/severity.py

Ordering helpers for anomaly signals.
"""

from __future__ import annotations

from collections.abc import Iterable

from anomaly.base import AnomalySignal


def rank_by_severity(signals: Iterable[AnomalySignal]) -> list[AnomalySignal]:
    """
    Sort critical > high > medium > low, then by confidence descending.
    Ties keep their detection order.
    """

    return sorted(signals, key=lambda s: (-s.severity_rank, -s.confidence_score))


def top_n(signals: Iterable[AnomalySignal], n: int) -> list[AnomalySignal]:
    if n <= 0:
        return []
    return rank_by_severity(signals)[:n]


def count_by_severity(signals: Iterable[AnomalySignal]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for signal in signals:
        counts[signal.severity] = counts.get(signal.severity, 0) + 1
    return counts
