"""
weighting/engine.py

Closed-form adaptive weight computation for the metrics of one
(user, integration) pair.

For a composite score history with coefficient of variation ``cv``:

    variance    = clamp(cv, 0, 1)          (neutral 0.5 with < 2 points)
    confidence  = clamp(1 - variance, 0, 1)
    raw_weight  = base * (1 + alpha*variance + beta*confidence - gamma*penalty)
    final       = raw / sum(raw)           (uniform 1/k when sum <= 0)

The engine is pure: no I/O, no logging, no clock.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from app.scoring_config import WeightingCoefficients


@dataclass(frozen=True)
class MetricWeightInput:
    metric_name: str
    base_weight: float | None = None
    normalized_value: float = 0.0
    correlation_penalty: float = 0.0


@dataclass(frozen=True)
class WeightDecision:
    metric_name: str
    raw_weight: float
    final_weight: float
    variance: float
    confidence: float
    correlation_penalty: float
    previous_weight: float | None = None


@dataclass(frozen=True)
class WeightingOutcome:
    variance: float
    confidence: float
    decisions: tuple[WeightDecision, ...]

    @property
    def weights(self) -> dict[str, float]:
        return {d.metric_name: d.final_weight for d in self.decisions}

    def weight_changes(self) -> dict[str, dict[str, float]]:
        """``{metric: {"old": ..., "new": ...}}`` for metrics that had a previous weight."""
        return {
            d.metric_name: {"old": d.previous_weight, "new": d.final_weight}
            for d in self.decisions
            if d.previous_weight is not None
        }


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def renormalize(raw_weights: Sequence[float]) -> list[float]:
    """
    Scale *raw_weights* to sum to 1.  A non-positive total (or an empty
    input) falls back to a uniform split.
    """

    count = len(raw_weights)
    if count == 0:
        return []
    total = float(sum(raw_weights))
    if total <= 0:
        return [1.0 / count] * count
    return [w / total for w in raw_weights]


def composite_score(
    values: Mapping[str, float],
    weights: Mapping[str, float] | None = None,
) -> float:
    """
    Weighted mean of 0-100 *values*.

    Metrics without a weight (or an empty/zero weight map) are averaged
    uniformly, so a first run before any recalibration still scores.
    """

    if not values:
        return 0.0
    weights = weights or {}
    applied = [max(0.0, weights.get(name, 0.0)) for name in values]
    normalized = renormalize(applied)
    return float(sum(v * w for v, w in zip(values.values(), normalized)))


class AdaptiveWeightingEngine:
    """
    Variance- and confidence-driven weight recalibration.

    Parameters
    ----------
    coefficients:
        Formula coefficients and history settings; defaults to
        alpha=0.3, beta=0.5, gamma=0.2 over at most 30 history points.
    """

    def __init__(self, coefficients: WeightingCoefficients | None = None) -> None:
        self._coefficients = coefficients or WeightingCoefficients()

    @property
    def coefficients(self) -> WeightingCoefficients:
        return self._coefficients

    def score_variance(self, history: Sequence[float]) -> float:
        """
        Coefficient of variation of the most recent ``history_limit`` scores,
        clamped to [0, 1].  *history* is ordered oldest first.
        """

        recent = list(history)[-self._coefficients.history_limit :]
        if len(recent) < 2:
            return self._coefficients.neutral_variance
        series = np.asarray(recent, dtype=np.float64)
        mean = float(series.mean())
        if mean <= 0:
            return 0.0
        return _clamp_unit(float(series.std()) / mean)

    def confidence(self, variance: float) -> float:
        return _clamp_unit(1.0 - variance)

    def raw_weight(
        self,
        base_weight: float | None,
        variance: float,
        confidence: float,
        correlation_penalty: float = 0.0,
    ) -> float:
        c = self._coefficients
        base = base_weight if base_weight else c.default_base_weight
        multiplier = 1.0 + c.alpha * variance + c.beta * confidence - c.gamma * correlation_penalty
        return max(0.0, base * multiplier)

    def compute(
        self,
        metrics: Sequence[MetricWeightInput],
        score_history: Sequence[float],
        previous_weights: Mapping[str, float] | None = None,
    ) -> WeightingOutcome:
        """
        Recompute final weights for every metric in *metrics*.

        The returned decisions sum to 1 whenever at least one metric is
        given; an empty *metrics* sequence yields an empty outcome.
        """

        variance = self.score_variance(score_history)
        confidence = self.confidence(variance)
        previous_weights = previous_weights or {}

        raw = [
            self.raw_weight(m.base_weight, variance, confidence, m.correlation_penalty)
            for m in metrics
        ]
        finals = renormalize(raw)

        decisions = tuple(
            WeightDecision(
                metric_name=m.metric_name,
                raw_weight=r,
                final_weight=f,
                variance=variance,
                confidence=confidence,
                correlation_penalty=m.correlation_penalty,
                previous_weight=previous_weights.get(m.metric_name),
            )
            for m, r, f in zip(metrics, raw, finals)
        )
        return WeightingOutcome(variance=variance, confidence=confidence, decisions=decisions)
