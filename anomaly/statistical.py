"""
anomaly/statistical.py

Z-score anomaly scoring across the four normalized dimensions of one
snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from anomaly.base import AnomalySignal, Severity, cap_confidence
from normalization.dimensions import DIMENSIONS, DimensionScores


@dataclass(frozen=True)
class ZScoreResult:
    score: float
    detected: bool
    outlier_dimension: str | None = None


class DimensionZScoreScorer:
    """
    Maximum absolute z-score of the dimension values relative to their own
    mean and population standard deviation.

    A zero standard deviation scores 0.  Windows without events are never
    anomalous.  With four values the population z-score cannot exceed
    sqrt(3), so deployments that want the check to fire set
    ``zscore_threshold`` below that bound.
    """

    def __init__(self, threshold: float = 2.0) -> None:
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    def score(self, dims: DimensionScores) -> tuple[float, str | None]:
        values = np.asarray(dims.values(), dtype=np.float64)
        std = float(values.std())
        if std == 0:
            return 0.0, None
        z = np.abs((values - values.mean()) / std)
        index = int(z.argmax())
        return round(float(z[index]), 6), DIMENSIONS[index]

    def evaluate(self, dims: DimensionScores, event_count: int) -> ZScoreResult:
        score, dimension = self.score(dims)
        detected = event_count > 0 and score > self._threshold
        return ZScoreResult(score=score, detected=detected, outlier_dimension=dimension)

    def to_signal(
        self,
        result: ZScoreResult,
        dims: DimensionScores,
        *,
        service_name: str,
        category: str,
    ) -> AnomalySignal:
        """Build the statistical AnomalySignal for a flagged result."""

        dimension = result.outlier_dimension or DIMENSIONS[0]
        values = dims.as_dict()
        mean = float(np.mean(list(values.values())))
        observed = values.get(dimension, 0.0)
        severity = Severity.HIGH if result.score > self._threshold * 1.5 else Severity.MEDIUM
        deviation = ((observed - mean) / mean * 100) if mean else 0.0
        return AnomalySignal(
            anomaly_type="dimension_outlier",
            anomaly_category="statistical",
            severity=severity,
            confidence_score=cap_confidence(60 + result.score * 10),
            description=(
                f"{dimension.replace('_', ' ').title()} is {result.score:.2f} standard "
                f"deviations from the {service_name} dimension mean"
            ),
            detection_method="statistical_analysis",
            detection_algorithm="z_score",
            source_type="integration_intelligence",
            source_component_type=category,
            source_component_name=service_name,
            baseline_value=round(mean, 4),
            observed_value=round(observed, 4),
            deviation_percentage=round(deviation, 4),
            threshold_exceeded=f"zscore_{self._threshold:g}",
            pattern_type="dimension_outlier",
            business_impact="medium" if severity == Severity.HIGH else "low",
            recommended_actions=("review_integration_activity", "verify_metric_sources"),
            tags=("statistical", dimension, "automated_detection"),
            metadata={"z_score": result.score, "dimensions": values},
        )
