"""
anomaly/detector.py

Runs every rule detector over a window of health samples, ranks the
union of their signals and escalates the most severe ones to the
injected explainer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from anomaly.base import AnomalySignal, BaseAnomalyDetector, Baselines, compute_baselines
from anomaly.explainer import BaseExplainer, TemplateExplainer, explain_safely
from anomaly.performance import ErrorRateDetector, LatencySpikeDetector
from anomaly.resources import ResourceExhaustionDetector
from anomaly.severity import rank_by_severity
from app.domain.intelligence import HealthSample
from app.scoring_config import ScoringConfig, get_scoring_config


@dataclass(frozen=True)
class DetectionResult:
    baselines: Baselines
    signals: tuple[AnomalySignal, ...]
    explanations_performed: int = 0


def default_detectors(config: ScoringConfig) -> list[BaseAnomalyDetector]:
    return [
        LatencySpikeDetector(config.latency),
        ErrorRateDetector(config.error_rate),
        ResourceExhaustionDetector(config.resources),
    ]


class AnomalyDetector:
    """
    Parameters
    ----------
    config:
        Thresholds; defaults to the process scoring configuration.
    explainer:
        Strategy used for the top ``explain_top_n`` signals.  Failures
        fall back to template text and never drop a signal.
    detectors:
        Override the rule set (tests).
    """

    def __init__(
        self,
        config: ScoringConfig | None = None,
        explainer: BaseExplainer | None = None,
        explain_top_n: int = 3,
        detectors: Sequence[BaseAnomalyDetector] | None = None,
    ) -> None:
        self._config = config or get_scoring_config()
        self._explainer = explainer or TemplateExplainer()
        self._explain_top_n = max(0, explain_top_n)
        self._detectors = list(detectors) if detectors is not None else default_detectors(self._config)

    def evaluate(self, samples: Sequence[HealthSample]) -> DetectionResult:
        baselines = compute_baselines(samples)
        found: list[AnomalySignal] = []
        for detector in self._detectors:
            found.extend(detector.detect(samples, baselines))

        ranked = rank_by_severity(found)
        explained = 0
        output: list[AnomalySignal] = []
        for index, signal in enumerate(ranked):
            if index < self._explain_top_n:
                related = [
                    s for s in samples
                    if s.component_name == signal.source_component_name
                ]
                signal, produced = explain_safely(self._explainer, signal, related)
                explained += int(produced)
            output.append(signal)

        return DetectionResult(
            baselines=baselines,
            signals=tuple(output),
            explanations_performed=explained,
        )
