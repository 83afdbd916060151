"""
anomaly/base.py

Anomaly signal record, severity ordering and the detector contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from app.domain.intelligence import HealthSample

MAX_CONFIDENCE: float = 95.0


class Severity:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    RANK: dict[str, int] = {LOW: 1, MEDIUM: 2, HIGH: 3, CRITICAL: 4}


@dataclass(frozen=True)
class AnomalySignal:
    """
    One detected statistical or threshold-based outlier.

    ``confidence_score`` is on a 0-100 scale and never exceeds 95.
    Explanation fields are filled in later, by the Explainer step.
    """

    anomaly_type: str
    anomaly_category: str
    severity: str
    confidence_score: float
    description: str
    detection_method: str
    detection_algorithm: str
    source_type: str
    source_component_type: str | None = None
    source_component_name: str | None = None
    baseline_value: float | None = None
    observed_value: float | None = None
    deviation_percentage: float | None = None
    threshold_exceeded: str | None = None
    pattern_type: str | None = None
    business_impact: str | None = None
    recommended_actions: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    summary: str | None = None
    root_cause: str | None = None
    explanation_source: str | None = None

    @property
    def severity_rank(self) -> int:
        return Severity.RANK.get(self.severity, 0)

    def with_explanation(
        self,
        *,
        summary: str,
        root_cause: str,
        actions: Sequence[str],
        business_impact: str | None,
        source: str,
    ) -> "AnomalySignal":
        return replace(
            self,
            summary=summary,
            root_cause=root_cause,
            recommended_actions=tuple(actions) or self.recommended_actions,
            business_impact=business_impact or self.business_impact,
            explanation_source=source,
        )


@dataclass(frozen=True)
class Baselines:
    """Window averages used as the reference for deviation rules."""

    latency_ms: float = 0.0
    error_rate: float = 0.0


def compute_baselines(samples: Sequence[HealthSample]) -> Baselines:
    """
    Average latency and error rate over the window.  Missing readings
    count as 0, so a sample without a latency reading pulls the mean down
    rather than being skipped.
    """

    if not samples:
        return Baselines()
    count = len(samples)
    return Baselines(
        latency_ms=sum(s.latency_ms or 0.0 for s in samples) / count,
        error_rate=sum(s.error_rate or 0.0 for s in samples) / count,
    )


def cap_confidence(value: float) -> float:
    return round(max(0.0, min(MAX_CONFIDENCE, value)), 2)


class BaseAnomalyDetector(ABC):
    """
    Contract for rule-based detectors over health samples.

    Detectors are evaluated independently and their outputs unioned.
    No I/O, no logging, and no side effects are permitted inside
    :meth:`detect`.
    """

    @abstractmethod
    def detect(self, samples: Sequence[HealthSample], baselines: Baselines) -> list[AnomalySignal]:
        """Return zero or more signals for *samples*."""
