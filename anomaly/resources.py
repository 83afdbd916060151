"""
anomaly/resources.py

CPU and memory exhaustion checks.  Each resource produces its own signal.
"""

from __future__ import annotations

from collections.abc import Sequence

from anomaly.base import (
    AnomalySignal,
    BaseAnomalyDetector,
    Baselines,
    Severity,
    cap_confidence,
)
from app.domain.intelligence import HealthSample
from app.scoring_config import ResourceThresholds

_BASE_CONFIDENCE: float = 80.0

_ACTIONS: dict[str, tuple[str, ...]] = {
    "cpu": (
        "scale_up_resources",
        "optimize_cpu_intensive_operations",
        "investigate_runaway_processes",
    ),
    "memory": (
        "scale_up_memory",
        "investigate_memory_leaks",
        "clear_caches",
        "restart_services",
    ),
}


def _severity(usage: float, high: float, critical: float) -> str:
    if usage > critical:
        return Severity.CRITICAL
    if usage > high:
        return Severity.HIGH
    return Severity.MEDIUM


class ResourceExhaustionDetector(BaseAnomalyDetector):
    """
    Absolute threshold checks: CPU above 80% (high above 90, critical above
    95) and memory above 85% (high above 90, critical above 95).

    Confidence starts at 80 and grows one point per percentage point over
    the threshold, capped at 95.
    """

    def __init__(self, thresholds: ResourceThresholds | None = None) -> None:
        self._t = thresholds or ResourceThresholds()

    def detect(self, samples: Sequence[HealthSample], baselines: Baselines) -> list[AnomalySignal]:
        t = self._t
        signals: list[AnomalySignal] = []
        for sample in samples:
            checks = (
                ("cpu", "CPU", sample.cpu_usage_percent or 0.0, t.cpu_pct, t.cpu_high_pct, t.cpu_critical_pct),
                ("memory", "Memory", sample.memory_usage_percent or 0.0, t.memory_pct, t.memory_high_pct, t.memory_critical_pct),
            )
            for resource, label, usage, threshold, high, critical in checks:
                if usage <= threshold:
                    continue
                severity = _severity(usage, high, critical)
                signals.append(
                    AnomalySignal(
                        anomaly_type="resource_exhaustion",
                        anomaly_category="capacity",
                        severity=severity,
                        confidence_score=cap_confidence(_BASE_CONFIDENCE + (usage - threshold)),
                        description=f"{label} usage above threshold: {usage:.1f}%",
                        detection_method="rule_based",
                        detection_algorithm="threshold_check",
                        source_type="system_health_event",
                        source_component_type=sample.component_type,
                        source_component_name=sample.component_name,
                        observed_value=usage,
                        threshold_exceeded=f"{resource}_threshold_{threshold:g}",
                        pattern_type="sustained_high",
                        business_impact="critical" if severity == Severity.CRITICAL else "high",
                        recommended_actions=_ACTIONS[resource],
                        tags=(resource, "resource_exhaustion", "automated_detection"),
                        metadata={f"{resource}_usage_percent": usage},
                    )
                )
        return signals
