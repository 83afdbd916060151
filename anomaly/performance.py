"""
anomaly/performance.py

Latency spike and error-rate increase detectors.
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
from app.scoring_config import ErrorRateThresholds, LatencyThresholds
from trend.change import ZeroBaseline, relative_change_pct

_SOURCE_TYPE = "system_health_event"


class LatencySpikeDetector(BaseAnomalyDetector):
    """
    Flags samples whose latency deviates more than 100% from the window
    baseline, or exceeds 2000 ms outright.  A zero baseline yields a 0%
    deviation, so only the absolute rule can fire.
    """

    def __init__(self, thresholds: LatencyThresholds | None = None) -> None:
        self._t = thresholds or LatencyThresholds()

    def severity(self, latency_ms: float, deviation_pct: float) -> str:
        t = self._t
        if latency_ms > t.critical_ms or deviation_pct > t.critical_deviation_pct:
            return Severity.CRITICAL
        if latency_ms > t.high_ms or deviation_pct > t.high_deviation_pct:
            return Severity.HIGH
        return Severity.MEDIUM

    def detect(self, samples: Sequence[HealthSample], baselines: Baselines) -> list[AnomalySignal]:
        signals: list[AnomalySignal] = []
        baseline = baselines.latency_ms
        for sample in samples:
            latency = sample.latency_ms or 0.0
            deviation = relative_change_pct(latency, baseline, ZeroBaseline.NEUTRAL)
            if not (deviation > self._t.deviation_pct or latency > self._t.observed_ms):
                continue

            severity = self.severity(latency, deviation)
            signals.append(
                AnomalySignal(
                    anomaly_type="latency_spike",
                    anomaly_category="performance",
                    severity=severity,
                    confidence_score=cap_confidence(70 + deviation / 10),
                    description=(
                        f"Latency spike detected: {latency:.0f}ms "
                        f"(baseline: {baseline:.0f}ms, +{deviation:.1f}%)"
                    ),
                    detection_method="statistical_analysis",
                    detection_algorithm="threshold_comparison",
                    source_type=_SOURCE_TYPE,
                    source_component_type=sample.component_type,
                    source_component_name=sample.component_name,
                    baseline_value=round(baseline, 4),
                    observed_value=latency,
                    deviation_percentage=round(deviation, 4),
                    threshold_exceeded="latency_threshold",
                    pattern_type="sudden_spike",
                    business_impact={Severity.CRITICAL: "high", Severity.HIGH: "medium"}.get(severity, "low"),
                    recommended_actions=(
                        "investigate_recent_deployments",
                        "check_resource_utilization",
                        "review_database_queries",
                        "scale_up_resources",
                    ),
                    tags=("latency", "performance", "automated_detection"),
                )
            )
        return signals


class ErrorRateDetector(BaseAnomalyDetector):
    """
    Flags samples whose error rate deviates more than 100% from the window
    baseline, or exceeds 5%.  Errors appearing over a zero baseline are
    reported with the sentinel deviation (1000% by default).
    """

    def __init__(self, thresholds: ErrorRateThresholds | None = None) -> None:
        self._t = thresholds or ErrorRateThresholds()

    def severity(self, error_rate: float, deviation_pct: float) -> str:
        t = self._t
        if error_rate > t.critical_rate_pct or deviation_pct > t.critical_deviation_pct:
            return Severity.CRITICAL
        if error_rate > t.high_rate_pct or deviation_pct > t.high_deviation_pct:
            return Severity.HIGH
        return Severity.MEDIUM

    def detect(self, samples: Sequence[HealthSample], baselines: Baselines) -> list[AnomalySignal]:
        signals: list[AnomalySignal] = []
        baseline = baselines.error_rate
        for sample in samples:
            error_rate = sample.error_rate or 0.0
            deviation = relative_change_pct(
                error_rate,
                baseline,
                ZeroBaseline.SENTINEL,
                sentinel_pct=self._t.zero_baseline_deviation_pct,
            )
            if not (deviation > self._t.deviation_pct or error_rate > self._t.rate_pct):
                continue

            severity = self.severity(error_rate, deviation)
            signals.append(
                AnomalySignal(
                    anomaly_type="error_rate_increase",
                    anomaly_category="reliability",
                    severity=severity,
                    confidence_score=cap_confidence(75 + deviation / 20),
                    description=(
                        f"Error rate increase detected: {error_rate:.2f}% "
                        f"(baseline: {baseline:.2f}%, +{deviation:.1f}%)"
                    ),
                    detection_method="statistical_analysis",
                    detection_algorithm="threshold_comparison",
                    source_type=_SOURCE_TYPE,
                    source_component_type=sample.component_type,
                    source_component_name=sample.component_name,
                    baseline_value=round(baseline, 4),
                    observed_value=error_rate,
                    deviation_percentage=round(deviation, 4),
                    threshold_exceeded="error_rate_threshold",
                    pattern_type="gradual_increase",
                    business_impact={Severity.CRITICAL: "critical", Severity.HIGH: "high"}.get(severity, "medium"),
                    recommended_actions=(
                        "review_error_logs",
                        "check_integration_health",
                        "restart_affected_services",
                        "rollback_recent_changes",
                    ),
                    tags=("error_rate", "reliability", "automated_detection"),
                )
            )
        return signals
