"""
tests/test_anomaly.py

Pytest unit tests for the rule detectors, the dimension z-score scorer,
severity ranking and the explainer fallback.

Coverage
--------
- Latency spike thresholds, severity and confidence cap
- Error-rate sentinel deviation over a zero baseline
- CPU and memory exhaustion as separate signals
- Z-score bound with four values and a configurable threshold
- Severity ranking (critical > high > medium > low, then confidence)
- Explainer failures degrade to template text without dropping signals
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from anomaly.base import AnomalySignal, Baselines, Severity, compute_baselines
from anomaly.detector import AnomalyDetector
from anomaly.explainer import (
    BaseExplainer,
    ExplanationSource,
    LLMExplainer,
    TemplateExplainer,
    explain_safely,
)
from anomaly.performance import ErrorRateDetector, LatencySpikeDetector
from anomaly.resources import ResourceExhaustionDetector
from anomaly.severity import count_by_severity, rank_by_severity, top_n
from anomaly.statistical import DimensionZScoreScorer
from app.domain.intelligence import HealthSample
from app.scoring_config import ScoringConfig
from fakes import NOW, FailingLLMAdapter, ScriptedLLMAdapter
from llm_synthesis.adapter import MockLLMAdapter
from normalization.dimensions import DimensionScores


def _sample(name: str = "api", **readings) -> HealthSample:
    return HealthSample(
        component_type="service",
        component_name=name,
        measured_at=NOW - timedelta(minutes=1),
        **readings,
    )


def _signal(severity: str, confidence: float, name: str = "x") -> AnomalySignal:
    return AnomalySignal(
        anomaly_type="latency_spike",
        anomaly_category="performance",
        severity=severity,
        confidence_score=confidence,
        description=name,
        detection_method="statistical_analysis",
        detection_algorithm="threshold_comparison",
        source_type="system_health_event",
        source_component_name=name,
    )


# ---------------------------------------------------------------------------
# Performance detectors
# ---------------------------------------------------------------------------


class TestLatencySpike:
    def test_spike_over_baseline_is_critical(self) -> None:
        signals = LatencySpikeDetector().detect([_sample(latency_ms=2500)], Baselines(latency_ms=200))
        assert len(signals) == 1
        signal = signals[0]
        assert signal.deviation_percentage == pytest.approx(1150.0)
        assert signal.severity == Severity.CRITICAL
        assert signal.confidence_score == 95.0
        assert signal.anomaly_type == "latency_spike"

    def test_within_bounds_is_ignored(self) -> None:
        assert LatencySpikeDetector().detect([_sample(latency_ms=300)], Baselines(latency_ms=200)) == []

    def test_zero_baseline_only_absolute_rule(self) -> None:
        detector = LatencySpikeDetector()
        assert detector.detect([_sample(latency_ms=1500)], Baselines(latency_ms=0)) == []
        signals = detector.detect([_sample(latency_ms=2100)], Baselines(latency_ms=0))
        assert signals[0].deviation_percentage == 0.0
        assert signals[0].severity == Severity.MEDIUM

    def test_high_severity_band(self) -> None:
        signals = LatencySpikeDetector().detect([_sample(latency_ms=3500)], Baselines(latency_ms=3000))
        assert signals[0].severity == Severity.HIGH


class TestErrorRate:
    def test_errors_over_clean_baseline_use_sentinel(self) -> None:
        signals = ErrorRateDetector().detect([_sample(error_rate=2.0)], Baselines(error_rate=0.0))
        assert len(signals) == 1
        assert signals[0].deviation_percentage == 1000.0
        assert signals[0].severity == Severity.CRITICAL

    def test_absolute_rate_rule(self) -> None:
        signals = ErrorRateDetector().detect([_sample(error_rate=6.0)], Baselines(error_rate=5.0))
        assert signals[0].severity == Severity.MEDIUM

    def test_no_errors_no_signal(self) -> None:
        assert ErrorRateDetector().detect([_sample(error_rate=0.0)], Baselines(error_rate=0.0)) == []


class TestResources:
    def test_cpu_and_memory_produce_separate_signals(self) -> None:
        signals = ResourceExhaustionDetector().detect(
            [_sample(cpu_usage_percent=92.0, memory_usage_percent=97.0)], Baselines()
        )
        by_tag = {s.tags[0]: s for s in signals}
        assert set(by_tag) == {"cpu", "memory"}
        assert by_tag["cpu"].severity == Severity.HIGH
        assert by_tag["cpu"].confidence_score == pytest.approx(92.0)
        assert by_tag["memory"].severity == Severity.CRITICAL
        assert by_tag["memory"].confidence_score == pytest.approx(92.0)

    def test_below_threshold(self) -> None:
        assert ResourceExhaustionDetector().detect([_sample(cpu_usage_percent=80.0)], Baselines()) == []


def test_baselines_count_missing_readings_as_zero() -> None:
    baselines = compute_baselines([_sample(latency_ms=400), _sample()])
    assert baselines.latency_ms == 200.0
    assert compute_baselines([]) == Baselines()


# ---------------------------------------------------------------------------
# Statistical scorer
# ---------------------------------------------------------------------------


class TestZScore:
    def test_score_is_bounded_with_four_values(self) -> None:
        dims = DimensionScores(activity_volume=100, participation_level=0, responsiveness=0, throughput=0)
        score, dimension = DimensionZScoreScorer().score(dims)
        assert score == pytest.approx(3 ** 0.5, rel=1e-5)
        assert dimension == "activity_volume"
        assert DimensionZScoreScorer(2.0).evaluate(dims, 10).detected is False

    def test_lower_threshold_flags_outlier(self) -> None:
        dims = DimensionScores(activity_volume=100, participation_level=0, responsiveness=0, throughput=0)
        scorer = DimensionZScoreScorer(1.5)
        result = scorer.evaluate(dims, 10)
        assert result.detected is True
        signal = scorer.to_signal(result, dims, service_name="jira", category="project_management")
        assert signal.anomaly_type == "dimension_outlier"
        assert signal.source_component_name == "jira"
        assert signal.confidence_score <= 95.0

    def test_flat_dimensions_score_zero(self) -> None:
        result = DimensionZScoreScorer(0.1).evaluate(DimensionScores(50, 50, 50, 50), 5)
        assert result.score == 0.0
        assert result.detected is False

    def test_empty_window_never_flags(self) -> None:
        dims = DimensionScores(activity_volume=100, participation_level=0, responsiveness=0, throughput=0)
        assert DimensionZScoreScorer(0.5).evaluate(dims, 0).detected is False


# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------


class TestSeverity:
    def test_rank_by_severity_then_confidence(self) -> None:
        signals = [
            _signal(Severity.LOW, 90, "a"),
            _signal(Severity.CRITICAL, 70, "b"),
            _signal(Severity.HIGH, 80, "c"),
            _signal(Severity.CRITICAL, 90, "d"),
        ]
        assert [s.description for s in rank_by_severity(signals)] == ["d", "b", "c", "a"]

    def test_top_n(self) -> None:
        signals = [_signal(Severity.MEDIUM, 70, "a"), _signal(Severity.HIGH, 70, "b")]
        assert [s.description for s in top_n(signals, 1)] == ["b"]
        assert top_n(signals, 0) == []

    def test_count_by_severity(self) -> None:
        signals = [_signal(Severity.HIGH, 70), _signal(Severity.HIGH, 60), _signal(Severity.LOW, 50)]
        assert count_by_severity(signals) == {"high": 2, "low": 1}


# ---------------------------------------------------------------------------
# Explainers
# ---------------------------------------------------------------------------


class _BrokenExplainer(BaseExplainer):
    source = "broken"

    def explain(self, signal, recent_samples=()):
        raise RuntimeError("explainer offline")


class TestExplainers:
    def test_template_is_deterministic(self) -> None:
        signal = LatencySpikeDetector().detect([_sample(latency_ms=2500)], Baselines(latency_ms=200))[0]
        first = TemplateExplainer().explain(signal)
        second = TemplateExplainer().explain(signal)
        assert first == second
        assert first.summary == "Critical latency spike on api."
        assert first.source == ExplanationSource.TEMPLATE

    def test_failure_falls_back_to_template(self) -> None:
        signal = _signal(Severity.HIGH, 80, "db")
        explained, produced = explain_safely(_BrokenExplainer(), signal)
        assert produced is False
        assert explained.explanation_source == ExplanationSource.TEMPLATE
        assert explained.summary

    def test_llm_explainer_with_mock_adapter(self) -> None:
        signal = _signal(Severity.HIGH, 80, "db")
        explained, produced = explain_safely(LLMExplainer(MockLLMAdapter()), signal)
        assert produced is True
        assert explained.explanation_source == ExplanationSource.LLM
        assert explained.business_impact == "low"

    def test_llm_transport_error_falls_back(self) -> None:
        adapter = FailingLLMAdapter()
        explained, produced = explain_safely(LLMExplainer(adapter, max_retries=2), _signal(Severity.HIGH, 80))
        assert produced is False
        assert adapter.calls == 1
        assert explained.explanation_source == ExplanationSource.TEMPLATE

    def test_llm_malformed_output_retried_then_falls_back(self) -> None:
        adapter = ScriptedLLMAdapter(["not json"])
        _, produced = explain_safely(LLMExplainer(adapter, max_retries=1), _signal(Severity.HIGH, 80))
        assert produced is False
        assert len(adapter.prompts) == 2


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------


class TestDetector:
    def test_union_ranked_and_top_n_explained(self) -> None:
        samples = [
            _sample("api", latency_ms=100),
            _sample("api", latency_ms=100),
            _sample("db", latency_ms=6000, cpu_usage_percent=85.0),
        ]
        detector = AnomalyDetector(ScoringConfig(), explainer=TemplateExplainer(), explain_top_n=1)
        result = detector.evaluate(samples)
        assert len(result.signals) == 2
        assert result.signals[0].severity == Severity.CRITICAL
        assert result.signals[0].summary is not None
        assert result.signals[1].summary is None
        assert result.explanations_performed == 1

    def test_fallbacks_are_not_counted_as_explanations(self) -> None:
        samples = [_sample("db", latency_ms=6000)]
        detector = AnomalyDetector(ScoringConfig(), explainer=_BrokenExplainer(), explain_top_n=3)
        result = detector.evaluate(samples)
        assert len(result.signals) == 1
        assert result.signals[0].explanation_source == ExplanationSource.TEMPLATE
        assert result.explanations_performed == 0

    def test_no_samples(self) -> None:
        result = AnomalyDetector(ScoringConfig()).evaluate([])
        assert result.signals == ()
