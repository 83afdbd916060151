"""
tests/test_weighting.py

Pytest unit tests for the adaptive weighting engine and composite score.
"""

from __future__ import annotations

import pytest

from app.scoring_config import WeightingCoefficients
from weighting.engine import (
    AdaptiveWeightingEngine,
    MetricWeightInput,
    composite_score,
    renormalize,
)


@pytest.fixture()
def engine() -> AdaptiveWeightingEngine:
    return AdaptiveWeightingEngine()


def _metrics(*names: str, base: float | None = None) -> list[MetricWeightInput]:
    return [MetricWeightInput(metric_name=n, base_weight=base) for n in names]


class TestVariance:
    def test_flat_history_has_zero_variance(self, engine) -> None:
        assert engine.score_variance([10.0, 10.0, 10.0]) == 0.0
        assert engine.confidence(0.0) == 1.0

    def test_short_history_is_neutral(self, engine) -> None:
        assert engine.score_variance([]) == 0.5
        assert engine.score_variance([42.0]) == 0.5

    def test_non_positive_mean(self, engine) -> None:
        assert engine.score_variance([0.0, 0.0]) == 0.0

    def test_clamped_to_one(self, engine) -> None:
        assert engine.score_variance([0.0, 0.0, 0.0, 100.0]) == 1.0

    def test_history_limit_keeps_the_newest_points(self) -> None:
        engine = AdaptiveWeightingEngine(WeightingCoefficients(history_limit=2))
        assert engine.score_variance([90.0, 10.0, 10.0]) == 0.0
        assert engine.score_variance([10.0, 10.0, 90.0]) > 0.0


class TestRawWeight:
    def test_stable_history_multiplier(self, engine) -> None:
        # 1 + 0.3*0 + 0.5*1 - 0.2*0
        assert engine.raw_weight(0.25, 0.0, 1.0) == pytest.approx(0.375)

    def test_missing_base_uses_default(self, engine) -> None:
        assert engine.raw_weight(None, 0.0, 1.0) == pytest.approx(1.5)

    def test_penalty_floor(self) -> None:
        engine = AdaptiveWeightingEngine(WeightingCoefficients(gamma=10.0))
        assert engine.raw_weight(1.0, 0.0, 0.0, correlation_penalty=1.0) == 0.0


class TestCompute:
    def test_stable_history_scenario(self, engine) -> None:
        outcome = engine.compute(_metrics("a", "b", "c", "d", base=0.25), [10.0, 10.0, 10.0])
        assert outcome.variance == 0.0
        assert outcome.confidence == 1.0
        assert all(d.raw_weight == pytest.approx(0.375) for d in outcome.decisions)
        assert sum(outcome.weights.values()) == pytest.approx(1.0)
        assert all(w == pytest.approx(0.25) for w in outcome.weights.values())

    def test_weights_follow_base_ratio(self, engine) -> None:
        metrics = [
            MetricWeightInput("a", base_weight=3.0),
            MetricWeightInput("b", base_weight=1.0),
        ]
        outcome = engine.compute(metrics, [5.0, 7.0, 6.0])
        assert outcome.weights["a"] == pytest.approx(0.75)
        assert outcome.weights["b"] == pytest.approx(0.25)

    def test_all_zero_raw_weights_fall_back_to_uniform(self) -> None:
        engine = AdaptiveWeightingEngine(WeightingCoefficients(gamma=10.0))
        metrics = [MetricWeightInput(n, base_weight=1.0, correlation_penalty=1.0) for n in ("a", "b")]
        outcome = engine.compute(metrics, [])
        assert outcome.weights == {"a": 0.5, "b": 0.5}

    def test_empty_metrics(self, engine) -> None:
        outcome = engine.compute([], [1.0, 2.0])
        assert outcome.decisions == ()

    def test_weight_changes_reference_previous(self, engine) -> None:
        outcome = engine.compute(_metrics("a", "b"), [10.0, 10.0], previous_weights={"a": 0.9})
        changes = outcome.weight_changes()
        assert set(changes) == {"a"}
        assert changes["a"]["old"] == 0.9
        assert changes["a"]["new"] == pytest.approx(0.5)


class TestComposite:
    def test_uniform_without_weights(self) -> None:
        assert composite_score({"a": 20.0, "b": 20.0, "c": 80.0, "d": 80.0}) == pytest.approx(50.0)

    def test_weighted(self) -> None:
        assert composite_score({"a": 100.0, "b": 0.0}, {"a": 0.75, "b": 0.25}) == pytest.approx(75.0)

    def test_empty(self) -> None:
        assert composite_score({}) == 0.0

    def test_renormalize(self) -> None:
        assert renormalize([1.0, 3.0]) == [0.25, 0.75]
        assert renormalize([0.0, 0.0]) == [0.5, 0.5]
        assert renormalize([]) == []
