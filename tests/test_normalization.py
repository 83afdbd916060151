"""
tests/test_normalization.py

Pytest unit tests for 0-100 scaling, dimension rules and metric records.

All tests are pure Python with an explicit ScoringConfig; no environment
or rules file is read.
"""

from __future__ import annotations

import pytest

from app.scoring_config import ScoringConfig
from extraction.categories import IntegrationCategory
from extraction.registry import extract_metrics
from normalization.dimensions import (
    DimensionScores,
    compute_dimensions,
    fusion_contribution,
    weighted_dimension_score,
)
from normalization.metrics import metric_names, to_normalized_metrics
from normalization.scaler import (
    inverse_ratio_score,
    normalize,
    normalize_to_history,
    ratio_score,
)


@pytest.fixture()
def config() -> ScoringConfig:
    return ScoringConfig()


def _dims(category: IntegrationCategory, service: str, metadata: dict, config: ScoringConfig, events: int = 5):
    bag = extract_metrics(category, service, metadata, event_count=events)
    return compute_dimensions(bag, events, config)


# ---------------------------------------------------------------------------
# Scaler
# ---------------------------------------------------------------------------


class TestScaler:
    def test_linear_rescale(self) -> None:
        assert normalize(250, 0, 500) == 50.0

    def test_clamps_out_of_range(self) -> None:
        assert normalize(-10, 0, 100) == 0.0
        assert normalize(1_000, 0, 100) == 100.0

    def test_degenerate_range_is_neutral(self) -> None:
        assert normalize(7, 3, 3) == 50.0

    def test_ratio_zero_denominator_is_neutral(self) -> None:
        assert ratio_score(5, 0) == 50.0

    def test_ratio_clamped(self) -> None:
        assert ratio_score(150, 100) == 100.0

    def test_inverse_ratio_with_factor(self) -> None:
        assert inverse_ratio_score(40, 100, factor=0.5) == 80.0
        assert inverse_ratio_score(10, 0) == 50.0

    def test_history_scaling(self) -> None:
        assert normalize_to_history(50, []) == 50.0
        assert normalize_to_history(50, [0, 100]) == 50.0
        assert normalize_to_history(120, [0, 100]) == 100.0


# ---------------------------------------------------------------------------
# Dimension rules
# ---------------------------------------------------------------------------


class TestDimensions:
    def test_zero_events_returns_defaults(self, config) -> None:
        bag = extract_metrics(IntegrationCategory.COMMUNICATION, "slack", {"message_volume": 900}, event_count=0)
        dims = compute_dimensions(bag, 0, config)
        assert dims.values() == (0.0, 0.0, 50.0, 50.0)

    def test_project_management(self, config) -> None:
        dims = _dims(
            IntegrationCategory.PROJECT_MANAGEMENT,
            "jira",
            {"issue_count": 100, "done_issues": 80, "open_issues": 20, "board_count": 4},
            config,
        )
        assert dims.values() == (20.0, 20.0, 80.0, 80.0)

    def test_project_management_no_tasks_is_neutral(self, config) -> None:
        dims = _dims(IntegrationCategory.PROJECT_MANAGEMENT, "asana", {"project_count": 2}, config)
        assert dims.throughput == 50.0
        assert dims.responsiveness == 50.0

    def test_communication(self, config) -> None:
        dims = _dims(
            IntegrationCategory.COMMUNICATION,
            "slack",
            {"message_volume": 500, "channel_count": 10, "active_channels": 5},
            config,
        )
        assert dims.activity_volume == 50.0
        assert dims.participation_level == 10.0
        assert dims.responsiveness == 75.0
        assert dims.throughput == 50.0

    def test_support(self, config) -> None:
        dims = _dims(
            IntegrationCategory.SUPPORT,
            "zendesk",
            {"ticket_count": 100, "open_tickets": 40, "solved_tickets": 60},
            config,
        )
        assert dims.activity_volume == 20.0
        assert dims.participation_level == 50.0
        assert dims.responsiveness == 80.0
        assert dims.throughput == 60.0

    def test_general_uses_event_count(self, config) -> None:
        bag = extract_metrics(IntegrationCategory.GENERAL, "pagerduty", {}, event_count=25)
        dims = compute_dimensions(bag, 25, config)
        assert dims.activity_volume == 25.0
        assert dims.signals_used == ("event_count",)

    @pytest.mark.parametrize("category", list(IntegrationCategory))
    def test_every_category_stays_in_range(self, category, config) -> None:
        bag = extract_metrics(category, "svc", {}, event_count=3)
        dims = compute_dimensions(bag, 3, config)
        assert all(0.0 <= v <= 100.0 for v in dims.values())

    def test_custom_range_changes_scaling(self) -> None:
        from app.scoring_config import build_scoring_config

        config = build_scoring_config({"ranges": {"project_management.task_count": [0, 200]}})
        dims = _dims(IntegrationCategory.PROJECT_MANAGEMENT, "jira", {"issue_count": 100}, config)
        assert dims.activity_volume == 50.0


class TestFusionContribution:
    def test_weighted_dimension_score(self, config) -> None:
        dims = DimensionScores(activity_volume=100, participation_level=0, responsiveness=0, throughput=0)
        assert weighted_dimension_score(dims, config) == pytest.approx(30.0)

    def test_contribution_scaled_by_category_weight(self, config) -> None:
        dims = DimensionScores(activity_volume=40, participation_level=40, responsiveness=40, throughput=40)
        assert fusion_contribution(dims, IntegrationCategory.PROJECT_MANAGEMENT, config) == pytest.approx(10.0)


# ---------------------------------------------------------------------------
# Metric records
# ---------------------------------------------------------------------------


class TestNormalizedMetrics:
    def test_names(self) -> None:
        assert metric_names("jira") == [
            "jira_activity_volume",
            "jira_participation",
            "jira_responsiveness",
            "jira_throughput",
        ]

    def test_fixed_mode(self, config) -> None:
        dims = DimensionScores(activity_volume=20, participation_level=20, responsiveness=80, throughput=80)
        metrics = to_normalized_metrics("jira", dims, config=config)
        assert [m.raw_value for m in metrics] == [20.0, 20.0, 80.0, 80.0]
        assert [m.normalized_value for m in metrics] == [0.2, 0.2, 0.8, 0.8]
        assert all(m.weight == 0.25 for m in metrics)

    def test_adaptive_mode_scales_against_history(self) -> None:
        config = ScoringConfig(scaling_mode="adaptive")
        dims = DimensionScores(activity_volume=50, participation_level=0, responsiveness=50, throughput=50)
        history = {"jira_activity_volume": [0.0, 100.0]}
        metrics = to_normalized_metrics("jira", dims, history, config)
        by_name = {m.metric_name: m for m in metrics}
        assert by_name["jira_activity_volume"].normalized_value == 0.5
        # no history for the remaining metrics means neutral
        assert by_name["jira_participation"].normalized_value == 0.5
