"""
tests/test_insights.py

Pytest unit tests for the rule-based insight generator.

Every assertion is deterministic: the same context always yields the same
insights in the same order.
"""

from __future__ import annotations

import pytest

from app.scoring_config import ScoringConfig
from extraction.categories import IntegrationCategory
from extraction.registry import extract_metrics
from insights.base import InsightSeverity
from insights.generator import generate_insights
from normalization.dimensions import compute_dimensions
from trend.analyzer import TrendAnalyzer, TrendResult
from trend.classifier import TrendDirection


def _generate(
    category: IntegrationCategory,
    service: str,
    metadata: dict,
    *,
    events: int = 5,
    previous: int = 5,
    history: list[float] | None = None,
    display: str = "Jira",
):
    config = ScoringConfig()
    bag = extract_metrics(category, service, metadata, event_count=events)
    dims = compute_dimensions(bag, events, config)
    trend = TrendAnalyzer(config).analyze(events, previous, history or [])
    return generate_insights(category, service, display, dims, trend, bag, events, history or [])


class TestGenerator:
    def test_empty_window_yields_nothing(self) -> None:
        assert _generate(IntegrationCategory.PROJECT_MANAGEMENT, "jira", {"issue_count": 10}, events=0) == []

    def test_project_throughput(self) -> None:
        insights = _generate(
            IntegrationCategory.PROJECT_MANAGEMENT,
            "jira",
            {"issue_count": 100, "done_issues": 80, "open_issues": 20, "board_count": 4},
        )
        assert [i.insight_key for i in insights] == ["project_throughput"]
        insight = insights[0]
        assert insight.severity == InsightSeverity.POSITIVE
        assert insight.insight_text == (
            "Jira shows 80% task completion rate with 20 items in backlog; strong execution velocity."
        )
        assert insight.metadata["completion_rate"] == 80

    def test_project_wip(self) -> None:
        insights = _generate(
            IntegrationCategory.PROJECT_MANAGEMENT,
            "jira",
            {"issue_count": 50, "done_issues": 10, "open_issues": 30, "in_progress_issues": 12},
        )
        keys = [i.insight_key for i in insights]
        assert keys == ["project_throughput", "project_wip"]
        assert insights[0].severity == InsightSeverity.WARNING
        assert insights[1].severity == InsightSeverity.WARNING

    def test_deterministic(self) -> None:
        args = (IntegrationCategory.SUPPORT, "zendesk", {"ticket_count": 50, "solved_tickets": 45})
        assert _generate(*args, display="Zendesk") == _generate(*args, display="Zendesk")

    def test_general_activity_change(self) -> None:
        insights = _generate(IntegrationCategory.GENERAL, "pagerduty", {}, events=20, previous=10, display="Pagerduty")
        assert insights[0].insight_key == "pagerduty_activity_change"
        assert insights[0].insight_text == "Pagerduty activity increased 100% this week."

    def test_communication_volume_drop(self) -> None:
        insights = _generate(
            IntegrationCategory.COMMUNICATION,
            "slack",
            {"message_volume": 100},
            events=5,
            previous=10,
            display="Slack",
        )
        change = next(i for i in insights if i.insight_key == "communication_volume_change")
        assert change.severity == InsightSeverity.WARNING
        assert "decreased 50%" in change.insight_text


class TestScoreTrendInsights:
    def _ctx_insights(self, history: list[float]):
        return _generate(IntegrationCategory.GENERAL, "pagerduty", {}, events=5, previous=5, history=history)

    def test_requires_two_points(self) -> None:
        assert self._ctx_insights([50.0]) == []

    def test_upward_trend(self) -> None:
        insights = self._ctx_insights([40.0, 50.0, 60.0])
        assert [i.insight_key for i in insights] == ["fusion_score_trend"]
        assert insights[0].severity == InsightSeverity.POSITIVE
        assert "upward trend of 10.0 points per run" in insights[0].insight_text

    def test_flat_history_has_no_trend(self) -> None:
        assert self._ctx_insights([50.0, 50.05, 50.0]) == []

    def test_forecast_after_seven_points(self) -> None:
        insights = self._ctx_insights([50.0] * 7)
        assert [i.insight_key for i in insights] == ["fusion_score_forecast"]
        assert insights[0].metadata["current_avg"] == pytest.approx(50.0)


def test_trend_result_defaults_are_stable() -> None:
    assert TrendResult().direction == TrendDirection.STABLE
