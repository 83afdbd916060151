"""
tests/test_pipeline.py

Pytest unit tests for IntelligencePipeline.process_unit against the
in-memory store.

Coverage
--------
- Full success path for a project management unit
- Zero-event windows
- Event window boundaries and week-over-week change
- Stored fusion weights and score history feed later runs
- Statistical anomaly appended only when the z-score trips
- Any failure rolls back every staged write
- Cancellation before the writes
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.config import PipelineSettings
from app.domain.intelligence import RawEvent
from app.scoring_config import ScoringConfig
from app.services.intelligence_pipeline import IntelligencePipeline, RunContext, UnitCancelledError
from fakes import NOW, InMemoryDatabase, InMemoryStore, make_unit
from weighting.engine import WeightDecision

JIRA_METADATA = {"issue_count": 100, "done_issues": 80, "open_issues": 20, "board_count": 4}


def _event(days_ago: float, metadata: dict | None = None) -> RawEvent:
    return RawEvent(
        event_type="sync",
        occurred_at=NOW - timedelta(days=days_ago),
        metadata=metadata or {},
    )


def _context(scoring: ScoringConfig | None = None) -> RunContext:
    return RunContext(settings=PipelineSettings(), scoring=scoring or ScoringConfig(), now=NOW)


@pytest.fixture()
def db() -> InMemoryDatabase:
    return InMemoryDatabase()


class TestSuccessPath:
    def test_project_management_unit(self, db) -> None:
        unit = make_unit("jira")
        db.add_events(unit, [_event(3), _event(1, JIRA_METADATA)])
        store = InMemoryStore(db)

        outcome = IntelligencePipeline().process_unit(unit, _context(), store)

        snapshot = outcome.snapshot
        assert snapshot.category == "project_management"
        assert (snapshot.activity_volume, snapshot.participation_level) == (20.0, 20.0)
        assert (snapshot.responsiveness, snapshot.throughput) == (80.0, 80.0)
        assert snapshot.fusion_score == 50.0
        assert snapshot.anomaly_score == pytest.approx(1.0)
        assert snapshot.anomaly_detected is False
        assert snapshot.event_count == 2
        assert snapshot.raw_metrics["metrics"]["task_count"] == 100.0
        assert outcome.insights_generated == 1
        assert store.commits == 1

        row = db.snapshot(unit)
        assert row["fusion_score"] == 50.0
        assert row["last_successful_run_at"] == NOW
        assert row["failure_reason"] is None
        assert [i.insight_key for i in db.insights[(unit.user_id, "jira")]] == ["project_throughput"]
        assert db.scores[(unit.user_id, unit.integration_id)] == [50.0]
        assert len([k for k in db.metrics if k[1] == unit.integration_id]) == 4
        assert db.anomalies == []

    def test_latest_event_metadata_is_used(self, db) -> None:
        unit = make_unit("jira")
        db.add_events(unit, [_event(1, JIRA_METADATA), _event(5, {"issue_count": 500})])
        outcome = IntelligencePipeline().process_unit(unit, _context(), InMemoryStore(db))
        assert outcome.snapshot.activity_volume == 20.0

    def test_zero_events(self, db) -> None:
        unit = make_unit("jira")
        outcome = IntelligencePipeline().process_unit(unit, _context(), InMemoryStore(db))
        snapshot = outcome.snapshot
        assert (
            snapshot.activity_volume,
            snapshot.participation_level,
            snapshot.responsiveness,
            snapshot.throughput,
        ) == (0.0, 0.0, 50.0, 50.0)
        assert snapshot.fusion_score == 25.0
        assert snapshot.trend_direction == "stable"
        assert outcome.insights_generated == 0
        assert db.insights[(unit.user_id, "jira")] == []

    def test_project_without_tasks_has_neutral_throughput(self, db) -> None:
        unit = make_unit("asana")
        db.add_events(unit, [_event(1, {"project_count": 3})])
        outcome = IntelligencePipeline().process_unit(unit, _context(), InMemoryStore(db))
        assert outcome.snapshot.throughput == 50.0

    @pytest.mark.parametrize("raw", ["NaN", "inf", float("nan")])
    def test_non_finite_metadata_does_not_fail_the_unit(self, db, raw) -> None:
        unit = make_unit("jira")
        db.add_events(unit, [_event(1, {**JIRA_METADATA, "done_issues": raw})])
        store = InMemoryStore(db)

        outcome = IntelligencePipeline().process_unit(unit, _context(), store)

        assert outcome.snapshot.throughput == 0.0
        assert store.commits == 1
        assert db.snapshot(unit)["failure_reason"] is None
        assert outcome.snapshot.raw_metrics["rejected"]["done_issues"] == str(raw)


class TestWindows:
    def test_week_over_week_uses_previous_window(self, db) -> None:
        unit = make_unit("pagerduty")
        db.add_events(unit, [_event(d) for d in (1, 2, 3, 4)])
        db.add_events(unit, [_event(d) for d in (8, 9)])
        db.add_events(unit, [_event(20)])
        outcome = IntelligencePipeline().process_unit(unit, _context(), InMemoryStore(db))
        assert outcome.snapshot.event_count == 4
        assert outcome.snapshot.week_over_week_change == 100.0
        assert outcome.snapshot.trend_direction == "up"

    def test_first_week_without_history_is_stable(self, db) -> None:
        unit = make_unit("pagerduty")
        db.add_events(unit, [_event(1)])
        outcome = IntelligencePipeline().process_unit(unit, _context(), InMemoryStore(db))
        assert outcome.snapshot.week_over_week_change == 0.0
        assert outcome.snapshot.trend_direction == "stable"

    def test_events_at_run_time_belong_to_next_window(self, db) -> None:
        unit = make_unit("pagerduty")
        db.add_events(unit, [_event(0)])
        outcome = IntelligencePipeline().process_unit(unit, _context(), InMemoryStore(db))
        assert outcome.snapshot.event_count == 0


class TestHistory:
    def test_stored_weights_drive_fusion_score(self, db) -> None:
        unit = make_unit("jira")
        db.add_events(unit, [_event(1, JIRA_METADATA)])
        db.weightings[(unit.user_id, unit.integration_id)] = {
            name: WeightDecision(name, 1.0, weight, 0.0, 1.0, 0.0)
            for name, weight in (
                ("jira_activity_volume", 0.0),
                ("jira_participation", 0.0),
                ("jira_responsiveness", 0.5),
                ("jira_throughput", 0.5),
            )
        }
        outcome = IntelligencePipeline().process_unit(unit, _context(), InMemoryStore(db))
        assert outcome.snapshot.fusion_score == 80.0

    def test_score_history_feeds_trend(self, db) -> None:
        unit = make_unit("jira")
        db.add_events(unit, [_event(1, JIRA_METADATA)])
        db.scores[(unit.user_id, unit.integration_id)] = [30.0, 40.0]
        outcome = IntelligencePipeline().process_unit(unit, _context(), InMemoryStore(db))
        assert outcome.snapshot.trend_slope == pytest.approx(10.0)
        assert db.scores[(unit.user_id, unit.integration_id)] == [30.0, 40.0, 50.0]
        keys = [i.insight_key for i in db.insights[(unit.user_id, "jira")]]
        assert keys == ["project_throughput", "fusion_score_trend"]


class TestStatisticalAnomaly:
    def test_outlier_appends_signal(self, db) -> None:
        unit = make_unit("pagerduty")
        db.add_events(unit, [_event(0.5) for _ in range(100)])
        outcome = IntelligencePipeline().process_unit(
            unit, _context(ScoringConfig(zscore_threshold=1.2)), InMemoryStore(db)
        )
        assert outcome.snapshot.anomaly_detected is True
        assert outcome.anomaly_flagged is True
        assert len(db.anomalies) == 1
        _, signal, user_id = db.anomalies[0]
        assert signal.anomaly_type == "dimension_outlier"
        assert user_id == unit.user_id


class TestFailures:
    def test_failure_rolls_back_all_writes(self, db) -> None:
        unit = make_unit("jira")
        db.add_events(unit, [_event(1, JIRA_METADATA)])
        store = InMemoryStore(db, fail_on={"replace_insights": RuntimeError("insert failed")})

        with pytest.raises(RuntimeError):
            IntelligencePipeline().process_unit(unit, _context(), store)

        assert store.rollbacks == 1
        assert store.commits == 0
        assert db.snapshot(unit) is None
        assert db.scores == {}

    def test_cancelled_context_writes_nothing(self, db) -> None:
        unit = make_unit("jira")
        db.add_events(unit, [_event(1, JIRA_METADATA)])
        context = _context()
        context.cancel()
        store = InMemoryStore(db)

        with pytest.raises(UnitCancelledError):
            IntelligencePipeline().process_unit(unit, context, store)

        assert db.snapshot(unit) is None
        assert store.rollbacks == 1
