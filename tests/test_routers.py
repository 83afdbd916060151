"""
tests/test_routers.py

HTTP contract tests for the intelligence, admin, fusion and anomaly
routers.

The routers are mounted on a bare FastAPI app with every storage and
runner dependency overridden, so no database or scheduler is touched.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from anomaly.detector import AnomalyDetector
from app.api.dependencies import get_anomaly_detector, get_runner, get_store, get_store_factory
from app.api.routers import admin_router, anomaly_router, fusion_router, intelligence_router
from app.config import PipelineSettings
from app.domain.intelligence import HealthSample, RawEvent
from app.failure_codes import QueryError
from app.scoring_config import ScoringConfig
from app.services.batch_runner import BatchRunner
from db.repositories.errors import RepositoryReadError
from fakes import NOW, InMemoryDatabase, InMemoryStore, InMemoryStoreFactory, make_unit
from normalization.metrics import NormalizedMetric

JIRA_METADATA = {"issue_count": 100, "done_issues": 80, "open_issues": 20, "board_count": 4}


class _Harness:
    def __init__(self, db: InMemoryDatabase, factory: InMemoryStoreFactory, store: InMemoryStore) -> None:
        self.db = db
        self.factory = factory
        self.store = store
        self.runner = BatchRunner(
            factory,
            settings=PipelineSettings(),
            scoring=ScoringConfig(),
            clock=lambda: NOW,
        )
        app = FastAPI()
        for router in (intelligence_router, admin_router, fusion_router, anomaly_router):
            app.include_router(router)
        app.dependency_overrides[get_store] = lambda: self.store
        app.dependency_overrides[get_store_factory] = lambda: self.factory
        app.dependency_overrides[get_runner] = lambda: self.runner
        app.dependency_overrides[get_anomaly_detector] = lambda: AnomalyDetector(ScoringConfig())
        self.client = TestClient(app)


def _harness(db: InMemoryDatabase | None = None, **store_kwargs) -> _Harness:
    db = db or InMemoryDatabase()
    factory = InMemoryStoreFactory(db, fail_on=store_kwargs.pop("factory_fail_on", None))
    return _Harness(db, factory, InMemoryStore(db, **store_kwargs))


def _seed_unit(db: InMemoryDatabase, service: str = "jira", user_id: uuid.UUID | None = None):
    unit = make_unit(service, user_id)
    db.units.append(unit)
    db.add_events(
        unit,
        [RawEvent(event_type="sync", occurred_at=NOW - timedelta(days=1), metadata=JIRA_METADATA)],
    )
    return unit


# ---------------------------------------------------------------------------
# POST /intelligence/run
# ---------------------------------------------------------------------------


class TestRunEndpoint:
    def test_runs_every_active_unit(self) -> None:
        db = InMemoryDatabase()
        _seed_unit(db, "jira")
        _seed_unit(db, "asana")
        response = _harness(db).client.post("/intelligence/run")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["processed"] == 2
        assert body["failed"] == 0
        assert len(body["results"]) == 2

    def test_filters_by_user_and_service(self) -> None:
        db = InMemoryDatabase()
        user_id = uuid.uuid4()
        _seed_unit(db, "jira", user_id)
        _seed_unit(db, "slack", user_id)
        _seed_unit(db, "jira")
        response = _harness(db).client.post(
            "/intelligence/run",
            json={"user_id": str(user_id), "service_names": [" JIRA "]},
        )
        body = response.json()
        assert body["total"] == 1
        assert body["results"][0]["service_name"] == "jira"
        assert body["results"][0]["user_id"] == str(user_id)

    def test_unit_failures_still_answer_200(self) -> None:
        db = InMemoryDatabase()
        unit = _seed_unit(db)
        harness = _harness(db)
        harness.factory.fail_for_service["jira"] = QueryError("database unavailable")

        response = harness.client.post("/intelligence/run")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["failed"] == 1
        assert body["errors"][0]["failure_type"] == "query_error"
        assert db.snapshot(unit)["failure_reason"] == "query_error: database unavailable"

    def test_blank_service_name_is_rejected(self) -> None:
        response = _harness().client.post("/intelligence/run", json={"service_names": ["  "]})
        assert response.status_code == 400

    def test_empty_service_list_is_rejected(self) -> None:
        response = _harness().client.post("/intelligence/run", json={"service_names": []})
        assert response.status_code == 400

    def test_unreadable_work_list_is_500(self) -> None:
        harness = _harness(factory_fail_on={"list_active_units": QueryError("connection refused")})
        response = harness.client.post("/intelligence/run")
        assert response.status_code == 500


# ---------------------------------------------------------------------------
# GET /intelligence/{user_id}
# ---------------------------------------------------------------------------


class TestUserIntelligence:
    def test_returns_snapshots_and_insights(self) -> None:
        db = InMemoryDatabase()
        unit = _seed_unit(db)
        harness = _harness(db)
        harness.client.post("/intelligence/run")

        response = harness.client.get(f"/intelligence/{unit.user_id}")

        assert response.status_code == 200
        body = response.json()
        integration = body["integrations"][0]
        assert integration["service_name"] == "jira"
        assert integration["fusion_score"] == 50.0
        assert integration["display_state"] == "active"
        assert integration["freshness"] in {"fresh", "recent", "stale"}
        assert "failure_reason" not in integration
        assert [i["insight_key"] for i in body["insights"]] == ["project_throughput"]

    def test_failed_unit_reads_as_updating(self) -> None:
        db = InMemoryDatabase()
        unit = _seed_unit(db)
        harness = _harness(db)
        harness.factory.fail_for_service["jira"] = QueryError("database unavailable")
        harness.client.post("/intelligence/run")

        integration = harness.client.get(f"/intelligence/{unit.user_id}").json()["integrations"][0]
        assert integration["display_state"] == "updating"

    def test_storage_error_is_500(self) -> None:
        harness = _harness(fail_on={"list_snapshots": RepositoryReadError("list_snapshots", "boom")})
        response = harness.client.get(f"/intelligence/{uuid.uuid4()}")
        assert response.status_code == 500


# ---------------------------------------------------------------------------
# GET /admin/intelligence/health
# ---------------------------------------------------------------------------


class TestAdminHealth:
    def test_counts_by_status(self) -> None:
        db = InMemoryDatabase()
        _seed_unit(db, "jira")
        broken = _seed_unit(db, "asana")
        harness = _harness(db)
        harness.factory.fail_for_service["asana"] = QueryError("database unavailable")
        harness.client.post("/intelligence/run")

        body = harness.client.get("/admin/intelligence/health").json()

        assert body["total"] == 2
        assert body["healthy"] == 1
        assert body["temporarily_unavailable"] == 1
        failing = next(i for i in body["integrations"] if i["integration_id"] == str(broken.integration_id))
        assert failing["failure_reason"] == "query_error: database unavailable"


# ---------------------------------------------------------------------------
# POST /fusion/recalibrate
# ---------------------------------------------------------------------------


class TestRecalibrate:
    def test_recalibrates_one_integration(self, monkeypatch) -> None:
        monkeypatch.setattr("app.services.intelligence_service.get_scoring_config", lambda: ScoringConfig())
        db = InMemoryDatabase()
        unit = make_unit("jira")
        for suffix in ("activity_volume", "participation", "responsiveness", "throughput"):
            name = f"jira_{suffix}"
            db.metrics[(unit.user_id, unit.integration_id, name)] = NormalizedMetric(name, 50.0, 0.5)

        response = _harness(db).client.post(
            "/fusion/recalibrate",
            json={"user_id": str(unit.user_id), "integration_id": str(unit.integration_id)},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["recalibrated"] == 1
        assert sum(body["results"][0]["weights"].values()) == pytest.approx(1.0)

    def test_no_metrics_is_not_a_failure(self, monkeypatch) -> None:
        monkeypatch.setattr("app.services.intelligence_service.get_scoring_config", lambda: ScoringConfig())
        unit = make_unit("jira")
        response = _harness().client.post(
            "/fusion/recalibrate",
            json={"user_id": str(unit.user_id), "integration_id": str(unit.integration_id)},
        )
        body = response.json()
        assert body["success"] is True
        assert body["recalibrated"] == 0
        assert body["results"][0]["status"] == "no_data"

    def test_missing_user_id_is_422(self) -> None:
        assert _harness().client.post("/fusion/recalibrate", json={}).status_code == 422


# ---------------------------------------------------------------------------
# POST /anomalies/detect
# ---------------------------------------------------------------------------


class TestAnomalyDetect:
    def test_detects_latency_spike(self) -> None:
        # the endpoint runs on the wall clock
        now = datetime.now(timezone.utc)
        db = InMemoryDatabase()
        for latency in (200.0, 200.0, 200.0):
            db.health_samples.append(
                HealthSample("service", "api", now - timedelta(minutes=2), latency_ms=latency)
            )
        db.health_samples.append(HealthSample("service", "api", now - timedelta(minutes=1), latency_ms=6000.0))

        response = _harness(db).client.post("/anomalies/detect", json={"window_minutes": 60 * 24})

        assert response.status_code == 200
        body = response.json()
        assert body["anomalies_detected"] == 1
        assert body["critical_anomalies"] == 1
        assert len(body["anomaly_ids"]) == 1

    def test_window_bounds_are_validated(self) -> None:
        response = _harness().client.post("/anomalies/detect", json={"window_minutes": 0})
        assert response.status_code == 422

    def test_storage_error_is_500(self) -> None:
        harness = _harness(fail_on={"recent_health_samples": RepositoryReadError("recent_health_samples", "boom")})
        response = harness.client.post("/anomalies/detect", json={"window_minutes": 15})
        assert response.status_code == 500
        assert harness.store.rollbacks == 1
