"""
tests/test_anomaly_service.py

Pytest unit tests for AnomalyService: window selection, persistence,
per-signal write isolation, the run audit and the summary contract.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

from anomaly.detector import AnomalyDetector
from anomaly.service import AnomalyService
from app.domain.intelligence import HealthSample
from app.scoring_config import ScoringConfig
from fakes import NOW, InMemoryDatabase, InMemoryStore


def _health(name: str, minutes_ago: int, **readings) -> HealthSample:
    return HealthSample(
        component_type="service",
        component_name=name,
        measured_at=NOW - timedelta(minutes=minutes_ago),
        **readings,
    )


def _service(store: InMemoryStore) -> AnomalyService:
    return AnomalyService(store, AnomalyDetector(ScoringConfig()), clock=lambda: NOW)


class _FlakyStore(InMemoryStore):
    """Fails to store the first signal only."""

    def __init__(self, db: InMemoryDatabase) -> None:
        super().__init__(db)
        self.calls = 0

    def append_anomaly_signal(self, signal, *, user_id, detected_at):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("constraint violation")
        return super().append_anomaly_signal(signal, user_id=user_id, detected_at=detected_at)


class TestAnomalyService:
    def test_no_samples_returns_empty_summary(self) -> None:
        store = InMemoryStore(InMemoryDatabase())
        summary = _service(store).detect(window_minutes=15)
        assert summary == {
            "success": True,
            "anomalies_detected": 0,
            "anomaly_ids": [],
            "critical_anomalies": 0,
            "high_anomalies": 0,
            "explanations_performed": 0,
        }
        assert store.commits == 0
        assert store.db.detection_audits == []

    def test_detects_and_persists(self) -> None:
        db = InMemoryDatabase()
        db.health_samples.extend(
            [
                _health("api", 5, latency_ms=200),
                _health("api", 4, latency_ms=200),
                _health("api", 3, latency_ms=200),
                _health("worker", 2, latency_ms=6000, cpu_usage_percent=92.0),
            ]
        )
        user_id = uuid.uuid4()
        summary = _service(InMemoryStore(db)).detect(user_id=user_id, window_minutes=15)

        assert summary["success"] is True
        assert summary["anomalies_detected"] == 2
        assert summary["critical_anomalies"] == 1
        assert summary["high_anomalies"] == 1
        assert summary["explanations_performed"] == 2
        assert len(db.anomalies) == 2
        assert {str(a[0]) for a in db.anomalies} == set(summary["anomaly_ids"])
        assert all(a[2] == user_id for a in db.anomalies)

        audit = db.detection_audits[0]
        assert audit["severity"] == "high"
        assert audit["user_id"] == user_id
        assert audit["description"] == "Anomaly detection identified 2 anomalies"
        assert audit["metadata"]["critical_anomalies"] == 1
        assert audit["metadata"]["time_window_minutes"] == 15
        assert audit["metadata"]["samples"] == 4

    def test_samples_outside_window_are_ignored(self) -> None:
        db = InMemoryDatabase()
        db.health_samples.append(_health("worker", 60, latency_ms=9000))
        summary = _service(InMemoryStore(db)).detect(window_minutes=15)
        assert summary["anomalies_detected"] == 0

    def test_quiet_window_is_audited_as_low(self) -> None:
        db = InMemoryDatabase()
        db.health_samples.append(_health("api", 2, latency_ms=180))
        summary = _service(InMemoryStore(db)).detect(window_minutes=15)
        assert summary["anomalies_detected"] == 0
        assert [a["severity"] for a in db.detection_audits] == ["low"]

    def test_audit_write_failure_keeps_the_signals(self) -> None:
        db = InMemoryDatabase()
        db.health_samples.append(_health("worker", 1, latency_ms=6000))
        store = InMemoryStore(db, fail_on={"append_detection_audit": RuntimeError("audit table missing")})

        summary = _service(store).detect(window_minutes=15)

        assert summary["anomalies_detected"] == 1
        assert len(db.anomalies) == 1
        assert db.detection_audits == []
        assert store.commits == 1

    def test_failed_write_skips_only_that_signal(self) -> None:
        db = InMemoryDatabase()
        db.health_samples.append(_health("worker", 1, latency_ms=6000, cpu_usage_percent=92.0))
        summary = _service(_FlakyStore(db)).detect(window_minutes=15)
        assert summary["anomalies_detected"] == 1
        assert len(db.anomalies) == 1
