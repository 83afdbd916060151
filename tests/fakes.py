"""
tests/fakes.py

Hand-written in-memory collaborators shared by the test modules.

``InMemoryDatabase`` holds committed state; every ``InMemoryStore`` opened
on it stages writes and applies them only on ``commit()``, so rollback and
failure isolation behave like a real session.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from anomaly.base import AnomalySignal
from app.domain.intelligence import (
    HealthSample,
    IntelligenceSnapshot,
    RawEvent,
    StoredSnapshot,
    UnitOfWork,
)
from extraction.categories import resolve_category
from insights.base import Insight
from llm_synthesis.adapter import BaseLLMAdapter
from normalization.metrics import NormalizedMetric
from weighting.engine import MetricWeightInput, WeightDecision
from weighting.recalibrator import WeightAuditEntry

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_unit(service_name: str = "jira", user_id: uuid.UUID | None = None) -> UnitOfWork:
    return UnitOfWork(
        user_id=user_id or uuid.uuid4(),
        integration_id=uuid.uuid4(),
        service_name=service_name,
    )


@dataclass
class StoredInsight:
    service_name: str
    insight_key: str
    insight_text: str
    severity: str
    confidence: float


@dataclass
class InMemoryDatabase:
    units: list[UnitOfWork] = field(default_factory=list)
    events: dict[tuple[uuid.UUID, str], list[RawEvent]] = field(default_factory=dict)
    snapshots: dict[tuple[str, str, str], dict[str, Any]] = field(default_factory=dict)
    insights: dict[tuple[uuid.UUID, str], list[Insight]] = field(default_factory=dict)
    metrics: dict[tuple[uuid.UUID, uuid.UUID, str], NormalizedMetric] = field(default_factory=dict)
    metric_history: dict[tuple[uuid.UUID, uuid.UUID, str], list[float]] = field(default_factory=dict)
    scores: dict[tuple[uuid.UUID, uuid.UUID], list[float]] = field(default_factory=dict)
    weightings: dict[tuple[uuid.UUID, uuid.UUID], dict[str, WeightDecision]] = field(default_factory=dict)
    audits: list[WeightAuditEntry] = field(default_factory=list)
    anomalies: list[tuple[uuid.UUID, AnomalySignal, uuid.UUID | None]] = field(default_factory=list)
    detection_audits: list[dict] = field(default_factory=list)
    health_samples: list[HealthSample] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def add_events(self, unit: UnitOfWork, events: Sequence[RawEvent]) -> None:
        self.events.setdefault((unit.user_id, unit.service_name), []).extend(events)

    def snapshot(self, unit: UnitOfWork) -> dict[str, Any] | None:
        return self.snapshots.get(unit.key)


class InMemoryStore:
    """
    Implements the intelligence, weighting and anomaly store contracts.

    ``fail_on`` maps a method name to the exception it raises; ``slow_for``
    maps a service name to seconds slept inside ``latest_event``.
    """

    def __init__(
        self,
        db: InMemoryDatabase,
        fail_on: dict[str, BaseException] | None = None,
        slow_for: dict[str, float] | None = None,
    ) -> None:
        self.db = db
        self.fail_on = fail_on or {}
        self.slow_for = slow_for or {}
        self.pending: list[Callable[[], None]] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def _maybe_fail(self, operation: str) -> None:
        exc = self.fail_on.get(operation)
        if exc is not None:
            raise exc

    # -- reads ---------------------------------------------------------

    def list_active_units(self, *, user_id=None, service_names=None, limit=None) -> list[UnitOfWork]:
        self._maybe_fail("list_active_units")
        units = [
            u for u in self.db.units
            if (user_id is None or u.user_id == user_id)
            and (service_names is None or u.service_name in service_names)
        ]
        return units[:limit] if limit else units

    def latest_event(self, unit: UnitOfWork, start: datetime, end: datetime) -> RawEvent | None:
        delay = self.slow_for.get(unit.service_name)
        if delay:
            time.sleep(delay)
        self._maybe_fail("latest_event")
        events = self.db.events.get((unit.user_id, unit.service_name), [])
        in_window = [e for e in events if start <= e.occurred_at < end]
        # ties go to the most recently inserted event
        return max(reversed(in_window), key=lambda e: e.occurred_at, default=None)

    def count_events(self, unit: UnitOfWork, start: datetime, end: datetime) -> int:
        events = self.db.events.get((unit.user_id, unit.service_name), [])
        return sum(1 for e in events if start <= e.occurred_at < end)

    def recent_scores(self, user_id: uuid.UUID, integration_id: uuid.UUID, limit: int) -> list[float]:
        return list(self.db.scores.get((user_id, integration_id), []))[-limit:]

    def current_weights(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> dict[str, float]:
        decisions = self.db.weightings.get((user_id, integration_id), {})
        return {name: d.final_weight for name, d in decisions.items()}

    def metric_history(self, user_id, integration_id, names, limit) -> dict[str, list[float]]:
        return {
            name: list(self.db.metric_history.get((user_id, integration_id, name), []))[-limit:]
            for name in names
        }

    def list_metrics(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> list[MetricWeightInput]:
        self._maybe_fail("list_metrics")
        return [
            MetricWeightInput(metric_name=m.metric_name, base_weight=m.weight, normalized_value=m.normalized_value)
            for (uid, iid, _), m in sorted(self.db.metrics.items())
            if uid == user_id and iid == integration_id
        ]

    def recent_health_samples(self, since: datetime) -> list[HealthSample]:
        self._maybe_fail("recent_health_samples")
        return [s for s in self.db.health_samples if s.measured_at >= since]

    def list_snapshots(self, user_id: uuid.UUID | None = None) -> list[StoredSnapshot]:
        self._maybe_fail("list_snapshots")
        rows = []
        for (uid, iid, service), row in sorted(self.db.snapshots.items()):
            if user_id is not None and uid != str(user_id):
                continue
            rows.append(
                StoredSnapshot(
                    user_id=uuid.UUID(uid),
                    integration_id=uuid.UUID(iid),
                    service_name=service,
                    category=row.get("category", "general"),
                    activity_volume=row.get("activity_volume", 0.0),
                    participation_level=row.get("participation_level", 0.0),
                    responsiveness=row.get("responsiveness", 50.0),
                    throughput=row.get("throughput", 50.0),
                    trend_direction=row.get("trend_direction", "stable"),
                    anomaly_detected=row.get("anomaly_detected", False),
                    fusion_score=row.get("fusion_score", 0.0),
                    fusion_contribution=row.get("fusion_contribution", 0.0),
                    computed_at=row.get("computed_at"),
                    last_successful_run_at=row.get("last_successful_run_at"),
                    last_failed_run_at=row.get("last_failed_run_at"),
                    failure_reason=row.get("failure_reason"),
                )
            )
        return rows

    def list_insights(self, user_id: uuid.UUID, service_name: str | None = None) -> list[StoredInsight]:
        return [
            StoredInsight(
                service_name=service,
                insight_key=i.insight_key,
                insight_text=i.insight_text,
                severity=i.severity,
                confidence=i.confidence,
            )
            for (uid, service), items in sorted(self.db.insights.items(), key=lambda kv: kv[0][1])
            if uid == user_id and (service_name is None or service == service_name)
            for i in items
        ]

    # -- staged writes -------------------------------------------------

    def save_snapshot(self, unit: UnitOfWork, snapshot: IntelligenceSnapshot) -> None:
        self._maybe_fail("save_snapshot")
        values = dict(vars(snapshot))
        values.update(
            last_successful_run_at=snapshot.computed_at,
            failure_reason=None,
            updated_at=snapshot.computed_at,
        )

        def apply() -> None:
            row = self.db.snapshots.setdefault(unit.key, {})
            row.update(values)

        self.pending.append(apply)

    def replace_insights(self, unit: UnitOfWork, insights: Sequence[Insight], generated_at: datetime) -> None:
        self._maybe_fail("replace_insights")
        items = list(insights)
        self.pending.append(lambda: self.db.insights.__setitem__((unit.user_id, unit.service_name), items))

    def upsert_metrics(self, unit: UnitOfWork, metrics: Sequence[NormalizedMetric], synced_at: datetime) -> None:
        def apply() -> None:
            for m in metrics:
                self.db.metrics[(unit.user_id, unit.integration_id, m.metric_name)] = m

        self.pending.append(apply)

    def append_metric_history(self, unit: UnitOfWork, metrics: Sequence[NormalizedMetric], recorded_at: datetime) -> None:
        def apply() -> None:
            for m in metrics:
                self.db.metric_history.setdefault((unit.user_id, unit.integration_id, m.metric_name), []).append(
                    m.raw_value
                )

        self.pending.append(apply)

    def append_score(self, unit: UnitOfWork, fusion_score: float, recorded_at: datetime) -> None:
        self.pending.append(
            lambda: self.db.scores.setdefault((unit.user_id, unit.integration_id), []).append(fusion_score)
        )

    def append_anomaly_signal(self, signal: AnomalySignal, *, user_id, detected_at) -> uuid.UUID:
        self._maybe_fail("append_anomaly_signal")
        anomaly_id = uuid.uuid4()
        self.pending.append(lambda: self.db.anomalies.append((anomaly_id, signal, user_id)))
        return anomaly_id

    def append_detection_audit(self, *, user_id, description, severity, metadata, detected_at) -> uuid.UUID:
        self._maybe_fail("append_detection_audit")
        audit_id = uuid.uuid4()
        row = {
            "user_id": user_id,
            "description": description,
            "severity": severity,
            "metadata": dict(metadata),
            "detected_at": detected_at,
        }
        self.pending.append(lambda: self.db.detection_audits.append(row))
        return audit_id

    def record_failure(self, unit: UnitOfWork, failed_at: datetime, reason: str) -> None:
        self._maybe_fail("record_failure")

        def apply() -> None:
            row = self.db.snapshots.get(unit.key)
            if row is None:
                self.db.snapshots[unit.key] = {
                    "category": resolve_category(unit.service_name).value,
                    "last_failed_run_at": failed_at,
                    "failure_reason": reason,
                }
            else:
                row.update(last_failed_run_at=failed_at, failure_reason=reason)

        self.pending.append(apply)

    def upsert_weightings(self, user_id, integration_id, decisions, *, event_type, adjustment_reason, adjusted_at) -> None:
        self._maybe_fail("upsert_weightings")

        def apply() -> None:
            current = self.db.weightings.setdefault((user_id, integration_id), {})
            for d in decisions:
                current[d.metric_name] = d

        self.pending.append(apply)

    def write_audit(self, entry: WeightAuditEntry) -> None:
        self.pending.append(lambda: self.db.audits.append(entry))

    # -- transaction control -------------------------------------------

    def commit(self) -> None:
        self._maybe_fail("commit")
        with self.db.lock:
            for apply in self.pending:
                apply()
        self.pending.clear()
        self.commits += 1

    def rollback(self) -> None:
        self.pending.clear()
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


class InMemoryStoreFactory:
    """Callable store factory; every store shares one database."""

    def __init__(
        self,
        db: InMemoryDatabase,
        fail_on: dict[str, BaseException] | None = None,
        slow_for: dict[str, float] | None = None,
        fail_for_service: dict[str, BaseException] | None = None,
    ) -> None:
        self.db = db
        self.fail_on = fail_on or {}
        self.slow_for = slow_for or {}
        self.fail_for_service = fail_for_service or {}
        self.created: list[InMemoryStore] = []
        self._lock = threading.Lock()

    def __call__(self) -> InMemoryStore:
        store = _ServiceFailingStore(self.db, self.fail_on, self.slow_for, self.fail_for_service)
        with self._lock:
            self.created.append(store)
        return store


class _ServiceFailingStore(InMemoryStore):
    def __init__(self, db, fail_on, slow_for, fail_for_service) -> None:
        super().__init__(db, fail_on=fail_on, slow_for=slow_for)
        self.fail_for_service = fail_for_service

    def latest_event(self, unit: UnitOfWork, start: datetime, end: datetime) -> RawEvent | None:
        exc = self.fail_for_service.get(unit.service_name)
        if exc is not None:
            raise exc
        return super().latest_event(unit, start, end)


class ScriptedLLMAdapter(BaseLLMAdapter):
    """Returns the scripted responses in order, repeating the last one."""

    def __init__(self, responses: Sequence[str]) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = min(len(self.prompts) - 1, len(self.responses) - 1)
        return self.responses[index]


class FailingLLMAdapter(BaseLLMAdapter):
    def __init__(self, exc: BaseException | None = None) -> None:
        self.exc = exc or ConnectionError("provider unreachable")
        self.calls = 0

    def generate(self, prompt: str) -> str:
        self.calls += 1
        raise self.exc
