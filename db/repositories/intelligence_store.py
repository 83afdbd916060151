"""
db/repositories/intelligence_store.py

Session-bound adapter that exposes the repositories through the store
contracts used by the intelligence pipeline, the weight recalibrator and
anomaly detection.

Every database error surfaces as a :class:`RepositoryError` subclass, which
the batch runner classifies as ``query_error``.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from anomaly.base import AnomalySignal
from app.domain.intelligence import (
    HealthSample,
    IntelligenceSnapshot,
    RawEvent,
    StoredSnapshot,
    UnitOfWork,
)
from db.repositories.anomaly_repository import AnomalyRepository
from db.repositories.errors import RepositoryReadError, RepositoryWriteError, translate_errors
from db.repositories.fusion_repository import FusionRepository
from db.repositories.intelligence_repository import IntelligenceRepository
from db.repositories.work_list_repository import WorkListRepository
from db.session import SessionLocal
from insights.base import Insight
from normalization.metrics import NormalizedMetric
from weighting.engine import MetricWeightInput, WeightDecision
from weighting.recalibrator import WeightAuditEntry


class SqlIntelligenceStore:
    """
    One store per session.  Nothing here commits implicitly.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._work_list = WorkListRepository(session)
        self._intelligence = IntelligenceRepository(session)
        self._fusion = FusionRepository(session)
        self._anomalies = AnomalyRepository(session)

    @property
    def session(self) -> Session:
        return self._session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_active_units(
        self,
        *,
        user_id: uuid.UUID | None = None,
        service_names: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[UnitOfWork]:
        with translate_errors("list_active_units", RepositoryReadError):
            return self._work_list.list_active_units(
                user_id=user_id, service_names=service_names, limit=limit
            )

    def latest_event(self, unit: UnitOfWork, start: datetime, end: datetime) -> RawEvent | None:
        with translate_errors("latest_event", RepositoryReadError):
            return self._work_list.latest_event(unit, start, end)

    def count_events(self, unit: UnitOfWork, start: datetime, end: datetime) -> int:
        with translate_errors("count_events", RepositoryReadError):
            return self._work_list.count_events(unit, start, end)

    def recent_scores(self, user_id: uuid.UUID, integration_id: uuid.UUID, limit: int) -> list[float]:
        with translate_errors("recent_scores", RepositoryReadError):
            return self._fusion.recent_scores(user_id, integration_id, limit)

    def current_weights(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> dict[str, float]:
        with translate_errors("current_weights", RepositoryReadError):
            return self._fusion.current_weights(user_id, integration_id)

    def metric_history(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        names: Sequence[str],
        limit: int,
    ) -> dict[str, list[float]]:
        with translate_errors("metric_history", RepositoryReadError):
            return self._fusion.metric_history(user_id, integration_id, names, limit)

    def list_metrics(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> list[MetricWeightInput]:
        with translate_errors("list_metrics", RepositoryReadError):
            return self._fusion.list_metrics(user_id, integration_id)

    def list_snapshots(self, user_id: uuid.UUID | None = None) -> list[StoredSnapshot]:
        with translate_errors("list_snapshots", RepositoryReadError):
            return self._intelligence.list_snapshots(user_id)

    def list_insights(self, user_id: uuid.UUID, service_name: str | None = None) -> list:
        with translate_errors("list_insights", RepositoryReadError):
            return self._intelligence.list_insights(user_id, service_name)

    def recent_health_samples(self, since: datetime) -> list[HealthSample]:
        with translate_errors("recent_health_samples", RepositoryReadError):
            return self._anomalies.recent_health_samples(since)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_snapshot(self, unit: UnitOfWork, snapshot: IntelligenceSnapshot) -> None:
        with translate_errors("save_snapshot", RepositoryWriteError):
            self._intelligence.save_snapshot(unit, snapshot)

    def replace_insights(self, unit: UnitOfWork, insights: Sequence[Insight], generated_at: datetime) -> None:
        with translate_errors("replace_insights", RepositoryWriteError):
            self._intelligence.replace_insights(unit, insights, generated_at)

    def upsert_metrics(self, unit: UnitOfWork, metrics: Sequence[NormalizedMetric], synced_at: datetime) -> None:
        with translate_errors("upsert_metrics", RepositoryWriteError):
            self._fusion.upsert_metrics(unit.user_id, unit.integration_id, metrics, synced_at)

    def append_metric_history(
        self, unit: UnitOfWork, metrics: Sequence[NormalizedMetric], recorded_at: datetime
    ) -> None:
        with translate_errors("append_metric_history", RepositoryWriteError):
            self._fusion.append_metric_history(unit.user_id, unit.integration_id, metrics, recorded_at)

    def append_score(self, unit: UnitOfWork, fusion_score: float, recorded_at: datetime) -> None:
        with translate_errors("append_score", RepositoryWriteError):
            self._fusion.append_score(unit.user_id, unit.integration_id, fusion_score, recorded_at)

    def append_anomaly_signal(
        self,
        signal: AnomalySignal,
        *,
        user_id: uuid.UUID | None,
        detected_at: datetime,
    ) -> uuid.UUID:
        with translate_errors("append_anomaly_signal", RepositoryWriteError):
            return self._anomalies.append_signal(signal, user_id=user_id, detected_at=detected_at)

    def append_detection_audit(
        self,
        *,
        user_id: uuid.UUID | None,
        description: str,
        severity: str,
        metadata: dict[str, Any],
        detected_at: datetime,
    ) -> uuid.UUID:
        with translate_errors("append_detection_audit", RepositoryWriteError):
            return self._anomalies.append_detection_audit(
                user_id=user_id,
                description=description,
                severity=severity,
                metadata=metadata,
                detected_at=detected_at,
            )

    def record_failure(self, unit: UnitOfWork, failed_at: datetime, reason: str) -> None:
        with translate_errors("record_failure", RepositoryWriteError):
            self._intelligence.record_failure(unit, failed_at, reason)

    def upsert_weightings(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        decisions: Sequence[WeightDecision],
        *,
        event_type: str,
        adjustment_reason: str,
        adjusted_at: datetime,
    ) -> None:
        with translate_errors("upsert_weightings", RepositoryWriteError):
            self._fusion.upsert_weightings(
                user_id,
                integration_id,
                decisions,
                event_type=event_type,
                adjustment_reason=adjustment_reason,
                adjusted_at=adjusted_at,
            )

    def write_audit(self, entry: WeightAuditEntry) -> None:
        with translate_errors("write_audit", RepositoryWriteError):
            self._fusion.write_audit(entry)

    # ------------------------------------------------------------------
    # Transaction control
    # ------------------------------------------------------------------

    def commit(self) -> None:
        with translate_errors("commit", RepositoryWriteError):
            self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        self._session.close()


def store_factory() -> SqlIntelligenceStore:
    """Open a fresh session and wrap it; the caller closes the store."""
    return SqlIntelligenceStore(SessionLocal())
