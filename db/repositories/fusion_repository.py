"""
db/repositories/fusion_repository.py

Persistence for normalized metrics, metric history, adaptive weights,
the weighting audit log and the composite score history.

The caller controls commit/rollback; this repository never commits.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.fusion import (
    METRIC_UPSERT_CONSTRAINT,
    WEIGHTING_UPSERT_CONSTRAINT,
    FusionAuditLog,
    FusionMetric,
    FusionMetricHistory,
    FusionScoreHistory,
    FusionWeighting,
)
from normalization.metrics import NormalizedMetric
from weighting.engine import MetricWeightInput, WeightDecision
from weighting.recalibrator import WeightAuditEntry


def _now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


class FusionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def upsert_metrics(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        metrics: Sequence[NormalizedMetric],
        synced_at: datetime,
    ) -> int:
        if not metrics:
            return 0
        stmt = insert(FusionMetric).values(
            [
                {
                    "id": uuid.uuid4(),
                    "user_id": user_id,
                    "integration_id": integration_id,
                    "metric_name": m.metric_name,
                    "metric_type": m.metric_type,
                    "raw_value": m.raw_value,
                    "normalized_value": m.normalized_value,
                    "weight": m.weight,
                    "synced_at": synced_at,
                }
                for m in metrics
            ]
        )
        stmt = stmt.on_conflict_do_update(
            constraint=METRIC_UPSERT_CONSTRAINT,
            set_={
                "metric_type": stmt.excluded.metric_type,
                "raw_value": stmt.excluded.raw_value,
                "normalized_value": stmt.excluded.normalized_value,
                "synced_at": stmt.excluded.synced_at,
                "updated_at": _now_utc(),
            },
        )
        self._session.execute(stmt)
        return len(metrics)

    def append_metric_history(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        metrics: Sequence[NormalizedMetric],
        recorded_at: datetime,
    ) -> None:
        if not metrics:
            return
        self._session.execute(
            insert(FusionMetricHistory),
            [
                {
                    "id": uuid.uuid4(),
                    "user_id": user_id,
                    "integration_id": integration_id,
                    "metric_name": m.metric_name,
                    "value": m.raw_value,
                    "normalized_value": m.normalized_value,
                    "recorded_at": recorded_at,
                }
                for m in metrics
            ],
        )

    def list_metrics(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> list[MetricWeightInput]:
        stmt = (
            select(FusionMetric.metric_name, FusionMetric.weight, FusionMetric.normalized_value)
            .where(FusionMetric.user_id == user_id, FusionMetric.integration_id == integration_id)
            .order_by(FusionMetric.metric_name)
        )
        return [
            MetricWeightInput(
                metric_name=row.metric_name,
                base_weight=row.weight,
                normalized_value=row.normalized_value,
            )
            for row in self._session.execute(stmt)
        ]

    def metric_history(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        names: Sequence[str],
        limit: int,
    ) -> dict[str, list[float]]:
        """Up to *limit* most recent raw values per metric, oldest first."""
        stmt = (
            select(FusionMetricHistory.metric_name, FusionMetricHistory.value)
            .where(
                FusionMetricHistory.user_id == user_id,
                FusionMetricHistory.integration_id == integration_id,
                FusionMetricHistory.metric_name.in_(list(names)),
            )
            .order_by(FusionMetricHistory.recorded_at.desc())
            .limit(limit * max(1, len(names)))
        )
        grouped: dict[str, list[float]] = {name: [] for name in names}
        for row in self._session.execute(stmt):
            values = grouped[row.metric_name]
            if len(values) < limit:
                values.append(row.value)
        return {name: list(reversed(values)) for name, values in grouped.items()}

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def append_score(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        fusion_score: float,
        recorded_at: datetime,
    ) -> None:
        self._session.add(
            FusionScoreHistory(
                user_id=user_id,
                integration_id=integration_id,
                fusion_score=fusion_score,
                recorded_at=recorded_at,
            )
        )
        self._session.flush()

    def recent_scores(self, user_id: uuid.UUID, integration_id: uuid.UUID, limit: int) -> list[float]:
        """The *limit* most recent composite scores, oldest first."""
        stmt = (
            select(FusionScoreHistory.fusion_score)
            .where(
                FusionScoreHistory.user_id == user_id,
                FusionScoreHistory.integration_id == integration_id,
            )
            .order_by(FusionScoreHistory.recorded_at.desc())
            .limit(limit)
        )
        return list(reversed(self._session.scalars(stmt).all()))

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def current_weights(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> dict[str, float]:
        stmt = select(FusionWeighting.metric_name, FusionWeighting.final_weight).where(
            FusionWeighting.user_id == user_id,
            FusionWeighting.integration_id == integration_id,
        )
        return {row.metric_name: row.final_weight for row in self._session.execute(stmt)}

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
        if not decisions:
            return
        stmt = insert(FusionWeighting).values(
            [
                {
                    "id": uuid.uuid4(),
                    "user_id": user_id,
                    "integration_id": integration_id,
                    "metric_name": d.metric_name,
                    "raw_weight": d.raw_weight,
                    "final_weight": d.final_weight,
                    "variance": d.variance,
                    "confidence": d.confidence,
                    "correlation_penalty": d.correlation_penalty,
                    "adjustment_reason": adjustment_reason,
                    "event_type": event_type,
                    "last_adjusted": adjusted_at,
                }
                for d in decisions
            ]
        )
        stmt = stmt.on_conflict_do_update(
            constraint=WEIGHTING_UPSERT_CONSTRAINT,
            set_={
                "raw_weight": stmt.excluded.raw_weight,
                "final_weight": stmt.excluded.final_weight,
                "variance": stmt.excluded.variance,
                "confidence": stmt.excluded.confidence,
                "correlation_penalty": stmt.excluded.correlation_penalty,
                "adjustment_reason": stmt.excluded.adjustment_reason,
                "event_type": stmt.excluded.event_type,
                "last_adjusted": stmt.excluded.last_adjusted,
                "updated_at": _now_utc(),
            },
        )
        self._session.execute(stmt)

    def write_audit(self, entry: WeightAuditEntry) -> None:
        self._session.add(
            FusionAuditLog(
                user_id=entry.user_id,
                integration_id=entry.integration_id,
                event_type=entry.event_type,
                metrics_count=entry.metrics_count,
                total_variance=entry.total_variance,
                avg_confidence=entry.avg_confidence,
                weight_changes=entry.weight_changes,
                triggered_by=entry.triggered_by,
                execution_time_ms=entry.execution_time_ms,
                status=entry.status,
                error_message=entry.error_message,
            )
        )
        self._session.flush()
