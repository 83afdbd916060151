"""
db/repositories/intelligence_repository.py

Persistence for intelligence snapshots and insights.

The caller controls commit/rollback; this repository never commits.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.intelligence import IntelligenceSnapshot, StoredSnapshot, UnitOfWork
from db.models.integration import IntegrationRegistry
from db.models.intelligence import (
    SNAPSHOT_UPSERT_CONSTRAINT,
    IntegrationInsight,
    IntegrationIntelligence,
)
from extraction.categories import resolve_category
from insights.base import Insight


def _now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


class IntelligenceRepository:
    """
    Upsert semantics on ``(user_id, integration_id, service_name)``.

    :meth:`save_snapshot` overwrites every computed column;
    :meth:`record_failure` touches only the failure-tracking columns.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save_snapshot(self, unit: UnitOfWork, snapshot: IntelligenceSnapshot) -> None:
        values: dict[str, Any] = {
            "category": snapshot.category,
            "activity_volume": snapshot.activity_volume,
            "participation_level": snapshot.participation_level,
            "responsiveness": snapshot.responsiveness,
            "throughput": snapshot.throughput,
            "trend_direction": snapshot.trend_direction,
            "week_over_week_change": snapshot.week_over_week_change,
            "trend_slope": snapshot.trend_slope,
            "forecast_score": snapshot.forecast_score,
            "fusion_score": snapshot.fusion_score,
            "fusion_contribution": snapshot.fusion_contribution,
            "anomaly_score": snapshot.anomaly_score,
            "anomaly_detected": snapshot.anomaly_detected,
            "event_count": snapshot.event_count,
            "raw_metrics": snapshot.raw_metrics,
            "signals_used": list(snapshot.signals_used),
            "computed_at": snapshot.computed_at,
            "last_successful_run_at": snapshot.computed_at,
            "failure_reason": None,
        }
        stmt = (
            insert(IntegrationIntelligence)
            .values(
                id=uuid.uuid4(),
                user_id=unit.user_id,
                integration_id=unit.integration_id,
                service_name=unit.service_name,
                **values,
            )
            .on_conflict_do_update(
                constraint=SNAPSHOT_UPSERT_CONSTRAINT,
                set_={**values, "updated_at": _now_utc()},
            )
        )
        self._session.execute(stmt)

    def record_failure(self, unit: UnitOfWork, failed_at: datetime, reason: str) -> None:
        """
        Insert a placeholder row if none exists; otherwise update only
        ``last_failed_run_at`` and ``failure_reason``; ``updated_at`` is not
        touched.
        """
        stmt = (
            insert(IntegrationIntelligence)
            .values(
                id=uuid.uuid4(),
                user_id=unit.user_id,
                integration_id=unit.integration_id,
                service_name=unit.service_name,
                category=resolve_category(unit.service_name).value,
                last_failed_run_at=failed_at,
                failure_reason=reason,
            )
            .on_conflict_do_update(
                constraint=SNAPSHOT_UPSERT_CONSTRAINT,
                set_={
                    "last_failed_run_at": failed_at,
                    "failure_reason": reason,
                },
            )
        )
        self._session.execute(stmt)

    def replace_insights(self, unit: UnitOfWork, insights: Sequence[Insight], generated_at: datetime) -> int:
        """Delete the (user, service) insight set and insert *insights*."""
        self._session.execute(
            delete(IntegrationInsight).where(
                IntegrationInsight.user_id == unit.user_id,
                IntegrationInsight.service_name == unit.service_name,
            )
        )
        if not insights:
            return 0
        self._session.execute(
            insert(IntegrationInsight),
            [
                {
                    "id": uuid.uuid4(),
                    "user_id": unit.user_id,
                    "integration_id": unit.integration_id,
                    "service_name": unit.service_name,
                    "insight_key": insight.insight_key,
                    "insight_text": insight.insight_text,
                    "severity": insight.severity,
                    "confidence": insight.confidence,
                    "insight_metadata": insight.metadata,
                    "generated_at": generated_at,
                }
                for insight in insights
            ],
        )
        return len(insights)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list_snapshots(self, user_id: uuid.UUID | None = None) -> list[StoredSnapshot]:
        stmt = (
            select(IntegrationIntelligence, IntegrationRegistry.display_name)
            .outerjoin(IntegrationRegistry, IntegrationRegistry.id == IntegrationIntelligence.integration_id)
            .order_by(IntegrationIntelligence.user_id, IntegrationIntelligence.service_name)
        )
        if user_id is not None:
            stmt = stmt.where(IntegrationIntelligence.user_id == user_id)
        return [_to_stored(row, display_name) for row, display_name in self._session.execute(stmt)]

    def list_insights(self, user_id: uuid.UUID, service_name: str | None = None) -> list[IntegrationInsight]:
        stmt = (
            select(IntegrationInsight)
            .where(IntegrationInsight.user_id == user_id)
            .order_by(IntegrationInsight.service_name, IntegrationInsight.confidence.desc())
        )
        if service_name is not None:
            stmt = stmt.where(IntegrationInsight.service_name == service_name)
        return list(self._session.scalars(stmt).all())


def _to_stored(row: IntegrationIntelligence, display_name: str | None) -> StoredSnapshot:
    return StoredSnapshot(
        user_id=row.user_id,
        integration_id=row.integration_id,
        service_name=row.service_name,
        category=row.category,
        activity_volume=row.activity_volume,
        participation_level=row.participation_level,
        responsiveness=row.responsiveness,
        throughput=row.throughput,
        trend_direction=row.trend_direction,
        anomaly_detected=row.anomaly_detected,
        fusion_score=row.fusion_score,
        fusion_contribution=row.fusion_contribution,
        computed_at=row.computed_at,
        last_successful_run_at=row.last_successful_run_at,
        last_failed_run_at=row.last_failed_run_at,
        failure_reason=row.failure_reason,
        display_name=display_name,
    )
