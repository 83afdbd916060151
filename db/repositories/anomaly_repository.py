"""
db/repositories/anomaly_repository.py

Append-only persistence for anomaly signals and reads of system health
samples.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from anomaly.base import AnomalySignal
from app.domain.intelligence import HealthSample
from db.models.anomaly import AnomalyDetectionAudit, AnomalySignalRecord, SystemHealthEvent


class AnomalyRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def append_signal(
        self,
        signal: AnomalySignal,
        *,
        user_id: uuid.UUID | None,
        detected_at: datetime,
    ) -> uuid.UUID:
        """
        Insert one signal inside a savepoint, so a failed insert leaves the
        surrounding transaction usable.
        """
        record = AnomalySignalRecord(
            id=uuid.uuid4(),
            user_id=user_id,
            anomaly_type=signal.anomaly_type,
            anomaly_category=signal.anomaly_category,
            severity=signal.severity,
            confidence_score=signal.confidence_score,
            description=signal.description,
            source_type=signal.source_type,
            source_component_type=signal.source_component_type,
            source_component_name=signal.source_component_name,
            detection_method=signal.detection_method,
            detection_algorithm=signal.detection_algorithm,
            baseline_value=signal.baseline_value,
            observed_value=signal.observed_value,
            deviation_percentage=signal.deviation_percentage,
            threshold_exceeded=signal.threshold_exceeded,
            pattern_type=signal.pattern_type,
            business_impact=signal.business_impact,
            recommended_actions=list(signal.recommended_actions),
            tags=list(signal.tags),
            signal_metadata=dict(signal.metadata),
            summary=signal.summary,
            root_cause_analysis=signal.root_cause,
            explanation_source=signal.explanation_source,
            detected_at=detected_at,
        )
        with self._session.begin_nested():
            self._session.add(record)
            self._session.flush()
        return record.id

    def append_detection_audit(
        self,
        *,
        user_id: uuid.UUID | None,
        description: str,
        severity: str,
        metadata: dict[str, Any],
        detected_at: datetime,
    ) -> uuid.UUID:
        record = AnomalyDetectionAudit(
            id=uuid.uuid4(),
            user_id=user_id,
            event_description=description,
            severity=severity,
            event_metadata=metadata,
            detected_at=detected_at,
        )
        with self._session.begin_nested():
            self._session.add(record)
            self._session.flush()
        return record.id

    def recent_health_samples(self, since: datetime) -> list[HealthSample]:
        stmt = (
            select(SystemHealthEvent)
            .where(SystemHealthEvent.measured_at >= since)
            .order_by(SystemHealthEvent.measured_at)
        )
        return [
            HealthSample(
                component_type=row.component_type,
                component_name=row.component_name,
                measured_at=row.measured_at,
                latency_ms=row.latency_ms,
                error_rate=row.error_rate,
                cpu_usage_percent=row.cpu_usage_percent,
                memory_usage_percent=row.memory_usage_percent,
            )
            for row in self._session.scalars(stmt)
        ]
