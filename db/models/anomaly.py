"""
db/models/anomaly.py

Anomaly signals (append-only), the per-run detection audit and the
system health samples they are detected from.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, Index, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin


class AnomalySignalRecord(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "anomaly_signals"

    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    anomaly_type: Mapped[str] = mapped_column(String(64), nullable=False)
    anomaly_category: Mapped[str] = mapped_column(String(64), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    source_type: Mapped[str] = mapped_column(String(64), nullable=False)
    source_component_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source_component_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    detection_method: Mapped[str] = mapped_column(String(64), nullable=False)
    detection_algorithm: Mapped[str] = mapped_column(String(64), nullable=False)
    baseline_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    observed_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    deviation_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    threshold_exceeded: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pattern_type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    business_impact: Mapped[str | None] = mapped_column(String(16), nullable=True)
    recommended_actions: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, server_default="{}")
    tags: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, server_default="{}")
    signal_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default="{}",
    )

    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    root_cause_analysis: Mapped[str | None] = mapped_column(Text, nullable=True)
    explanation_source: Mapped[str | None] = mapped_column(String(16), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="detected")
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_anomaly_signals_detected_at", "detected_at"),
        Index("ix_anomaly_signals_severity", "severity"),
    )


class AnomalyDetectionAudit(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """One row per detection pass that saw health samples."""

    __tablename__ = "anomaly_detection_audit"

    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, server_default="anomaly_detection")
    event_description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default="{}",
    )
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_anomaly_detection_audit_detected_at", "detected_at"),
    )


class SystemHealthEvent(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "system_health_events"

    component_type: Mapped[str] = mapped_column(String(100), nullable=False)
    component_name: Mapped[str] = mapped_column(String(255), nullable=False)
    latency_ms: Mapped[float | None] = mapped_column(Float, nullable=True)
    error_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    cpu_usage_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    memory_usage_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    measured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_system_health_events_measured_at", "measured_at"),
    )
