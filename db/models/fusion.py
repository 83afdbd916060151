"""
db/models/fusion.py

Fusion Score tables: normalized metrics, their history, adaptive weights,
the weighting audit log and the composite score history.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin

METRIC_UPSERT_CONSTRAINT = "uq_fusion_metrics_user_integration_metric"
WEIGHTING_UPSERT_CONSTRAINT = "uq_fusion_weightings_user_integration_metric"


class FusionMetric(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Latest value per (user, integration, metric); last write wins."""

    __tablename__ = "fusion_metrics"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    integration_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    metric_name: Mapped[str] = mapped_column(String(150), nullable=False)
    metric_type: Mapped[str] = mapped_column(String(32), nullable=False, server_default="percentage")
    raw_value: Mapped[float] = mapped_column(Float, nullable=False)
    normalized_value: Mapped[float] = mapped_column(Float, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, server_default="0.25")
    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "integration_id", "metric_name", name=METRIC_UPSERT_CONSTRAINT),
    )


class FusionMetricHistory(UUIDPrimaryKeyMixin, Base):
    """Append-only history of every metric value written."""

    __tablename__ = "fusion_metric_history"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    integration_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    metric_name: Mapped[str] = mapped_column(String(150), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    normalized_value: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index(
            "ix_fusion_metric_history_user_integration_recorded",
            "user_id",
            "integration_id",
            "recorded_at",
        ),
    )


class FusionWeighting(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    Adaptive weight per (user, integration, metric).  The final weights of
    one (user, integration) sum to 1.
    """

    __tablename__ = "fusion_weightings"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    integration_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    metric_name: Mapped[str] = mapped_column(String(150), nullable=False)
    raw_weight: Mapped[float] = mapped_column(Float, nullable=False)
    final_weight: Mapped[float] = mapped_column(Float, nullable=False)
    variance: Mapped[float] = mapped_column(Float, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    correlation_penalty: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    adjustment_reason: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    last_adjusted: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "integration_id", "metric_name", name=WEIGHTING_UPSERT_CONSTRAINT),
    )


class FusionAuditLog(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """One row per recalibration attempt, successful or not."""

    __tablename__ = "fusion_audit_log"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    integration_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    metrics_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_variance: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    weight_changes: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    triggered_by: Mapped[str] = mapped_column(String(16), nullable=False)
    execution_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_fusion_audit_log_user_integration", "user_id", "integration_id"),
    )


class FusionScoreHistory(UUIDPrimaryKeyMixin, Base):
    """Append-only composite Fusion Score series per (user, integration)."""

    __tablename__ = "fusion_score_history"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    integration_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    fusion_score: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index(
            "ix_fusion_score_history_user_integration_recorded",
            "user_id",
            "integration_id",
            "recorded_at",
        ),
    )
