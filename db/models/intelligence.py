"""
db/models/intelligence.py

Per-integration intelligence snapshot and its generated insights.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin

SNAPSHOT_UPSERT_CONSTRAINT = "uq_integration_intelligence_user_integration_service"


class IntegrationIntelligence(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    Latest successful rollup for one (user, integration, service).

    A failed run touches only ``last_failed_run_at`` and ``failure_reason``;
    every other column keeps the values of the last successful run.
    """

    __tablename__ = "integration_intelligence"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    integration_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    service_name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, server_default="general")

    activity_volume: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    participation_level: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    responsiveness: Mapped[float] = mapped_column(Float, nullable=False, server_default="50")
    throughput: Mapped[float] = mapped_column(Float, nullable=False, server_default="50")

    trend_direction: Mapped[str] = mapped_column(String(16), nullable=False, server_default="stable")
    week_over_week_change: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    trend_slope: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    forecast_score: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")

    fusion_score: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    fusion_contribution: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    anomaly_score: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    anomaly_detected: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")

    event_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    raw_metrics: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    signals_used: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, server_default="{}")

    computed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_successful_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_failed_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "integration_id", "service_name", name=SNAPSHOT_UPSERT_CONSTRAINT),
        Index("ix_integration_intelligence_user_id", "user_id"),
    )


class IntegrationInsight(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """
    Insight rows for one (user, service); replaced wholesale on each
    successful run.
    """

    __tablename__ = "integration_insights"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    integration_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    service_name: Mapped[str] = mapped_column(String(100), nullable=False)
    insight_key: Mapped[str] = mapped_column(String(150), nullable=False)
    insight_text: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    insight_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default="{}",
    )
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_integration_insights_user_service", "user_id", "service_name"),
    )
