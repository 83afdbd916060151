"""
db/models/integration.py

Work-list and raw event tables.  The intelligence core only reads these.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin, TimestampMixin, UUIDPrimaryKeyMixin


class IntegrationRegistry(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    Catalogue of supported services.  ``service_name`` is the stable key
    used everywhere else (``slack``, ``jira``, ...).
    """

    __tablename__ = "integration_registry"

    service_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")


class UserIntegration(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    One connected integration of one user.  Active rows form the batch
    work list.
    """

    __tablename__ = "user_integrations"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    integration_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("integration_registry.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, server_default="active")

    __table_args__ = (
        UniqueConstraint("user_id", "integration_id", name="uq_user_integrations_user_integration"),
        Index("ix_user_integrations_status", "status"),
    )


class IntegrationEvent(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """
    Raw telemetry event written by the polling layer.  ``metadata`` holds
    the provider payload verbatim.
    """

    __tablename__ = "integration_events"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    user_integration_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user_integrations.id", ondelete="SET NULL"),
        nullable=True,
    )
    service_name: Mapped[str] = mapped_column(String(100), nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    # ``metadata`` is reserved on declarative classes.
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default="{}",
    )

    __table_args__ = (
        Index("ix_integration_events_user_service_occurred", "user_id", "service_name", "occurred_at"),
    )
