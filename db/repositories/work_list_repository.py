"""
db/repositories/work_list_repository.py

Read-only access to the batch work list and the raw integration events.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.domain.intelligence import RawEvent, UnitOfWork
from db.models.integration import IntegrationEvent, IntegrationRegistry, UserIntegration

ACTIVE_STATUS = "active"


class WorkListRepository:
    """
    Resolves active (user, integration) pairs and their events.  Never
    writes and never commits.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_active_units(
        self,
        *,
        user_id: uuid.UUID | None = None,
        service_names: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[UnitOfWork]:
        """
        Active user integrations whose registry entry is enabled, ordered
        for stable batching.
        """
        stmt = (
            select(
                UserIntegration.user_id,
                UserIntegration.integration_id,
                IntegrationRegistry.service_name,
                IntegrationRegistry.display_name,
            )
            .join(IntegrationRegistry, IntegrationRegistry.id == UserIntegration.integration_id)
            .where(
                UserIntegration.status == ACTIVE_STATUS,
                IntegrationRegistry.is_enabled.is_(True),
            )
            .order_by(UserIntegration.user_id, IntegrationRegistry.service_name)
        )
        if user_id is not None:
            stmt = stmt.where(UserIntegration.user_id == user_id)
        if service_names:
            stmt = stmt.where(IntegrationRegistry.service_name.in_(list(service_names)))
        if limit is not None:
            stmt = stmt.limit(limit)

        return [
            UnitOfWork(
                user_id=row.user_id,
                integration_id=row.integration_id,
                service_name=row.service_name,
                display_name=row.display_name,
            )
            for row in self._session.execute(stmt)
        ]

    def latest_event(self, unit: UnitOfWork, start: datetime, end: datetime) -> RawEvent | None:
        """Most recent event in ``[start, end)``; only its payload feeds extraction."""
        stmt = (
            select(IntegrationEvent.event_type, IntegrationEvent.occurred_at, IntegrationEvent.event_metadata)
            .where(*self._event_filter(unit, start, end))
            .order_by(IntegrationEvent.occurred_at.desc(), IntegrationEvent.created_at.desc())
            .limit(1)
        )
        row = self._session.execute(stmt).first()
        if row is None:
            return None
        return RawEvent(event_type=row.event_type, occurred_at=row.occurred_at, metadata=dict(row.event_metadata or {}))

    def count_events(self, unit: UnitOfWork, start: datetime, end: datetime) -> int:
        stmt = select(func.count()).select_from(IntegrationEvent).where(*self._event_filter(unit, start, end))
        return int(self._session.scalar(stmt) or 0)

    @staticmethod
    def _event_filter(unit: UnitOfWork, start: datetime, end: datetime) -> tuple:
        return (
            IntegrationEvent.user_id == unit.user_id,
            IntegrationEvent.service_name == unit.service_name,
            IntegrationEvent.occurred_at >= start,
            IntegrationEvent.occurred_at < end,
        )
