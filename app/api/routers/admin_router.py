"""
app/api/routers/admin_router.py

Operator view of per-unit intelligence health.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_store
from app.schemas.intelligence import IntegrationHealthView, IntelligenceHealthResponse
from app.services.status_service import HealthStatus, derive_health_status
from db.repositories.errors import RepositoryError
from db.repositories.intelligence_store import SqlIntelligenceStore

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/intelligence/health",
    response_model=IntelligenceHealthResponse,
    status_code=status.HTTP_200_OK,
)
def intelligence_health(
    user_id: uuid.UUID | None = None,
    store: SqlIntelligenceStore = Depends(get_store),
) -> IntelligenceHealthResponse:
    try:
        snapshots = store.list_snapshots(user_id)
    except RepositoryError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    views = [
        IntegrationHealthView(
            user_id=s.user_id,
            integration_id=s.integration_id,
            service_name=s.service_name,
            health_status=derive_health_status(s),
            last_successful_run_at=s.last_successful_run_at,
            last_failed_run_at=s.last_failed_run_at,
            failure_reason=s.failure_reason,
        )
        for s in snapshots
    ]
    statuses = [v.health_status for v in views]
    return IntelligenceHealthResponse(
        total=len(views),
        healthy=statuses.count(HealthStatus.HEALTHY),
        analyzing=statuses.count(HealthStatus.ANALYZING),
        temporarily_unavailable=statuses.count(HealthStatus.TEMPORARILY_UNAVAILABLE),
        integrations=views,
    )
