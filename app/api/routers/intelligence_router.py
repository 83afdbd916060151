"""
app/api/routers/intelligence_router.py

Intelligence batch trigger and end-user read endpoints.

A run always answers HTTP 200 once it has started; per-unit failures are
reported inside the summary.  HTTP 500 is returned only when the work
list cannot be read.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_runner, get_store, get_store_factory
from app.schemas.intelligence import (
    IntegrationIntelligenceView,
    IntelligenceRunRequest,
    IntelligenceRunResponse,
    InsightView,
    UserIntelligenceResponse,
)
from app.services.batch_runner import BatchRunner, StoreFactory
from app.services.intelligence_service import WorkListUnavailableError, run_intelligence_batch
from app.services.status_service import derive_display_state, derive_freshness
from db.repositories.errors import RepositoryError
from db.repositories.intelligence_store import SqlIntelligenceStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/intelligence", tags=["intelligence"])


@router.post(
    "/run",
    response_model=IntelligenceRunResponse,
    status_code=status.HTTP_200_OK,
)
def run_intelligence(
    body: IntelligenceRunRequest | None = None,
    runner: BatchRunner = Depends(get_runner),
    factory: StoreFactory = Depends(get_store_factory),
) -> IntelligenceRunResponse:
    """
    Run the intelligence batch for every active unit, or for one user and
    an optional subset of services.

    Raises HTTP 400 for blank service names.
    Raises HTTP 500 when the work list cannot be loaded.
    """
    body = body or IntelligenceRunRequest()
    service_names = None
    if body.service_names is not None:
        service_names = [name.strip().lower() for name in body.service_names]
        if not service_names or any(not name for name in service_names):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="service_names must contain non-empty service names.",
            )

    try:
        summary = run_intelligence_batch(
            runner,
            factory,
            user_id=body.user_id,
            service_names=service_names,
        )
    except WorkListUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    return IntelligenceRunResponse.model_validate(summary.to_dict())


@router.get(
    "/{user_id}",
    response_model=UserIntelligenceResponse,
    status_code=status.HTTP_200_OK,
)
def get_user_intelligence(
    user_id: uuid.UUID,
    store: SqlIntelligenceStore = Depends(get_store),
) -> UserIntelligenceResponse:
    """
    Per-integration snapshots for one user, with display state and
    freshness instead of failure details.
    """
    try:
        snapshots = store.list_snapshots(user_id)
        insights = store.list_insights(user_id)
    except RepositoryError as exc:
        logger.error("Could not load intelligence for user=%s: %s", user_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not load intelligence.",
        ) from exc

    now = datetime.now(timezone.utc)
    return UserIntelligenceResponse(
        user_id=user_id,
        integrations=[
            IntegrationIntelligenceView(
                integration_id=s.integration_id,
                service_name=s.service_name,
                display_name=s.display_name,
                category=s.category,
                activity_volume=s.activity_volume,
                participation_level=s.participation_level,
                responsiveness=s.responsiveness,
                throughput=s.throughput,
                trend_direction=s.trend_direction,
                anomaly_detected=s.anomaly_detected,
                fusion_score=s.fusion_score,
                display_state=derive_display_state(s),
                freshness=derive_freshness(s, now),
            )
            for s in snapshots
        ],
        insights=[InsightView.model_validate(i) for i in insights],
    )
