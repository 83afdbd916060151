"""
app/api/routers/fusion_router.py

Manual adaptive weight recalibration.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_store
from app.schemas.intelligence import (
    RecalibrateRequest,
    RecalibrateResponse,
    RecalibrationResultView,
)
from app.services.intelligence_service import recalibrate_integrations
from db.repositories.errors import RepositoryError
from db.repositories.intelligence_store import SqlIntelligenceStore
from weighting.recalibrator import RecalibrationEvent, RecalibrationStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fusion", tags=["fusion"])


@router.post(
    "/recalibrate",
    response_model=RecalibrateResponse,
    status_code=status.HTTP_200_OK,
)
def recalibrate(
    body: RecalibrateRequest,
    store: SqlIntelligenceStore = Depends(get_store),
) -> RecalibrateResponse:
    """
    Recalibrate one integration, or all of the user's integrations when
    ``integration_id`` is omitted.  Each result carries its own status.
    """
    try:
        results = recalibrate_integrations(
            store,
            body.user_id,
            body.integration_id,
            RecalibrationEvent.MANUAL,
        )
    except RepositoryError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc

    recalibrated = sum(1 for r in results if r.status == RecalibrationStatus.SUCCESS)
    logger.info(
        "Manual recalibration user=%s integrations=%d recalibrated=%d",
        body.user_id,
        len(results),
        recalibrated,
    )
    return RecalibrateResponse(
        success=all(r.status != RecalibrationStatus.FAILED for r in results),
        recalibrated=recalibrated,
        results=[
            RecalibrationResultView(
                integration_id=r.integration_id,
                status=r.status,
                metrics_count=r.metrics_count,
                variance=r.variance,
                confidence=r.confidence,
                weights=r.weights,
                error=r.error,
            )
            for r in results
        ],
    )
