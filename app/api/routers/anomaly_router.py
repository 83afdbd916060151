"""
app/api/routers/anomaly_router.py

On-demand anomaly detection over recent system health samples.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from anomaly.detector import AnomalyDetector
from anomaly.service import AnomalyService
from app.api.dependencies import get_anomaly_detector, get_store
from app.config import get_anomaly_settings
from app.schemas.intelligence import AnomalyDetectRequest, AnomalyDetectResponse
from db.repositories.errors import RepositoryError
from db.repositories.intelligence_store import SqlIntelligenceStore

router = APIRouter(prefix="/anomalies", tags=["anomalies"])


@router.post(
    "/detect",
    response_model=AnomalyDetectResponse,
    status_code=status.HTTP_200_OK,
)
def detect_anomalies(
    body: AnomalyDetectRequest | None = None,
    store: SqlIntelligenceStore = Depends(get_store),
    detector: AnomalyDetector = Depends(get_anomaly_detector),
) -> AnomalyDetectResponse:
    """
    Raises HTTP 500 when health samples cannot be read or the detected
    signals cannot be committed.
    """
    body = body or AnomalyDetectRequest()
    window = body.window_minutes or get_anomaly_settings().window_minutes
    try:
        summary = AnomalyService(store, detector).detect(user_id=body.user_id, window_minutes=window)
    except RepositoryError as exc:
        store.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return AnomalyDetectResponse(**summary)
