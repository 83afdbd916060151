"""
app/schemas package marker.
"""

from app.schemas.intelligence import (
    AnomalyDetectRequest,
    AnomalyDetectResponse,
    IntelligenceHealthResponse,
    IntelligenceRunRequest,
    IntelligenceRunResponse,
    RecalibrateRequest,
    RecalibrateResponse,
    UserIntelligenceResponse,
)

__all__ = [
    "AnomalyDetectRequest",
    "AnomalyDetectResponse",
    "IntelligenceHealthResponse",
    "IntelligenceRunRequest",
    "IntelligenceRunResponse",
    "RecalibrateRequest",
    "RecalibrateResponse",
    "UserIntelligenceResponse",
]
