"""
Schemas for the intelligence, fusion and anomaly endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Intelligence batch
# ---------------------------------------------------------------------------


class IntelligenceRunRequest(BaseModel):
    user_id: UUID | None = None
    service_names: list[str] | None = Field(default=None, max_length=50)


class UnitResultResponse(BaseModel):
    user_id: str
    integration_id: str
    service_name: str
    status: str
    insights_generated: int = 0
    fusion_score: float | None = None
    failure_type: str | None = None
    error: str | None = None
    duration_ms: int = 0


class IntelligenceRunResponse(BaseModel):
    run_id: str
    success: bool
    processed: int
    failed: int
    skipped: int
    insights_generated: int
    total: int
    duration_ms: int
    results: list[UnitResultResponse] = Field(default_factory=list)
    errors: list[dict[str, str]] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------


class IntegrationIntelligenceView(BaseModel):
    """End-user view: coarse states only, no failure details."""

    integration_id: UUID
    service_name: str
    display_name: str | None = None
    category: str
    activity_volume: float
    participation_level: float
    responsiveness: float
    throughput: float
    trend_direction: str
    anomaly_detected: bool
    fusion_score: float
    display_state: Literal["active", "analyzing", "updating"]
    freshness: Literal["fresh", "recent", "stale", "pending"]


class InsightView(BaseModel):
    service_name: str
    insight_key: str
    insight_text: str
    severity: str
    confidence: float

    model_config = {"from_attributes": True}


class UserIntelligenceResponse(BaseModel):
    user_id: UUID
    integrations: list[IntegrationIntelligenceView] = Field(default_factory=list)
    insights: list[InsightView] = Field(default_factory=list)


class IntegrationHealthView(BaseModel):
    """Operator view, including raw failure fields."""

    user_id: UUID
    integration_id: UUID
    service_name: str
    health_status: Literal["healthy", "analyzing", "temporarily_unavailable"]
    last_successful_run_at: datetime | None = None
    last_failed_run_at: datetime | None = None
    failure_reason: str | None = None


class IntelligenceHealthResponse(BaseModel):
    total: int
    healthy: int
    analyzing: int
    temporarily_unavailable: int
    integrations: list[IntegrationHealthView] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Fusion recalibration
# ---------------------------------------------------------------------------


class RecalibrateRequest(BaseModel):
    user_id: UUID
    integration_id: UUID | None = None


class RecalibrationResultView(BaseModel):
    integration_id: UUID
    status: str
    metrics_count: int = 0
    variance: float | None = None
    confidence: float = 0.0
    weights: dict[str, float] = Field(default_factory=dict)
    error: str | None = None


class RecalibrateResponse(BaseModel):
    success: bool
    recalibrated: int
    results: list[RecalibrationResultView] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Anomaly detection
# ---------------------------------------------------------------------------


class AnomalyDetectRequest(BaseModel):
    user_id: UUID | None = None
    window_minutes: int | None = Field(default=None, ge=1, le=1440)


class AnomalyDetectResponse(BaseModel):
    success: bool
    anomalies_detected: int
    anomaly_ids: list[str] = Field(default_factory=list)
    critical_anomalies: int = 0
    high_anomalies: int = 0
    explanations_performed: int = 0
