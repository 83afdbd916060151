"""
app/domain/intelligence.py

Domain records exchanged between the intelligence services and their stores.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class UnitOfWork:
    """
    One (user, integration) pair processed per orchestrator pass.
    """

    user_id: uuid.UUID
    integration_id: uuid.UUID
    service_name: str
    display_name: str | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (str(self.user_id), str(self.integration_id), self.service_name)

    @property
    def label(self) -> str:
        return f"{self.service_name}:{self.user_id}"


@dataclass(frozen=True)
class RawEvent:
    """
    One observed occurrence for a (user, integration, service) tuple.
    """

    event_type: str
    occurred_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IntelligenceSnapshot:
    """
    Full success-path rollup for one unit.  Written only when every step
    of the unit's run has succeeded.
    """

    category: str
    activity_volume: float
    participation_level: float
    responsiveness: float
    throughput: float
    trend_direction: str
    week_over_week_change: float
    trend_slope: float
    forecast_score: float
    fusion_score: float
    anomaly_score: float
    anomaly_detected: bool
    fusion_contribution: float
    event_count: int
    raw_metrics: dict[str, Any]
    signals_used: list[str]
    computed_at: datetime


@dataclass(frozen=True)
class StoredSnapshot:
    """
    Snapshot as read back from storage, including failure tracking.
    """

    user_id: uuid.UUID
    integration_id: uuid.UUID
    service_name: str
    category: str
    activity_volume: float
    participation_level: float
    responsiveness: float
    throughput: float
    trend_direction: str
    anomaly_detected: bool
    fusion_score: float
    fusion_contribution: float
    computed_at: datetime | None
    last_successful_run_at: datetime | None
    last_failed_run_at: datetime | None
    failure_reason: str | None
    display_name: str | None = None


@dataclass(frozen=True)
class HealthSample:
    """
    One system health measurement used by rule-based anomaly detection.
    """

    component_type: str
    component_name: str
    measured_at: datetime
    latency_ms: float | None = None
    error_rate: float | None = None
    cpu_usage_percent: float | None = None
    memory_usage_percent: float | None = None
