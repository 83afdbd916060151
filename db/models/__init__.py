"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.anomaly import AnomalyDetectionAudit, AnomalySignalRecord, SystemHealthEvent
from db.models.fusion import (
    FusionAuditLog,
    FusionMetric,
    FusionMetricHistory,
    FusionScoreHistory,
    FusionWeighting,
)
from db.models.integration import IntegrationEvent, IntegrationRegistry, UserIntegration
from db.models.intelligence import IntegrationInsight, IntegrationIntelligence

__all__ = [
    "AnomalyDetectionAudit",
    "AnomalySignalRecord",
    "FusionAuditLog",
    "FusionMetric",
    "FusionMetricHistory",
    "FusionScoreHistory",
    "FusionWeighting",
    "IntegrationEvent",
    "IntegrationInsight",
    "IntegrationIntelligence",
    "IntegrationRegistry",
    "SystemHealthEvent",
    "UserIntegration",
]
