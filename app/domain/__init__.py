"""
app/domain package marker.
"""

from app.domain.intelligence import (
    HealthSample,
    IntelligenceSnapshot,
    RawEvent,
    StoredSnapshot,
    UnitOfWork,
)

__all__ = [
    "HealthSample",
    "IntelligenceSnapshot",
    "RawEvent",
    "StoredSnapshot",
    "UnitOfWork",
]
