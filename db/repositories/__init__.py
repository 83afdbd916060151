"""
Repository layer exports.
"""

from db.repositories.anomaly_repository import AnomalyRepository
from db.repositories.errors import (
    RepositoryError,
    RepositoryReadError,
    RepositoryWriteError,
    translate_errors,
)
from db.repositories.fusion_repository import FusionRepository
from db.repositories.intelligence_repository import IntelligenceRepository
from db.repositories.intelligence_store import SqlIntelligenceStore, store_factory
from db.repositories.work_list_repository import WorkListRepository

__all__ = [
    "AnomalyRepository",
    "FusionRepository",
    "IntelligenceRepository",
    "WorkListRepository",
    "SqlIntelligenceStore",
    "store_factory",
    "RepositoryError",
    "RepositoryReadError",
    "RepositoryWriteError",
    "translate_errors",
]
