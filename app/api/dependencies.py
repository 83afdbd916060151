"""
app/api/dependencies.py

Shared FastAPI dependencies.  Tests replace these through
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from anomaly.detector import AnomalyDetector
from app.services.batch_runner import BatchRunner, StoreFactory
from app.services.intelligence_service import build_anomaly_detector, get_batch_runner
from db.repositories.intelligence_store import SqlIntelligenceStore, store_factory
from db.session import get_db


def get_store(db: Session = Depends(get_db)) -> SqlIntelligenceStore:
    """Store bound to the request session."""
    return SqlIntelligenceStore(db)


def get_store_factory() -> StoreFactory:
    return store_factory


def get_runner() -> BatchRunner:
    return get_batch_runner()


def get_anomaly_detector() -> AnomalyDetector:
    return build_anomaly_detector()
