"""
app/services package marker.
"""

from app.services.batch_runner import BatchRunner, RunSummary, UnitResult, UnitState
from app.services.intelligence_pipeline import IntelligencePipeline, RunContext
from app.services.intelligence_service import (
    WorkListUnavailableError,
    get_batch_runner,
    recalibrate_all,
    recalibrate_integrations,
    run_intelligence_batch,
)

__all__ = [
    "BatchRunner",
    "IntelligencePipeline",
    "RunContext",
    "RunSummary",
    "UnitResult",
    "UnitState",
    "WorkListUnavailableError",
    "get_batch_runner",
    "recalibrate_all",
    "recalibrate_integrations",
    "run_intelligence_batch",
]
