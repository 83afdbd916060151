"""
app/services/intelligence_service.py

Entry points shared by the HTTP routers, the scheduler and the batch
script: work-list resolution, the process-wide batch runner, weight
recalibration across a user's integrations and anomaly detector wiring.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from functools import lru_cache

from anomaly.detector import AnomalyDetector
from anomaly.explainer import BaseExplainer, LLMExplainer, TemplateExplainer
from app.config import (
    AnomalySettings,
    LLMSettings,
    get_anomaly_settings,
    get_llm_settings,
    get_pipeline_settings,
)
from app.domain.intelligence import UnitOfWork
from app.scoring_config import ScoringConfig, get_scoring_config
from app.services.batch_runner import BatchRunner, RunSummary, StoreFactory
from db.repositories.intelligence_store import SqlIntelligenceStore, store_factory
from llm_synthesis.adapter import build_llm_adapter
from weighting.engine import AdaptiveWeightingEngine
from weighting.recalibrator import RecalibrationEvent, RecalibrationResult, WeightRecalibrator

logger = logging.getLogger(__name__)


class WorkListUnavailableError(RuntimeError):
    """Raised when the list of units to process cannot be read."""


# ---------------------------------------------------------------------------
# Intelligence batch
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_batch_runner() -> BatchRunner:
    """
    Process-wide runner, so overlapping API and scheduler runs share one
    in-flight registry.
    """

    return BatchRunner(
        store_factory,
        settings=get_pipeline_settings(),
        scoring=get_scoring_config(),
    )


def resolve_units(
    factory: StoreFactory,
    *,
    user_id: uuid.UUID | None = None,
    service_names: Sequence[str] | None = None,
    limit: int | None = None,
) -> list[UnitOfWork]:
    store = factory()
    try:
        return store.list_active_units(user_id=user_id, service_names=service_names, limit=limit)
    except Exception as exc:  # noqa: BLE001
        logger.error("Could not load the intelligence work list: %s", exc, exc_info=True)
        raise WorkListUnavailableError(f"Could not load work list: {exc}") from exc
    finally:
        store.close()


def run_intelligence_batch(
    runner: BatchRunner | None = None,
    factory: StoreFactory | None = None,
    *,
    user_id: uuid.UUID | None = None,
    service_names: Sequence[str] | None = None,
) -> RunSummary:
    """
    Resolve the work list and run it.  Raises :class:`WorkListUnavailableError`
    when the orchestration cannot start; per-unit failures never raise.
    """

    runner = runner or get_batch_runner()
    factory = factory or store_factory
    units = resolve_units(
        factory,
        user_id=user_id,
        service_names=service_names,
        limit=runner.settings.batch_limit,
    )
    return runner.run(units)


# ---------------------------------------------------------------------------
# Weight recalibration
# ---------------------------------------------------------------------------


def recalibrate_integrations(
    store: SqlIntelligenceStore,
    user_id: uuid.UUID,
    integration_id: uuid.UUID | None = None,
    event_type: str = RecalibrationEvent.MANUAL,
    scoring: ScoringConfig | None = None,
) -> list[RecalibrationResult]:
    """
    Recalibrate one integration, or every active integration of *user_id*
    when *integration_id* is omitted.
    """

    if integration_id is not None:
        integration_ids = [integration_id]
    else:
        units = store.list_active_units(user_id=user_id)
        integration_ids = list(dict.fromkeys(u.integration_id for u in units))

    scoring = scoring or get_scoring_config()
    recalibrator = WeightRecalibrator(store, AdaptiveWeightingEngine(scoring.weighting))
    return [recalibrator.recalibrate(user_id, iid, event_type) for iid in integration_ids]


def recalibrate_all(factory: StoreFactory | None = None) -> list[RecalibrationResult]:
    """Scheduled recalibration for every active unit, one session per unit."""
    factory = factory or store_factory
    units = resolve_units(factory)
    scoring = get_scoring_config()
    engine = AdaptiveWeightingEngine(scoring.weighting)

    results: list[RecalibrationResult] = []
    seen: set[tuple[uuid.UUID, uuid.UUID]] = set()
    for unit in units:
        pair = (unit.user_id, unit.integration_id)
        if pair in seen:
            continue
        seen.add(pair)
        store = factory()
        try:
            results.append(
                WeightRecalibrator(store, engine).recalibrate(
                    unit.user_id, unit.integration_id, RecalibrationEvent.SCHEDULED
                )
            )
        finally:
            store.close()
    return results


# ---------------------------------------------------------------------------
# Anomaly detection wiring
# ---------------------------------------------------------------------------


def build_explainer(anomaly: AnomalySettings, llm: LLMSettings) -> BaseExplainer:
    if anomaly.explainer != "llm":
        return TemplateExplainer()
    adapter = build_llm_adapter(
        llm.adapter,
        model=llm.model,
        max_tokens=llm.max_tokens,
        api_key=llm.api_key,
        base_url=llm.base_url,
    )
    return LLMExplainer(adapter, max_retries=llm.max_retries)


def build_anomaly_detector(
    anomaly: AnomalySettings | None = None,
    llm: LLMSettings | None = None,
    scoring: ScoringConfig | None = None,
) -> AnomalyDetector:
    anomaly = anomaly or get_anomaly_settings()
    llm = llm or get_llm_settings()
    return AnomalyDetector(
        config=scoring or get_scoring_config(),
        explainer=build_explainer(anomaly, llm),
        explain_top_n=anomaly.explain_top_n,
    )
