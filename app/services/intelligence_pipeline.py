"""
app/services/intelligence_pipeline.py

Per-unit intelligence computation: events -> metrics -> dimensions ->
trend, anomaly score, fusion score and insights -> one transactional write.

The pipeline owns no state between calls.  Everything a run needs is
carried by :class:`RunContext`; everything it persists goes through an
:class:`IntelligenceStore` bound to one session.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol

from anomaly.base import AnomalySignal
from anomaly.statistical import DimensionZScoreScorer
from app.config import PipelineSettings
from app.domain.intelligence import IntelligenceSnapshot, RawEvent, UnitOfWork
from app.scoring_config import ScoringConfig
from extraction.categories import default_display_name, resolve_category
from extraction.registry import extract_metrics
from insights.base import Insight
from insights.generator import generate_insights
from normalization.dimensions import compute_dimensions, fusion_contribution
from normalization.metrics import NormalizedMetric, metric_names, to_normalized_metrics
from trend.analyzer import TrendAnalyzer
from weighting.engine import composite_score

logger = logging.getLogger(__name__)


class UnitCancelledError(RuntimeError):
    """Raised inside a unit when its run was cancelled (timeout or shutdown)."""


# ---------------------------------------------------------------------------
# Collaborator contract
# ---------------------------------------------------------------------------


class IntelligenceStore(Protocol):
    """
    Storage operations used by one unit run.  Implementations never commit
    implicitly; :meth:`commit` is called once, after every write succeeded.
    """

    def list_active_units(
        self,
        *,
        user_id: uuid.UUID | None = None,
        service_names: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[UnitOfWork]: ...

    def latest_event(self, unit: UnitOfWork, start: datetime, end: datetime) -> RawEvent | None: ...

    def count_events(self, unit: UnitOfWork, start: datetime, end: datetime) -> int: ...

    def recent_scores(self, user_id: uuid.UUID, integration_id: uuid.UUID, limit: int) -> list[float]: ...

    def current_weights(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> dict[str, float]: ...

    def metric_history(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        names: Sequence[str],
        limit: int,
    ) -> dict[str, list[float]]: ...

    def save_snapshot(self, unit: UnitOfWork, snapshot: IntelligenceSnapshot) -> None: ...

    def replace_insights(self, unit: UnitOfWork, insights: Sequence[Insight], generated_at: datetime) -> None: ...

    def upsert_metrics(self, unit: UnitOfWork, metrics: Sequence[NormalizedMetric], synced_at: datetime) -> None: ...

    def append_metric_history(
        self, unit: UnitOfWork, metrics: Sequence[NormalizedMetric], recorded_at: datetime
    ) -> None: ...

    def append_score(self, unit: UnitOfWork, fusion_score: float, recorded_at: datetime) -> None: ...

    def append_anomaly_signal(
        self,
        signal: AnomalySignal,
        *,
        user_id: uuid.UUID | None,
        detected_at: datetime,
    ) -> uuid.UUID: ...

    def record_failure(self, unit: UnitOfWork, failed_at: datetime, reason: str) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Run context
# ---------------------------------------------------------------------------


@dataclass
class RunContext:
    """
    Per-run values shared by every unit of one batch.

    ``now`` anchors both event windows, so all units of a run see the same
    "this week" and "last week".
    """

    settings: PipelineSettings
    scoring: ScoringConfig
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def window_start(self) -> datetime:
        return self.now - timedelta(days=self.settings.window_days)

    @property
    def previous_window_start(self) -> datetime:
        return self.now - timedelta(days=2 * self.settings.window_days)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def raise_if_cancelled(self, label: str) -> None:
        if self.cancel_event.is_set():
            raise UnitCancelledError(f"Run {self.run_id} cancelled before writing {label}")

    def for_unit(self) -> "RunContext":
        """Copy sharing run id and clock, with its own cancel flag."""
        return RunContext(
            settings=self.settings,
            scoring=self.scoring,
            now=self.now,
            run_id=self.run_id,
        )


@dataclass(frozen=True)
class UnitOutcome:
    snapshot: IntelligenceSnapshot
    insights_generated: int
    anomaly_flagged: bool
    duration_ms: int


def _metadata_of(event: RawEvent | None) -> Mapping[str, object]:
    if event is None:
        return {}
    return event.metadata or {}


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class IntelligencePipeline:
    """
    Computes and persists the intelligence snapshot of one unit.

    Raises on any failure after rolling back the store; the caller decides
    how the failure is classified and recorded.
    """

    def process_unit(self, unit: UnitOfWork, context: RunContext, store: IntelligenceStore) -> UnitOutcome:
        started = time.monotonic()
        try:
            outcome = self._process(unit, context, store, started)
        except Exception:
            store.rollback()
            raise
        logger.debug(
            "Unit %s processed run=%s events=%d fusion=%.2f insights=%d duration_ms=%d",
            unit.label,
            context.run_id,
            outcome.snapshot.event_count,
            outcome.snapshot.fusion_score,
            outcome.insights_generated,
            outcome.duration_ms,
        )
        return outcome

    def _process(
        self,
        unit: UnitOfWork,
        context: RunContext,
        store: IntelligenceStore,
        started: float,
    ) -> UnitOutcome:
        config = context.scoring
        history_limit = context.settings.history_limit
        category = resolve_category(unit.service_name)
        display_name = unit.display_name or default_display_name(unit.service_name)

        context.raise_if_cancelled(unit.label)
        latest = store.latest_event(unit, context.window_start, context.now)
        event_count = store.count_events(unit, context.window_start, context.now)
        previous_count = store.count_events(unit, context.previous_window_start, context.window_start)

        bag = extract_metrics(category, unit.service_name, _metadata_of(latest), event_count)
        dims = compute_dimensions(bag, event_count, config)

        metric_history: dict[str, list[float]] = {}
        if config.scaling_mode == "adaptive":
            metric_history = store.metric_history(
                unit.user_id, unit.integration_id, metric_names(unit.service_name), history_limit
            )
        metrics = to_normalized_metrics(unit.service_name, dims, metric_history, config)

        weights = store.current_weights(unit.user_id, unit.integration_id)
        fusion_score = round(composite_score({m.metric_name: m.raw_value for m in metrics}, weights), 4)

        score_history = store.recent_scores(unit.user_id, unit.integration_id, history_limit)
        score_history = [*score_history, fusion_score][-history_limit:]
        trend = TrendAnalyzer(config).analyze(event_count, previous_count, score_history)

        scorer = DimensionZScoreScorer(config.zscore_threshold)
        zscore = scorer.evaluate(dims, event_count)

        insights = generate_insights(
            category,
            unit.service_name,
            display_name,
            dims,
            trend,
            bag,
            event_count,
            score_history,
        )

        snapshot = IntelligenceSnapshot(
            category=category.value,
            activity_volume=round(dims.activity_volume, 4),
            participation_level=round(dims.participation_level, 4),
            responsiveness=round(dims.responsiveness, 4),
            throughput=round(dims.throughput, 4),
            trend_direction=trend.direction,
            week_over_week_change=trend.week_over_week_change,
            trend_slope=trend.slope,
            forecast_score=round(trend.forecast, 4),
            fusion_score=fusion_score,
            anomaly_score=zscore.score,
            anomaly_detected=zscore.detected,
            fusion_contribution=round(fusion_contribution(dims, category, config), 4),
            event_count=event_count,
            raw_metrics=bag.to_payload(),
            signals_used=list(dims.signals_used),
            computed_at=context.now,
        )

        context.raise_if_cancelled(unit.label)
        store.save_snapshot(unit, snapshot)
        store.replace_insights(unit, insights, context.now)
        store.upsert_metrics(unit, metrics, context.now)
        store.append_metric_history(unit, metrics, context.now)
        store.append_score(unit, fusion_score, context.now)
        if zscore.detected:
            store.append_anomaly_signal(
                scorer.to_signal(zscore, dims, service_name=unit.service_name, category=category.value),
                user_id=unit.user_id,
                detected_at=context.now,
            )

        context.raise_if_cancelled(unit.label)
        store.commit()

        return UnitOutcome(
            snapshot=snapshot,
            insights_generated=len(insights),
            anomaly_flagged=zscore.detected,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
