"""
weighting/recalibrator.py

Weight recalibration service for one (user, integration) pair.

Loads the pair's normalized metrics and composite score history, runs the
AdaptiveWeightingEngine, upserts one weighting row per metric, and writes an
audit entry for every attempt, successful or not.

Failure contract
----------------
- No metrics for the pair   -> ``no_data`` result and a failed audit entry;
                               not an exception.
- Any other failure         -> session rolled back, failed audit entry with
                               the error message, ``failed`` result.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from weighting.engine import AdaptiveWeightingEngine, MetricWeightInput, WeightDecision

logger = logging.getLogger(__name__)


class RecalibrationEvent:
    MANUAL = "manual_recalibration"
    SCHEDULED = "scheduled_recalibration"


class RecalibrationStatus:
    SUCCESS = "success"
    NO_DATA = "no_data"
    FAILED = "failed"


_ADJUSTMENT_REASONS: dict[str, str] = {
    RecalibrationEvent.MANUAL: "Manual recalibration via API",
    RecalibrationEvent.SCHEDULED: "Scheduled adaptive recalibration",
}

_TRIGGERED_BY: dict[str, str] = {
    RecalibrationEvent.MANUAL: "user",
    RecalibrationEvent.SCHEDULED: "system",
}


@dataclass(frozen=True)
class WeightAuditEntry:
    user_id: uuid.UUID
    integration_id: uuid.UUID
    event_type: str
    status: str
    metrics_count: int
    execution_time_ms: int
    triggered_by: str
    total_variance: float | None = None
    avg_confidence: float | None = None
    weight_changes: dict[str, dict[str, Any]] = field(default_factory=dict)
    error_message: str | None = None


@dataclass(frozen=True)
class RecalibrationResult:
    integration_id: uuid.UUID
    status: str
    metrics_count: int = 0
    variance: float | None = None
    confidence: float = 0.0
    weights: dict[str, float] = field(default_factory=dict)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status == RecalibrationStatus.SUCCESS


class WeightingStore(Protocol):
    def list_metrics(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> list[MetricWeightInput]:
        ...

    def recent_scores(self, user_id: uuid.UUID, integration_id: uuid.UUID, limit: int) -> list[float]:
        ...

    def current_weights(self, user_id: uuid.UUID, integration_id: uuid.UUID) -> dict[str, float]:
        ...

    def upsert_weightings(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        decisions: Sequence[WeightDecision],
        *,
        event_type: str,
        adjustment_reason: str,
        adjusted_at: datetime,
    ) -> None:
        ...

    def write_audit(self, entry: WeightAuditEntry) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class WeightRecalibrator:
    """
    Coordinates engine and store for one recalibration.  Stateless across
    calls; the store is bound to the caller's session.
    """

    def __init__(
        self,
        store: WeightingStore,
        engine: AdaptiveWeightingEngine | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._engine = engine or AdaptiveWeightingEngine()
        self._clock = clock

    def recalibrate(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        event_type: str = RecalibrationEvent.MANUAL,
    ) -> RecalibrationResult:
        if event_type not in _ADJUSTMENT_REASONS:
            raise ValueError(f"Unsupported recalibration event type: {event_type!r}")

        started = time.monotonic()
        try:
            metrics = self._store.list_metrics(user_id, integration_id)
            if not metrics:
                self._store.write_audit(
                    self._audit(
                        user_id,
                        integration_id,
                        event_type,
                        started,
                        status=RecalibrationStatus.FAILED,
                        error_message="No metrics found",
                    )
                )
                self._store.commit()
                logger.info(
                    "Recalibration skipped user=%s integration=%s: no metrics",
                    user_id,
                    integration_id,
                )
                return RecalibrationResult(
                    integration_id=integration_id,
                    status=RecalibrationStatus.NO_DATA,
                )

            history = self._store.recent_scores(
                user_id, integration_id, self._engine.coefficients.history_limit
            )
            previous = self._store.current_weights(user_id, integration_id)
            outcome = self._engine.compute(metrics, history, previous)

            self._store.upsert_weightings(
                user_id,
                integration_id,
                outcome.decisions,
                event_type=event_type,
                adjustment_reason=_ADJUSTMENT_REASONS[event_type],
                adjusted_at=self._clock(),
            )
            self._store.write_audit(
                self._audit(
                    user_id,
                    integration_id,
                    event_type,
                    started,
                    status=RecalibrationStatus.SUCCESS,
                    metrics_count=len(metrics),
                    total_variance=outcome.variance,
                    avg_confidence=outcome.confidence,
                    weight_changes=outcome.weight_changes(),
                )
            )
            self._store.commit()
        except Exception as exc:  # noqa: BLE001
            self._store.rollback()
            logger.warning(
                "Recalibration failed user=%s integration=%s: %s",
                user_id,
                integration_id,
                exc,
                exc_info=True,
            )
            self._record_failure(user_id, integration_id, event_type, started, str(exc))
            return RecalibrationResult(
                integration_id=integration_id,
                status=RecalibrationStatus.FAILED,
                error=str(exc),
            )

        logger.info(
            "Recalibrated user=%s integration=%s metrics=%d variance=%.4f confidence=%.4f",
            user_id,
            integration_id,
            len(metrics),
            outcome.variance,
            outcome.confidence,
        )
        return RecalibrationResult(
            integration_id=integration_id,
            status=RecalibrationStatus.SUCCESS,
            metrics_count=len(metrics),
            variance=outcome.variance,
            confidence=outcome.confidence,
            weights=outcome.weights,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _record_failure(
        self,
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        event_type: str,
        started: float,
        message: str,
    ) -> None:
        try:
            self._store.write_audit(
                self._audit(
                    user_id,
                    integration_id,
                    event_type,
                    started,
                    status=RecalibrationStatus.FAILED,
                    error_message=message,
                )
            )
            self._store.commit()
        except Exception:  # noqa: BLE001
            self._store.rollback()
            logger.error(
                "Could not write recalibration audit entry user=%s integration=%s",
                user_id,
                integration_id,
                exc_info=True,
            )

    @staticmethod
    def _audit(
        user_id: uuid.UUID,
        integration_id: uuid.UUID,
        event_type: str,
        started: float,
        *,
        status: str,
        metrics_count: int = 0,
        total_variance: float | None = None,
        avg_confidence: float | None = None,
        weight_changes: dict[str, dict[str, Any]] | None = None,
        error_message: str | None = None,
    ) -> WeightAuditEntry:
        return WeightAuditEntry(
            user_id=user_id,
            integration_id=integration_id,
            event_type=event_type,
            status=status,
            metrics_count=metrics_count,
            execution_time_ms=int((time.monotonic() - started) * 1000),
            triggered_by=_TRIGGERED_BY[event_type],
            total_variance=total_variance,
            avg_confidence=avg_confidence,
            weight_changes=weight_changes or {},
            error_message=error_message,
        )
