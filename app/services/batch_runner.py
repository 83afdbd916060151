"""
app/services/batch_runner.py

Failure-isolated batch orchestrator for the intelligence pipeline.

Unit state machine
------------------
    PENDING -> RUNNING -> SUCCEEDED
                       -> FAILED      (classified, failure fields recorded)
    PENDING -> SKIPPED                (another run of the same unit is in flight)

Guarantees
----------
- One unit's failure never aborts the batch.
- Each unit runs under a hard wall-clock timeout.  On expiry the unit is
  recorded as a ``timeout`` failure immediately; its worker is told to
  cancel and abandons its session before writing.
- At most one run per (user, integration, service) is in flight per
  runner, including workers still draining after a timeout.
- A failed unit changes only ``last_failed_run_at`` and ``failure_reason``
  of its stored snapshot.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from app.config import PipelineSettings, get_pipeline_settings
from app.domain.intelligence import UnitOfWork
from app.failure_codes import UnitTimeoutError, classify_failure, failure_reason
from app.scoring_config import ScoringConfig, get_scoring_config
from app.services.intelligence_pipeline import (
    IntelligencePipeline,
    IntelligenceStore,
    RunContext,
    UnitOutcome,
)

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], IntelligenceStore]


class UnitState:
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class UnitResult:
    user_id: str
    integration_id: str
    service_name: str
    status: str
    insights_generated: int = 0
    fusion_score: float | None = None
    failure_type: str | None = None
    error: str | None = None
    duration_ms: int = 0


@dataclass
class RunSummary:
    """
    Run-level outcome.  ``success`` reflects whether the orchestration
    itself completed; per-unit outcomes are listed in ``results``.
    """

    run_id: str
    success: bool = True
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    insights_generated: int = 0
    total: int = 0
    duration_ms: int = 0
    results: list[UnitResult] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)

    def add(self, result: UnitResult) -> None:
        self.results.append(result)
        if result.status == UnitState.SUCCEEDED:
            self.processed += 1
            self.insights_generated += result.insights_generated
        elif result.status == UnitState.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            self.errors.append(
                {
                    "user_id": result.user_id,
                    "integration_id": result.integration_id,
                    "service_name": result.service_name,
                    "failure_type": result.failure_type or "",
                    "error": result.error or "",
                }
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class BatchRunner:
    """
    Runs :class:`IntelligencePipeline` over a list of units with bounded
    concurrency.

    Parameters
    ----------
    store_factory:
        Returns a fresh store (own session) per call.  Each unit attempt and
        each failure record gets its own store.
    settings / scoring:
        Resolved once by the caller; defaults to the cached process values.
    """

    def __init__(
        self,
        store_factory: StoreFactory,
        settings: PipelineSettings | None = None,
        scoring: ScoringConfig | None = None,
        pipeline: IntelligencePipeline | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store_factory = store_factory
        self._settings = settings or get_pipeline_settings()
        self._scoring = scoring or get_scoring_config()
        self._pipeline = pipeline or IntelligencePipeline()
        self._clock = clock
        self._in_flight: set[tuple[str, str, str]] = set()
        self._lock = threading.Lock()

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, units: Iterable[UnitOfWork]) -> RunSummary:
        started = time.monotonic()
        work = list(units)
        if self._settings.batch_limit is not None:
            work = work[: self._settings.batch_limit]

        context = RunContext(settings=self._settings, scoring=self._scoring, now=self._clock())
        summary = RunSummary(run_id=context.run_id, total=len(work))
        logger.info(
            "Intelligence run %s starting: units=%d concurrency=%d timeout=%.1fs",
            context.run_id,
            len(work),
            self._settings.max_concurrency,
            self._settings.unit_timeout_seconds,
        )

        if work:
            workers = max(1, min(self._settings.max_concurrency, len(work)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="intelligence") as pool:
                futures = [pool.submit(self._run_unit, unit, context) for unit in work]
                for future in futures:
                    summary.add(future.result())

        summary.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Intelligence run %s complete: processed=%d failed=%d skipped=%d insights=%d duration_ms=%d",
            summary.run_id,
            summary.processed,
            summary.failed,
            summary.skipped,
            summary.insights_generated,
            summary.duration_ms,
        )
        return summary

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _claim(self, unit: UnitOfWork) -> bool:
        with self._lock:
            if unit.key in self._in_flight:
                return False
            self._in_flight.add(unit.key)
            return True

    def _release(self, unit: UnitOfWork) -> None:
        with self._lock:
            self._in_flight.discard(unit.key)

    def _result(self, unit: UnitOfWork, status: str, started: float, **extra: Any) -> UnitResult:
        return UnitResult(
            user_id=str(unit.user_id),
            integration_id=str(unit.integration_id),
            service_name=unit.service_name,
            status=status,
            duration_ms=int((time.monotonic() - started) * 1000),
            **extra,
        )

    def _run_unit(self, unit: UnitOfWork, context: RunContext) -> UnitResult:
        started = time.monotonic()
        if not self._claim(unit):
            logger.info("Unit %s skipped: a run is already in flight", unit.label)
            return self._result(unit, UnitState.SKIPPED, started)

        unit_context = context.for_unit()
        try:
            outcome = self._execute_with_timeout(unit, unit_context)
        except Exception as exc:  # noqa: BLE001
            kind = classify_failure(exc)
            reason = failure_reason(exc, kind)
            logger.warning("Unit %s failed (%s): %s", unit.label, kind, exc)
            self._record_failure(unit, context.now, reason)
            return self._result(unit, UnitState.FAILED, started, failure_type=kind, error=reason)

        return self._result(
            unit,
            UnitState.SUCCEEDED,
            started,
            insights_generated=outcome.insights_generated,
            fusion_score=outcome.snapshot.fusion_score,
        )

    def _execute_with_timeout(self, unit: UnitOfWork, context: RunContext) -> UnitOutcome:
        timeout = self._settings.unit_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="intelligence-unit")
        try:
            future: Future[UnitOutcome] = executor.submit(self._execute, unit, context)
        except BaseException:
            self._release(unit)
            executor.shutdown(wait=False)
            raise
        # The claim is held until the worker really finishes, even past a timeout.
        future.add_done_callback(lambda _f: self._release(unit))
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError as exc:
            context.cancel()
            future.cancel()
            raise UnitTimeoutError(unit.label, timeout) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _execute(self, unit: UnitOfWork, context: RunContext) -> UnitOutcome:
        store = self._store_factory()
        try:
            return self._pipeline.process_unit(unit, context, store)
        finally:
            store.close()

    def _record_failure(self, unit: UnitOfWork, failed_at: datetime, reason: str) -> None:
        try:
            store = self._store_factory()
        except Exception:  # noqa: BLE001
            logger.error("Could not open a store to record failure for %s", unit.label, exc_info=True)
            return
        try:
            store.record_failure(unit, failed_at, reason)
            store.commit()
        except Exception:  # noqa: BLE001
            store.rollback()
            logger.error("Could not record failure for %s", unit.label, exc_info=True)
        finally:
            store.close()
