"""
app/scheduler/jobs.py

APScheduler-based batch scheduler for the fusion intelligence pipeline.

Schedule (all times UTC)
--------------------------
  hourly_intelligence: every hour at ``INTELLIGENCE_CRON_MINUTE``
  daily_recalibration: every day at ``RECALIBRATION_CRON_HOUR``:``RECALIBRATION_CRON_MINUTE``

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import SchedulerSettings, get_scheduler_settings
from app.services.intelligence_service import (
    WorkListUnavailableError,
    recalibrate_all,
    run_intelligence_batch,
)
from weighting.recalibrator import RecalibrationStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: Hourly intelligence batch
# ---------------------------------------------------------------------------


def run_hourly_intelligence() -> None:
    """
    Run the intelligence batch over every active unit.  Per-unit failures
    are recorded by the batch runner; only an unreadable work list aborts.
    """
    logger.info("Scheduler: hourly_intelligence starting")
    try:
        summary = run_intelligence_batch()
    except WorkListUnavailableError as exc:
        logger.error("Scheduler: hourly_intelligence could not start: %s", exc)
        return
    logger.info(
        "Scheduler: hourly_intelligence complete run_id=%s processed=%d failed=%d skipped=%d",
        summary.run_id,
        summary.processed,
        summary.failed,
        summary.skipped,
    )


# ---------------------------------------------------------------------------
# Job: Daily weight recalibration
# ---------------------------------------------------------------------------


def run_daily_recalibration() -> None:
    """
    Recalibrate adaptive weights for every active (user, integration) pair.
    Each pair commits on its own session; failures are audited per pair.
    """
    logger.info("Scheduler: daily_recalibration starting")
    try:
        results = recalibrate_all()
    except WorkListUnavailableError as exc:
        logger.error("Scheduler: daily_recalibration could not start: %s", exc)
        return

    counts = dict.fromkeys(
        (RecalibrationStatus.SUCCESS, RecalibrationStatus.NO_DATA, RecalibrationStatus.FAILED), 0
    )
    for result in results:
        counts[result.status] = counts.get(result.status, 0) + 1
    logger.info(
        "Scheduler: daily_recalibration complete success=%d no_data=%d failed=%d",
        counts[RecalibrationStatus.SUCCESS],
        counts[RecalibrationStatus.NO_DATA],
        counts[RecalibrationStatus.FAILED],
    )


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(settings: SchedulerSettings | None = None) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = settings or get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_hourly_intelligence,
        trigger="cron",
        minute=settings.intelligence_minute,
        id="hourly_intelligence",
        name="Hourly intelligence batch",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=600,
    )
    scheduler.add_job(
        run_daily_recalibration,
        trigger="cron",
        hour=settings.recalibration_hour,
        minute=settings.recalibration_minute,
        id="daily_recalibration",
        name="Daily adaptive weight recalibration",
        replace_existing=True,
        misfire_grace_time=3600,
    )

    return scheduler
