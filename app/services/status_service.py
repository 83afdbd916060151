"""
app/services/status_service.py

Status labels derived from a stored snapshot.

Two audiences:

- operators get :func:`derive_health_status` (healthy / analyzing /
  temporarily_unavailable) alongside the raw failure fields;
- end users get :func:`derive_display_state` and :func:`derive_freshness`,
  which never reveal failure reasons or timestamps.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.domain.intelligence import StoredSnapshot


class HealthStatus:
    HEALTHY = "healthy"
    ANALYZING = "analyzing"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"


class DisplayState:
    ACTIVE = "active"
    ANALYZING = "analyzing"
    UPDATING = "updating"


class Freshness:
    FRESH = "fresh"
    RECENT = "recent"
    STALE = "stale"
    PENDING = "pending"


FRESH_WITHIN = timedelta(hours=2)
RECENT_WITHIN = timedelta(hours=24)


def _failure_is_latest(snapshot: StoredSnapshot) -> bool:
    if not snapshot.failure_reason:
        return False
    if snapshot.last_successful_run_at is None:
        return True
    return (
        snapshot.last_failed_run_at is not None
        and snapshot.last_failed_run_at >= snapshot.last_successful_run_at
    )


def derive_health_status(snapshot: StoredSnapshot) -> str:
    """
    A failure newer than the last success means temporarily unavailable;
    no activity and no failure means still analyzing.
    """

    if _failure_is_latest(snapshot):
        return HealthStatus.TEMPORARILY_UNAVAILABLE
    if snapshot.activity_volume == 0 and not snapshot.failure_reason:
        return HealthStatus.ANALYZING
    return HealthStatus.HEALTHY


def derive_display_state(snapshot: StoredSnapshot) -> str:
    """End-user label: a latest-run failure reads as "updating"."""
    if _failure_is_latest(snapshot):
        return DisplayState.UPDATING
    if snapshot.last_successful_run_at is None or snapshot.activity_volume == 0:
        return DisplayState.ANALYZING
    return DisplayState.ACTIVE


def derive_freshness(snapshot: StoredSnapshot, now: datetime | None = None) -> str:
    computed = snapshot.last_successful_run_at or snapshot.computed_at
    if computed is None:
        return Freshness.PENDING
    now = now or datetime.now(timezone.utc)
    age = now - computed
    if age <= FRESH_WITHIN:
        return Freshness.FRESH
    if age <= RECENT_WITHIN:
        return Freshness.RECENT
    return Freshness.STALE
