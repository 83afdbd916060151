"""
anomaly/service.py

Anomaly detection run: read recent health samples, detect, explain the
most severe signals and append them to storage.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from anomaly.base import AnomalySignal, Severity
from anomaly.detector import AnomalyDetector

logger = logging.getLogger(__name__)


class AnomalyStore(Protocol):
    def recent_health_samples(self, since: datetime) -> list: ...

    def append_anomaly_signal(
        self,
        signal: AnomalySignal,
        *,
        user_id: uuid.UUID | None,
        detected_at: datetime,
    ) -> uuid.UUID: ...

    def append_detection_audit(
        self,
        *,
        user_id: uuid.UUID | None,
        description: str,
        severity: str,
        metadata: dict[str, Any],
        detected_at: datetime,
    ) -> uuid.UUID: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _audit_severity(critical: int, high: int) -> str:
    if critical:
        return Severity.HIGH
    if high:
        return Severity.MEDIUM
    return Severity.LOW


def _empty_summary() -> dict[str, Any]:
    return {
        "success": True,
        "anomalies_detected": 0,
        "anomaly_ids": [],
        "critical_anomalies": 0,
        "high_anomalies": 0,
        "explanations_performed": 0,
    }


class AnomalyService:
    """
    Orchestrates one detection pass.  Each signal is written on its own;
    a signal that fails to persist is logged and skipped.  A pass that saw
    health samples also appends one audit row with the counts by severity.
    """

    def __init__(
        self,
        store: AnomalyStore,
        detector: AnomalyDetector | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._detector = detector or AnomalyDetector()
        self._clock = clock

    def detect(self, user_id: uuid.UUID | None = None, window_minutes: int = 15) -> dict[str, Any]:
        started = time.monotonic()
        now = self._clock()
        samples = self._store.recent_health_samples(now - timedelta(minutes=window_minutes))
        if not samples:
            logger.info("Anomaly detection: no health samples in the last %d minutes", window_minutes)
            return _empty_summary()

        result = self._detector.evaluate(samples)

        anomaly_ids: list[str] = []
        stored: list[AnomalySignal] = []
        for signal in result.signals:
            try:
                anomaly_id = self._store.append_anomaly_signal(
                    signal,
                    user_id=user_id,
                    detected_at=now,
                )
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Failed to store %s anomaly for %s: %s",
                    signal.anomaly_type,
                    signal.source_component_name,
                    exc,
                    exc_info=True,
                )
                continue
            anomaly_ids.append(str(anomaly_id))
            stored.append(signal)

        summary = {
            "success": True,
            "anomalies_detected": len(stored),
            "anomaly_ids": anomaly_ids,
            "critical_anomalies": sum(1 for s in stored if s.severity == Severity.CRITICAL),
            "high_anomalies": sum(1 for s in stored if s.severity == Severity.HIGH),
            "explanations_performed": result.explanations_performed,
        }
        self._write_audit(user_id, now, window_minutes, len(samples), summary)
        self._store.commit()

        logger.info(
            "Anomaly detection: samples=%d detected=%d critical=%d high=%d explained=%d duration_ms=%d",
            len(samples),
            summary["anomalies_detected"],
            summary["critical_anomalies"],
            summary["high_anomalies"],
            summary["explanations_performed"],
            int((time.monotonic() - started) * 1000),
        )
        return summary

    def _write_audit(
        self,
        user_id: uuid.UUID | None,
        now: datetime,
        window_minutes: int,
        sample_count: int,
        summary: dict[str, Any],
    ) -> None:
        try:
            self._store.append_detection_audit(
                user_id=user_id,
                description=f"Anomaly detection identified {summary['anomalies_detected']} anomalies",
                severity=_audit_severity(summary["critical_anomalies"], summary["high_anomalies"]),
                metadata={
                    "anomalies_detected": summary["anomalies_detected"],
                    "critical_anomalies": summary["critical_anomalies"],
                    "high_anomalies": summary["high_anomalies"],
                    "explanations_performed": summary["explanations_performed"],
                    "time_window_minutes": window_minutes,
                    "samples": sample_count,
                },
                detected_at=now,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to write anomaly detection audit: %s", exc, exc_info=True)
