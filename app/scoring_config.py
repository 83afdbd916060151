"""
app/scoring_config.py

Injectable scoring configuration for the fusion intelligence core.

Every normalization range, threshold and coefficient used by the pure
computation packages (extraction, normalization, trend, weighting, anomaly,
insights) lives here.  Defaults are compiled in; an optional JSON rules file
may override any subset of them:

    {
        "ranges": {"communication.message_volume": [0, 2000]},
        "category_weights": {"communication": 0.3},
        "trend_threshold_pct": 7.5,
        "latency": {"critical_ms": 4000}
    }

The file path is taken from ``SCORING_RULES_PATH`` and defaults to
``config/scoring_rules.json``.  A missing file means "defaults only"; a
malformed file raises :class:`ScoringConfigError` at load time.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any

from db.config import load_env_files

_DEFAULT_RULES_PATH = Path(__file__).resolve().parents[1] / "config" / "scoring_rules.json"


class ScoringConfigError(ValueError):
    """Raised when a scoring rules override file cannot be applied."""


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScaleRange:
    """Closed ``[low, high]`` range used for linear 0-100 rescaling."""

    low: float
    high: float

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ScoringConfigError(
                f"Invalid scale range: low {self.low} is greater than high {self.high}."
            )


@dataclass(frozen=True)
class LatencyThresholds:
    deviation_pct: float = 100.0
    observed_ms: float = 2000.0
    high_ms: float = 3000.0
    high_deviation_pct: float = 200.0
    critical_ms: float = 5000.0
    critical_deviation_pct: float = 300.0


@dataclass(frozen=True)
class ErrorRateThresholds:
    deviation_pct: float = 100.0
    rate_pct: float = 5.0
    high_rate_pct: float = 10.0
    high_deviation_pct: float = 300.0
    critical_rate_pct: float = 20.0
    critical_deviation_pct: float = 500.0
    zero_baseline_deviation_pct: float = 1000.0


@dataclass(frozen=True)
class ResourceThresholds:
    cpu_pct: float = 80.0
    cpu_high_pct: float = 90.0
    cpu_critical_pct: float = 95.0
    memory_pct: float = 85.0
    memory_high_pct: float = 90.0
    memory_critical_pct: float = 95.0


@dataclass(frozen=True)
class WeightingCoefficients:
    """
    Coefficients of the adaptive weight formula::

        raw = base * (1 + alpha*variance + beta*confidence - gamma*penalty)
    """

    alpha: float = 0.3
    beta: float = 0.5
    gamma: float = 0.2
    history_limit: int = 30
    neutral_variance: float = 0.5
    default_base_weight: float = 1.0

    def __post_init__(self) -> None:
        if self.history_limit < 1:
            raise ScoringConfigError(f"history_limit must be at least 1, got {self.history_limit}.")


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

_DEFAULT_RANGES: dict[str, tuple[float, float]] = {
    "communication.message_volume": (0.0, 1000.0),
    "communication.channel_count": (0.0, 50.0),
    "meetings.meeting_count": (0.0, 50.0),
    "meetings.participants": (0.0, 100.0),
    "meetings.total_duration": (0.0, 2000.0),
    "project_management.task_count": (0.0, 500.0),
    "project_management.project_count": (0.0, 20.0),
    "engineering.repo_count": (0.0, 50.0),
    "engineering.open_work": (0.0, 100.0),
    "documentation.page_count": (0.0, 500.0),
    "documentation.space_count": (0.0, 20.0),
    "support.ticket_count": (0.0, 500.0),
    "design.file_count": (0.0, 100.0),
    "design.project_count": (0.0, 20.0),
    "data.record_count": (0.0, 10000.0),
    "data.base_count": (0.0, 50.0),
    "financial.transaction_count": (0.0, 500.0),
    "financial.account_count": (0.0, 100.0),
    "crm.record_count": (0.0, 1000.0),
    "crm.account_count": (0.0, 500.0),
    "general.event_count": (0.0, 100.0),
}

_DEFAULT_CATEGORY_WEIGHTS: dict[str, float] = {
    "communication": 0.25,
    "meetings": 0.15,
    "project_management": 0.25,
    "engineering": 0.15,
    "documentation": 0.05,
    "support": 0.10,
    "design": 0.03,
    "data": 0.02,
    "financial": 0.10,
    "crm": 0.08,
    "general": 0.05,
}

_DEFAULT_DIMENSION_WEIGHTS: dict[str, float] = {
    "activity_volume": 0.30,
    "participation_level": 0.20,
    "responsiveness": 0.25,
    "throughput": 0.25,
}

_SCALING_MODES = frozenset({"fixed", "adaptive"})


def _default_ranges() -> dict[str, ScaleRange]:
    return {key: ScaleRange(low, high) for key, (low, high) in _DEFAULT_RANGES.items()}


@dataclass(frozen=True)
class ScoringConfig:
    """
    Immutable bundle of scoring constants.

    Build one at process start (``get_scoring_config()``) and pass it by
    reference, or construct one directly in tests.
    """

    ranges: dict[str, ScaleRange] = field(default_factory=_default_ranges)
    category_weights: dict[str, float] = field(
        default_factory=lambda: dict(_DEFAULT_CATEGORY_WEIGHTS)
    )
    dimension_weights: dict[str, float] = field(
        default_factory=lambda: dict(_DEFAULT_DIMENSION_WEIGHTS)
    )
    trend_threshold_pct: float = 5.0
    zscore_threshold: float = 2.0
    forecast_weights: tuple[float, ...] = (0.4, 0.3, 0.2, 0.1)
    scaling_mode: str = "fixed"
    latency: LatencyThresholds = field(default_factory=LatencyThresholds)
    error_rate: ErrorRateThresholds = field(default_factory=ErrorRateThresholds)
    resources: ResourceThresholds = field(default_factory=ResourceThresholds)
    weighting: WeightingCoefficients = field(default_factory=WeightingCoefficients)

    def __post_init__(self) -> None:
        if self.scaling_mode not in _SCALING_MODES:
            raise ScoringConfigError(
                f"scaling_mode must be one of {sorted(_SCALING_MODES)}, got {self.scaling_mode!r}."
            )
        if not self.forecast_weights:
            raise ScoringConfigError("forecast_weights must not be empty.")

    def range_for(self, category: str, metric: str) -> ScaleRange:
        key = f"{category}.{metric}"
        try:
            return self.ranges[key]
        except KeyError as exc:
            raise ScoringConfigError(f"No normalization range configured for {key!r}.") from exc

    def category_weight(self, category: str) -> float:
        return self.category_weights.get(category, self.category_weights.get("general", 0.05))


# ---------------------------------------------------------------------------
# Override loading
# ---------------------------------------------------------------------------

_NESTED_SECTIONS: dict[str, type] = {
    "latency": LatencyThresholds,
    "error_rate": ErrorRateThresholds,
    "resources": ResourceThresholds,
    "weighting": WeightingCoefficients,
}


def _apply_section(current: Any, section_type: type, payload: Any, name: str) -> Any:
    if not isinstance(payload, dict):
        raise ScoringConfigError(f"Section {name!r} must be a JSON object.")
    allowed = {f.name for f in fields(section_type)}
    unknown = set(payload) - allowed
    if unknown:
        raise ScoringConfigError(f"Unknown keys in {name!r}: {sorted(unknown)}.")
    return replace(current, **payload)


def _parse_ranges(payload: Any) -> dict[str, ScaleRange]:
    if not isinstance(payload, dict):
        raise ScoringConfigError("Section 'ranges' must be a JSON object.")
    parsed: dict[str, ScaleRange] = {}
    for key, bounds in payload.items():
        if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
            raise ScoringConfigError(f"Range {key!r} must be a [low, high] pair.")
        try:
            parsed[key] = ScaleRange(float(bounds[0]), float(bounds[1]))
        except (TypeError, ValueError) as exc:
            raise ScoringConfigError(f"Range {key!r} must contain numbers.") from exc
    return parsed


def build_scoring_config(overrides: dict[str, Any] | None = None) -> ScoringConfig:
    """
    Return a :class:`ScoringConfig` with *overrides* merged over the defaults.

    Ranges and weight tables are merged key by key; scalar and nested
    threshold sections replace only the fields they name.
    """

    config = ScoringConfig()
    if not overrides:
        return config

    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key == "ranges":
            changes["ranges"] = {**config.ranges, **_parse_ranges(value)}
        elif key in ("category_weights", "dimension_weights"):
            if not isinstance(value, dict):
                raise ScoringConfigError(f"Section {key!r} must be a JSON object.")
            changes[key] = {**getattr(config, key), **{k: float(v) for k, v in value.items()}}
        elif key in _NESTED_SECTIONS:
            changes[key] = _apply_section(getattr(config, key), _NESTED_SECTIONS[key], value, key)
        elif key == "forecast_weights":
            changes[key] = tuple(float(v) for v in value)
        elif key in ("trend_threshold_pct", "zscore_threshold"):
            changes[key] = float(value)
        elif key == "scaling_mode":
            changes[key] = str(value).strip().lower()
        else:
            raise ScoringConfigError(f"Unknown scoring rules key {key!r}.")

    return replace(config, **changes)


def load_scoring_config(path: Path | str | None = None) -> ScoringConfig:
    """
    Load scoring rules from *path* (JSON).  A missing file yields defaults.
    """

    rules_path = Path(path) if path is not None else _DEFAULT_RULES_PATH
    if not rules_path.exists():
        return build_scoring_config()

    try:
        data = json.loads(rules_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ScoringConfigError(f"Cannot read scoring rules from {rules_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ScoringConfigError("Scoring rules file must contain a JSON object.")
    return build_scoring_config(data)


@lru_cache(maxsize=1)
def get_scoring_config() -> ScoringConfig:
    """
    Return the process-wide scoring configuration, resolved once.
    """

    load_env_files()
    raw_path = os.getenv("SCORING_RULES_PATH", "").strip()
    return load_scoring_config(raw_path or None)
