"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_EXPLAINERS = {"template", "llm"}
_ALLOWED_LLM_ADAPTERS = {"openai", "mock"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_choice_env(name: str, default: str, allowed: set[str]) -> str:
    value = _get_str_env(name, default).lower()
    if value not in allowed:
        raise RuntimeError(
            f"{name} '{value}' is not valid. Allowed values: {sorted(allowed)}."
        )
    return value


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level process settings.
    """

    log_level: str = "INFO"
    check_schema_on_startup: bool = True


@dataclass(frozen=True)
class PipelineSettings:
    """
    Runtime settings for the intelligence batch orchestrator.
    """

    unit_timeout_seconds: float = 8.0
    max_concurrency: int = 4
    window_days: int = 7
    history_limit: int = 30
    batch_limit: int | None = None


@dataclass(frozen=True)
class AnomalySettings:
    """
    Runtime settings for rule-based anomaly detection.
    """

    window_minutes: int = 15
    explain_top_n: int = 3
    explainer: str = "template"


@dataclass(frozen=True)
class LLMSettings:
    """
    LLM adapter settings used by the ``llm`` anomaly explainer.
    """

    adapter: str = "mock"
    model: str = "gpt-4o-mini"
    max_tokens: int = 600
    max_retries: int = 2
    api_key: str | None = None
    base_url: str | None = None


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Cron schedule for the background jobs.
    """

    enabled: bool = True
    intelligence_minute: int = 0
    recalibration_hour: int = 3
    recalibration_minute: int = 30


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings(
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
        check_schema_on_startup=_get_bool_env("CHECK_SCHEMA_ON_STARTUP", True),
    )


@lru_cache(maxsize=1)
def get_pipeline_settings() -> PipelineSettings:
    """
    Return cached orchestrator settings from environment variables.
    """

    batch_limit = _get_int_env("INTELLIGENCE_BATCH_LIMIT", 0)
    return PipelineSettings(
        unit_timeout_seconds=max(0.1, _get_float_env("INTELLIGENCE_UNIT_TIMEOUT_SECONDS", 8.0)),
        max_concurrency=max(1, _get_int_env("INTELLIGENCE_MAX_CONCURRENCY", 4)),
        window_days=max(1, _get_int_env("INTELLIGENCE_WINDOW_DAYS", 7)),
        history_limit=max(1, _get_int_env("INTELLIGENCE_HISTORY_LIMIT", 30)),
        batch_limit=batch_limit if batch_limit > 0 else None,
    )


@lru_cache(maxsize=1)
def get_anomaly_settings() -> AnomalySettings:
    """
    Return cached anomaly detection settings.

    Raises RuntimeError if ANOMALY_EXPLAINER names an unknown strategy.
    """

    return AnomalySettings(
        window_minutes=max(1, _get_int_env("ANOMALY_WINDOW_MINUTES", 15)),
        explain_top_n=max(0, _get_int_env("ANOMALY_EXPLAIN_TOP_N", 3)),
        explainer=_get_choice_env("ANOMALY_EXPLAINER", "template", _ALLOWED_EXPLAINERS),
    )


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    return LLMSettings(
        adapter=_get_choice_env("LLM_ADAPTER", "mock", _ALLOWED_LLM_ADAPTERS),
        model=_get_str_env("LLM_MODEL", "gpt-4o-mini"),
        max_tokens=max(1, _get_int_env("LLM_MAX_TOKENS", 600)),
        max_retries=max(0, _get_int_env("LLM_MAX_RETRIES", 2)),
        api_key=_get_optional_str_env("OPENAI_API_KEY"),
        base_url=_get_optional_str_env("OPENAI_BASE_URL"),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        intelligence_minute=min(59, max(0, _get_int_env("INTELLIGENCE_CRON_MINUTE", 0))),
        recalibration_hour=min(23, max(0, _get_int_env("RECALIBRATION_CRON_HOUR", 3))),
        recalibration_minute=min(59, max(0, _get_int_env("RECALIBRATION_CRON_MINUTE", 30))),
    )
