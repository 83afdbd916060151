"""
normalization/dimensions.py

Category-specific derivation of the four normalized health dimensions
(activity volume, participation level, responsiveness, throughput) from a
RawMetricBag.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from app.scoring_config import ScoringConfig, get_scoring_config
from extraction.bag import RawMetricBag
from extraction.categories import IntegrationCategory
from normalization.scaler import (
    NEUTRAL_SCORE,
    clamp,
    inverse_ratio_score,
    normalize_range,
    ratio_score,
)

DIMENSIONS: tuple[str, ...] = (
    "activity_volume",
    "participation_level",
    "responsiveness",
    "throughput",
)


@dataclass(frozen=True)
class DimensionScores:
    """
    The four 0-100 dimensions of one integration snapshot.

    Defaults are the zero-data values: no activity, no participation and
    neutral responsiveness and throughput.
    """

    activity_volume: float = 0.0
    participation_level: float = 0.0
    responsiveness: float = NEUTRAL_SCORE
    throughput: float = NEUTRAL_SCORE
    signals_used: tuple[str, ...] = ()

    def values(self) -> tuple[float, float, float, float]:
        return (self.activity_volume, self.participation_level, self.responsiveness, self.throughput)

    def as_dict(self) -> dict[str, float]:
        return dict(zip(DIMENSIONS, self.values()))


_DimensionRule = Callable[[RawMetricBag, ScoringConfig], DimensionScores]


def _scaled(bag: RawMetricBag, config: ScoringConfig, metric: str, value: float) -> float:
    return normalize_range(value, config.range_for(bag.category.value, metric))


# ---------------------------------------------------------------------------
# Category rules
# ---------------------------------------------------------------------------


def _communication(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    activity = _scaled(bag, config, "message_volume", bag.get("message_volume"))
    return DimensionScores(
        activity_volume=activity,
        participation_level=_scaled(
            bag, config, "channel_count", bag.first("active_channels", "channel_count")
        ),
        responsiveness=clamp(NEUTRAL_SCORE + activity / 2),
        throughput=activity,
        signals_used=("message_volume", "channel_activity", "member_count"),
    )


def _meetings(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    return DimensionScores(
        activity_volume=_scaled(bag, config, "meeting_count", bag.get("meeting_count")),
        participation_level=_scaled(
            bag, config, "participants", bag.first("total_participants", "attendee_count")
        ),
        responsiveness=NEUTRAL_SCORE,
        throughput=_scaled(bag, config, "total_duration", bag.get("total_duration")),
        signals_used=("meeting_count", "duration", "participants"),
    )


def _project_management(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    total = bag.get("task_count")
    open_tasks = bag.get("open_tasks")
    return DimensionScores(
        activity_volume=_scaled(bag, config, "task_count", total),
        participation_level=_scaled(bag, config, "project_count", bag.get("project_count")),
        responsiveness=inverse_ratio_score(open_tasks, total) if open_tasks > 0 else NEUTRAL_SCORE,
        throughput=ratio_score(bag.get("completed_tasks"), total),
        signals_used=("task_count", "completion_rate", "backlog_size"),
    )


def _engineering(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    open_work = bag.get("open_pull_requests") + bag.get("open_issues")
    return DimensionScores(
        activity_volume=_scaled(bag, config, "repo_count", bag.get("repo_count")),
        participation_level=_scaled(bag, config, "open_work", open_work),
        signals_used=("repo_count", "open_prs", "open_issues"),
    )


def _documentation(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    return DimensionScores(
        activity_volume=_scaled(bag, config, "page_count", bag.get("page_count")),
        participation_level=_scaled(
            bag, config, "space_count", bag.first("space_count", "database_count")
        ),
        signals_used=("page_count", "space_count", "database_count"),
    )


def _support(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    total = bag.get("ticket_count")
    resolved = bag.first("resolved_tickets", "solved_tickets")
    return DimensionScores(
        activity_volume=_scaled(bag, config, "ticket_count", total),
        participation_level=NEUTRAL_SCORE,
        responsiveness=inverse_ratio_score(bag.get("open_tickets"), total, factor=0.5),
        throughput=ratio_score(resolved, total),
        signals_used=("ticket_volume", "resolution_rate", "backlog_size"),
    )


def _design(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    return DimensionScores(
        activity_volume=_scaled(bag, config, "file_count", bag.first("file_count", "board_count")),
        participation_level=_scaled(
            bag, config, "project_count", bag.first("project_count", "team_count")
        ),
        signals_used=("file_count", "board_count", "project_count"),
    )


def _data(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    return DimensionScores(
        activity_volume=_scaled(bag, config, "record_count", bag.get("record_count")),
        participation_level=_scaled(bag, config, "base_count", bag.get("base_count")),
        signals_used=("record_count", "table_count", "base_count"),
    )


def _financial(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    invoices = bag.get("invoice_count")
    return DimensionScores(
        activity_volume=_scaled(
            bag, config, "transaction_count", invoices + bag.get("payment_count")
        ),
        participation_level=_scaled(bag, config, "account_count", bag.get("account_count")),
        responsiveness=inverse_ratio_score(bag.get("overdue_invoices"), invoices),
        throughput=ratio_score(bag.get("paid_invoices"), invoices),
        signals_used=("invoice_count", "payment_count", "overdue_rate", "account_count"),
    )


def _crm(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    accounts = bag.get("account_count")
    opportunities = bag.get("opportunity_count")
    cases = bag.get("case_count")
    return DimensionScores(
        activity_volume=_scaled(bag, config, "record_count", accounts + opportunities + cases),
        participation_level=_scaled(bag, config, "account_count", accounts),
        responsiveness=ratio_score(bag.get("closed_cases"), cases),
        throughput=ratio_score(bag.get("won_opportunities"), opportunities),
        signals_used=("account_count", "opportunity_count", "case_count", "win_rate"),
    )


def _general(bag: RawMetricBag, config: ScoringConfig) -> DimensionScores:
    return DimensionScores(
        activity_volume=_scaled(bag, config, "event_count", bag.get("event_count")),
        signals_used=("event_count",),
    )


_DIMENSION_RULES: dict[IntegrationCategory, _DimensionRule] = {
    IntegrationCategory.COMMUNICATION: _communication,
    IntegrationCategory.MEETINGS: _meetings,
    IntegrationCategory.PROJECT_MANAGEMENT: _project_management,
    IntegrationCategory.ENGINEERING: _engineering,
    IntegrationCategory.DOCUMENTATION: _documentation,
    IntegrationCategory.SUPPORT: _support,
    IntegrationCategory.DESIGN: _design,
    IntegrationCategory.DATA: _data,
    IntegrationCategory.FINANCIAL: _financial,
    IntegrationCategory.CRM: _crm,
    IntegrationCategory.GENERAL: _general,
}

_missing = set(IntegrationCategory) - set(_DIMENSION_RULES)
if _missing:
    raise RuntimeError(f"No dimension rule registered for categories: {sorted(c.value for c in _missing)}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compute_dimensions(
    bag: RawMetricBag,
    event_count: int,
    config: ScoringConfig | None = None,
) -> DimensionScores:
    """
    Derive the four dimensions for *bag*.  An empty window returns the
    zero-data defaults without consulting the category rule.
    """

    if event_count <= 0:
        return DimensionScores()
    return _DIMENSION_RULES[bag.category](bag, config or get_scoring_config())


def weighted_dimension_score(
    dims: DimensionScores,
    config: ScoringConfig | None = None,
) -> float:
    """Static-weight composite of the four dimensions (0-100)."""
    weights = (config or get_scoring_config()).dimension_weights
    values = dims.as_dict()
    total_weight = sum(weights.get(name, 0.0) for name in DIMENSIONS)
    if total_weight <= 0:
        return sum(values.values()) / len(values)
    return sum(values[name] * weights.get(name, 0.0) for name in DIMENSIONS) / total_weight


def fusion_contribution(
    dims: DimensionScores,
    category: IntegrationCategory,
    config: ScoringConfig | None = None,
) -> float:
    """Share of the user-level Fusion Score attributed to this integration."""
    config = config or get_scoring_config()
    return weighted_dimension_score(dims, config) * config.category_weight(category.value)
