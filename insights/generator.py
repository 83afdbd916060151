"""
insights/generator.py

Entry point of the insight generator: picks the rule table for the
integration category and appends the score-trend insights.
"""

from __future__ import annotations

from collections.abc import Sequence

from extraction.bag import RawMetricBag
from extraction.categories import IntegrationCategory
from insights.base import BaseInsightRules, Insight, InsightContext
from insights.business import CRMInsights, DataInsights, FinancialInsights
from insights.collaboration import (
    CommunicationInsights,
    DesignInsights,
    DocumentationInsights,
    MeetingInsights,
)
from insights.delivery import EngineeringInsights, ProjectInsights, SupportInsights
from insights.scores import GeneralInsights, score_trend_insights
from normalization.dimensions import DimensionScores
from trend.analyzer import TrendResult

_RULES: dict[IntegrationCategory, BaseInsightRules] = {
    rules.category: rules
    for rules in (
        CommunicationInsights(),
        MeetingInsights(),
        ProjectInsights(),
        EngineeringInsights(),
        DocumentationInsights(),
        SupportInsights(),
        DesignInsights(),
        DataInsights(),
        FinancialInsights(),
        CRMInsights(),
        GeneralInsights(),
    )
}

_missing = set(IntegrationCategory) - set(_RULES)
if _missing:
    raise RuntimeError(f"No insight rules registered for: {sorted(c.value for c in _missing)}")


def get_rules(category: IntegrationCategory) -> BaseInsightRules:
    return _RULES[category]


def generate_insights(
    category: IntegrationCategory,
    service_name: str,
    display_name: str,
    dims: DimensionScores,
    trend: TrendResult,
    bag: RawMetricBag,
    event_count: int,
    score_history: Sequence[float] = (),
) -> list[Insight]:
    """
    Deterministic insight list for one unit.  A window without events
    produces no insights at all.
    """

    if event_count <= 0:
        return []
    ctx = InsightContext(
        service_name=service_name,
        display_name=display_name,
        dims=dims,
        trend=trend,
        bag=bag,
        event_count=event_count,
        score_history=tuple(score_history),
    )
    insights = _RULES[category].generate(ctx)
    insights.extend(score_trend_insights(ctx))
    return insights
