"""
insights/base.py

Insight record, rule context and the per-category rule contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from extraction.bag import RawMetricBag
from extraction.categories import IntegrationCategory
from normalization.dimensions import DimensionScores
from trend.analyzer import TrendResult
from trend.classifier import TrendDirection


class InsightSeverity:
    INFO = "info"
    WARNING = "warning"
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class Insight:
    insight_key: str
    insight_text: str
    severity: str
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InsightContext:
    """Everything a rule may read.  Rules never look beyond this object."""

    service_name: str
    display_name: str
    dims: DimensionScores
    trend: TrendResult
    bag: RawMetricBag
    event_count: int
    score_history: tuple[float, ...] = ()

    @property
    def change_pct(self) -> float:
        return self.trend.week_over_week_change

    @property
    def abs_change(self) -> float:
        return abs(self.trend.week_over_week_change)

    @property
    def trending_up(self) -> bool:
        return self.trend.direction == TrendDirection.UP

    def changed_word(self, up: str = "increased", down: str = "decreased") -> str:
        return up if self.trending_up else down


def count(value: float) -> int:
    """Counts arrive as floats from the extractor; render them as integers."""
    return int(round(value))


def percent(numerator: float, denominator: float) -> int:
    return int(round(numerator / denominator * 100)) if denominator else 0


class BaseInsightRules(ABC):
    """
    Rule table for one integration category.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`generate`.  The same context always yields the same insights
    in the same order.
    """

    category: ClassVar[IntegrationCategory]

    @abstractmethod
    def generate(self, ctx: InsightContext) -> list[Insight]:
        """Return the insights that fire for *ctx*."""
