"""
trend/analyzer.py

Combines week-over-week change, regression slope and weighted forecast
into one TrendResult per integration snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.scoring_config import ScoringConfig, get_scoring_config
from trend.change import week_over_week_change
from trend.classifier import TrendDirection, classify_direction
from trend.forecast import WeightedMovingAverageForecast
from trend.regression import LinearTrendForecast


@dataclass(frozen=True)
class TrendResult:
    week_over_week_change: float = 0.0
    direction: str = TrendDirection.STABLE
    slope: float = 0.0
    forecast: float = 0.0
    history_points: int = 0


class TrendAnalyzer:
    """
    Stateless trend analysis.

    ``score_history`` is the composite score series, **oldest first**, and
    should already include the score of the run being analyzed.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self._config = config or get_scoring_config()
        self._regression = LinearTrendForecast()
        self._wma = WeightedMovingAverageForecast(self._config.forecast_weights)

    def analyze(
        self,
        current_count: int,
        previous_count: int,
        score_history: list[float] | None = None,
    ) -> TrendResult:
        history = list(score_history or [])
        change = week_over_week_change(current_count, previous_count)
        return TrendResult(
            week_over_week_change=round(change, 2),
            direction=classify_direction(change, self._config.trend_threshold_pct),
            slope=self._regression.forecast(history)["slope"],
            forecast=self._wma.forecast(history)["forecast"],
            history_points=len(history),
        )
