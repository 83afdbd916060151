"""
insights/scores.py

Category-independent insights: generic activity change and the rules
driven by the composite fusion score history.
"""

from __future__ import annotations

from extraction.categories import IntegrationCategory
from insights.base import BaseInsightRules, Insight, InsightContext, InsightSeverity

SLOPE_THRESHOLD: float = 0.1
FORECAST_MIN_POINTS: int = 7


class GeneralInsights(BaseInsightRules):
    category = IntegrationCategory.GENERAL

    def generate(self, ctx: InsightContext) -> list[Insight]:
        if ctx.abs_change <= 10:
            return []
        return [
            Insight(
                insight_key=f"{ctx.service_name}_activity_change",
                insight_text=(
                    f"{ctx.display_name} activity {ctx.changed_word()} "
                    f"{round(ctx.abs_change)}% this week."
                ),
                severity=InsightSeverity.POSITIVE if ctx.trending_up else InsightSeverity.INFO,
                confidence=0.6,
                metadata={"change_pct": ctx.change_pct},
            )
        ]


def score_trend_insights(ctx: InsightContext) -> list[Insight]:
    """
    ``fusion_score_trend`` when the regression slope over the score history
    exceeds 0.1 points per run in either direction, ``fusion_score_forecast``
    once at least seven points exist.
    """

    insights: list[Insight] = []
    history = ctx.score_history
    slope = ctx.trend.slope

    if len(history) >= 2 and abs(slope) > SLOPE_THRESHOLD:
        direction = "upward" if slope > 0 else "downward"
        insights.append(
            Insight(
                insight_key="fusion_score_trend",
                insight_text=(
                    f"{ctx.display_name} fusion score is on a {direction} trend of "
                    f"{abs(slope):.1f} points per run."
                ),
                severity=InsightSeverity.POSITIVE if slope > 0 else InsightSeverity.NEGATIVE,
                confidence=0.85,
                metadata={"slope": slope, "history_points": len(history)},
            )
        )

    if len(history) >= FORECAST_MIN_POINTS:
        recent = history[-FORECAST_MIN_POINTS:]
        current_avg = sum(recent) / len(recent)
        insights.append(
            Insight(
                insight_key="fusion_score_forecast",
                insight_text=(
                    f"Predicted next fusion score for {ctx.display_name}: "
                    f"{ctx.trend.forecast:.1f} (recent average: {current_avg:.1f})."
                ),
                severity=InsightSeverity.INFO,
                confidence=0.8,
                metadata={"predicted_score": ctx.trend.forecast, "current_avg": round(current_avg, 4)},
            )
        )
    return insights
