"""
insights/collaboration.py

Insight rules for communication, meetings, documentation and design.
"""

from __future__ import annotations

from extraction.categories import IntegrationCategory
from insights.base import (
    BaseInsightRules,
    Insight,
    InsightContext,
    InsightSeverity,
    count,
)


class CommunicationInsights(BaseInsightRules):
    category = IntegrationCategory.COMMUNICATION

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        if ctx.abs_change > 15:
            outlook = "team engagement is rising" if ctx.trending_up else "consider checking in with your team"
            insights.append(
                Insight(
                    insight_key="communication_volume_change",
                    insight_text=(
                        f"{ctx.display_name} message activity {ctx.changed_word()} "
                        f"{round(ctx.abs_change)}% this week; {outlook}."
                    ),
                    severity=InsightSeverity.POSITIVE if ctx.trending_up else InsightSeverity.WARNING,
                    confidence=0.75,
                    metadata={"change_pct": ctx.change_pct, "activity_volume": ctx.dims.activity_volume},
                )
            )

        channels = count(ctx.bag.first("active_channels", "channel_count"))
        if channels > 0 and ctx.dims.activity_volume > 30:
            advice = (
                "consider consolidating to reduce context switching"
                if channels > 10
                else "healthy channel distribution"
            )
            insights.append(
                Insight(
                    insight_key="communication_channel_activity",
                    insight_text=f"Communication is spread across {channels} active channels; {advice}.",
                    severity=InsightSeverity.WARNING if channels > 15 else InsightSeverity.INFO,
                    confidence=0.7,
                    metadata={"channel_count": channels},
                )
            )
        return insights


class MeetingInsights(BaseInsightRules):
    category = IntegrationCategory.MEETINGS

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        meetings = count(ctx.bag.first("meeting_count", "event_count") or ctx.event_count)
        if meetings > 0:
            hours = round(ctx.bag.get("total_duration") / 60, 1)
            if hours > 20:
                severity = InsightSeverity.WARNING
                commentary = "high meeting load may impact deep work time"
            elif hours < 5 and meetings > 3:
                severity = InsightSeverity.POSITIVE
                commentary = "efficient meeting culture with short sessions"
            else:
                severity = InsightSeverity.INFO
                commentary = "balanced meeting schedule"
            insights.append(
                Insight(
                    insight_key="meeting_load",
                    insight_text=f"You spent {hours} hours in {meetings} meetings this week; {commentary}.",
                    severity=severity,
                    confidence=0.8,
                    metadata={"meeting_count": meetings, "hours": hours},
                )
            )

        if ctx.abs_change > 20:
            heavy = ctx.trending_up and ctx.change_pct > 30
            insights.append(
                Insight(
                    insight_key="meeting_trend",
                    insight_text=(
                        f"Meeting activity {ctx.changed_word()} {round(ctx.abs_change)}% "
                        f"compared to last week."
                    ),
                    severity=InsightSeverity.WARNING if heavy else InsightSeverity.INFO,
                    confidence=0.7,
                    metadata={"change_pct": ctx.change_pct},
                )
            )
        return insights


class DocumentationInsights(BaseInsightRules):
    category = IntegrationCategory.DOCUMENTATION

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        pages = count(ctx.bag.get("page_count"))
        spaces = count(ctx.bag.first("space_count", "database_count"))
        if pages > 0:
            note = "comprehensive documentation base" if pages > 100 else "documentation is growing"
            insights.append(
                Insight(
                    insight_key="documentation_coverage",
                    insight_text=f"{ctx.display_name} contains {pages} pages across {spaces} spaces; {note}.",
                    severity=InsightSeverity.INFO,
                    confidence=0.7,
                    metadata={"page_count": pages, "space_count": spaces},
                )
            )
        if ctx.abs_change > 15:
            insights.append(
                Insight(
                    insight_key="documentation_activity",
                    insight_text=f"Documentation activity {ctx.changed_word()} {round(ctx.abs_change)}% this week.",
                    severity=InsightSeverity.POSITIVE if ctx.trending_up else InsightSeverity.INFO,
                    confidence=0.65,
                    metadata={"change_pct": ctx.change_pct},
                )
            )
        return insights


class DesignInsights(BaseInsightRules):
    category = IntegrationCategory.DESIGN

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        files = count(ctx.bag.first("file_count", "board_count"))
        projects = count(ctx.bag.first("project_count", "team_count"))
        if files > 0:
            note = "active design work in progress" if files > 20 else "focused design effort"
            insights.append(
                Insight(
                    insight_key="design_activity",
                    insight_text=(
                        f"{ctx.display_name} shows {files} active design files across "
                        f"{projects} projects; {note}."
                    ),
                    severity=InsightSeverity.INFO,
                    confidence=0.7,
                    metadata={"file_count": files, "project_count": projects},
                )
            )
        if ctx.abs_change > 25:
            if ctx.trending_up:
                text = f"Design activity spiked {round(ctx.abs_change)}% this week; likely aligned with sprint planning."
            else:
                text = f"Design activity slowed {round(ctx.abs_change)}% this week; design phase may be wrapping up."
            insights.append(
                Insight(
                    insight_key="design_trend",
                    insight_text=text,
                    severity=InsightSeverity.INFO,
                    confidence=0.6,
                    metadata={"change_pct": ctx.change_pct},
                )
            )
        return insights
