"""
insights/delivery.py

Insight rules for project management, engineering and support.
"""

from __future__ import annotations

from extraction.categories import IntegrationCategory
from insights.base import (
    BaseInsightRules,
    Insight,
    InsightContext,
    InsightSeverity,
    count,
    percent,
)


class ProjectInsights(BaseInsightRules):
    category = IntegrationCategory.PROJECT_MANAGEMENT

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        total = ctx.bag.get("task_count")
        open_tasks = count(ctx.bag.get("open_tasks"))
        if total > 0:
            rate = percent(ctx.bag.get("completed_tasks"), total)
            if rate > 70:
                severity, commentary = InsightSeverity.POSITIVE, "strong execution velocity"
            elif rate < 30 and open_tasks > 10:
                severity, commentary = InsightSeverity.WARNING, "potential workload imbalance"
            else:
                severity, commentary = InsightSeverity.INFO, "steady progress"
            insights.append(
                Insight(
                    insight_key="project_throughput",
                    insight_text=(
                        f"{ctx.display_name} shows {rate}% task completion rate with "
                        f"{open_tasks} items in backlog; {commentary}."
                    ),
                    severity=severity,
                    confidence=0.75,
                    metadata={"completion_rate": rate, "open_tasks": open_tasks, "total_tasks": count(total)},
                )
            )

        in_progress = count(ctx.bag.get("in_progress_tasks"))
        if in_progress > 5:
            note = "high WIP may slow delivery" if in_progress > 10 else "manageable work in progress"
            insights.append(
                Insight(
                    insight_key="project_wip",
                    insight_text=f"{in_progress} tasks currently in progress; {note}.",
                    severity=InsightSeverity.WARNING if in_progress > 10 else InsightSeverity.INFO,
                    confidence=0.7,
                    metadata={"in_progress": in_progress},
                )
            )
        return insights


class EngineeringInsights(BaseInsightRules):
    category = IntegrationCategory.ENGINEERING

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        open_prs = count(ctx.bag.get("open_pull_requests"))
        repos = count(ctx.bag.get("repo_count"))
        if open_prs > 0:
            if open_prs > 10:
                severity, commentary = InsightSeverity.WARNING, "review bottleneck may be forming"
            elif open_prs <= 3:
                severity, commentary = InsightSeverity.POSITIVE, "healthy review throughput"
            else:
                severity, commentary = InsightSeverity.INFO, "normal review queue"
            insights.append(
                Insight(
                    insight_key="engineering_pr_backlog",
                    insight_text=f"{open_prs} open pull requests across {repos} repositories; {commentary}.",
                    severity=severity,
                    confidence=0.75,
                    metadata={"open_prs": open_prs, "repo_count": repos},
                )
            )

        open_issues = count(ctx.bag.get("open_issues"))
        if open_issues > 20:
            insights.append(
                Insight(
                    insight_key="engineering_issue_backlog",
                    insight_text=(
                        f"{open_issues} open issues in your {ctx.display_name} repositories; "
                        f"consider triaging or closing stale items."
                    ),
                    severity=InsightSeverity.WARNING,
                    confidence=0.7,
                    metadata={"open_issues": open_issues},
                )
            )
        return insights


class SupportInsights(BaseInsightRules):
    category = IntegrationCategory.SUPPORT

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        total = ctx.bag.get("ticket_count")
        open_tickets = count(ctx.bag.get("open_tickets"))
        if total > 0:
            rate = percent(ctx.bag.first("resolved_tickets", "solved_tickets"), total)
            if rate > 80:
                severity, commentary = InsightSeverity.POSITIVE, "excellent support throughput"
            elif rate < 50 and open_tickets > 10:
                severity, commentary = InsightSeverity.WARNING, "backlog growing faster than resolution"
            else:
                severity, commentary = InsightSeverity.INFO, "steady support operations"
            insights.append(
                Insight(
                    insight_key="support_resolution",
                    insight_text=(
                        f"{ctx.display_name} shows {rate}% resolution rate with "
                        f"{open_tickets} open tickets; {commentary}."
                    ),
                    severity=severity,
                    confidence=0.8,
                    metadata={"resolution_rate": rate, "open_tickets": open_tickets},
                )
            )

        if ctx.abs_change > 20 and ctx.trending_up:
            insights.append(
                Insight(
                    insight_key="support_volume_spike",
                    insight_text=(
                        f"Support volume increased {round(ctx.abs_change)}% this week; "
                        f"monitor for emerging issues."
                    ),
                    severity=InsightSeverity.WARNING,
                    confidence=0.7,
                    metadata={"change_pct": ctx.change_pct},
                )
            )
        return insights
