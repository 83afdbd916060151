"""
insights/business.py

Insight rules for data platforms, accounting systems and CRMs.
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


def _activity_trend(ctx: InsightContext, key: str, label: str, threshold: float, confidence: float) -> list[Insight]:
    if ctx.abs_change <= threshold:
        return []
    return [
        Insight(
            insight_key=key,
            insight_text=f"{label} activity {ctx.changed_word()} {round(ctx.abs_change)}% this week.",
            severity=InsightSeverity.POSITIVE if ctx.trending_up else InsightSeverity.INFO,
            confidence=confidence,
            metadata={"change_pct": ctx.change_pct},
        )
    ]


class DataInsights(BaseInsightRules):
    category = IntegrationCategory.DATA

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        records = count(ctx.bag.get("record_count"))
        bases = count(ctx.bag.get("base_count"))
        if records > 0 or bases > 0:
            noun = "base" if bases == 1 else "bases"
            note = "significant operational data" if records > 1000 else "growing data foundation"
            insights.append(
                Insight(
                    insight_key="data_volume",
                    insight_text=f"{ctx.display_name} manages {records:,} records across {bases} {noun}; {note}.",
                    severity=InsightSeverity.INFO,
                    confidence=0.7,
                    metadata={
                        "record_count": records,
                        "base_count": bases,
                        "table_count": count(ctx.bag.get("table_count")),
                    },
                )
            )
        insights.extend(_activity_trend(ctx, "data_growth", "Data", 20, 0.65))
        return insights


class FinancialInsights(BaseInsightRules):
    category = IntegrationCategory.FINANCIAL

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        invoices = count(ctx.bag.get("invoice_count"))
        overdue = count(ctx.bag.get("overdue_invoices"))
        if invoices > 0:
            paid_rate = percent(ctx.bag.get("paid_invoices"), invoices)
            status = f"{overdue} overdue requiring attention" if overdue > 0 else "healthy payment status"
            insights.append(
                Insight(
                    insight_key="invoice_health",
                    insight_text=f"{ctx.display_name} shows {invoices} invoices with {paid_rate}% paid; {status}.",
                    severity=InsightSeverity.WARNING if overdue > invoices * 0.2 else InsightSeverity.INFO,
                    confidence=0.8,
                    metadata={"invoice_count": invoices, "paid_rate": paid_rate, "overdue": overdue},
                )
            )

        payments = count(ctx.bag.get("payment_count"))
        if payments > 0:
            total = ctx.bag.get("payment_total")
            insights.append(
                Insight(
                    insight_key="payment_activity",
                    insight_text=f"{payments} payments processed totaling ${total:,.2f} in the last 90 days.",
                    severity=InsightSeverity.INFO,
                    confidence=0.85,
                    metadata={"payment_count": payments, "payment_total": total},
                )
            )
        insights.extend(_activity_trend(ctx, "financial_trend", "Financial", 15, 0.7))
        return insights


class CRMInsights(BaseInsightRules):
    category = IntegrationCategory.CRM

    def generate(self, ctx: InsightContext) -> list[Insight]:
        insights: list[Insight] = []
        accounts = count(ctx.bag.get("account_count"))
        opportunities = count(ctx.bag.get("opportunity_count"))
        if accounts > 0:
            insights.append(
                Insight(
                    insight_key="account_volume",
                    insight_text=(
                        f"{ctx.display_name} manages {accounts} accounts with "
                        f"{opportunities} opportunities in pipeline."
                    ),
                    severity=InsightSeverity.INFO,
                    confidence=0.85,
                    metadata={"account_count": accounts, "opportunity_count": opportunities},
                )
            )

        if opportunities > 0:
            open_opps = count(ctx.bag.get("open_opportunities"))
            win_rate = percent(ctx.bag.get("won_opportunities"), opportunities)
            note = "strong pipeline activity" if open_opps > 50 else "steady deal flow"
            insights.append(
                Insight(
                    insight_key="opportunity_health",
                    insight_text=f"{open_opps} open opportunities with {win_rate}% win rate; {note}.",
                    severity=InsightSeverity.WARNING if win_rate < 20 else InsightSeverity.INFO,
                    confidence=0.75,
                    metadata={"open_opportunities": open_opps, "win_rate": win_rate},
                )
            )

        cases = count(ctx.bag.get("case_count"))
        if cases > 0:
            open_cases = count(ctx.bag.get("open_cases"))
            resolution = percent(ctx.bag.get("closed_cases"), cases)
            note = "elevated service demand" if open_cases > 100 else "manageable case load"
            insights.append(
                Insight(
                    insight_key="case_backlog",
                    insight_text=f"{open_cases} open cases with {resolution}% resolution rate; {note}.",
                    severity=InsightSeverity.WARNING if open_cases > cases * 0.5 else InsightSeverity.INFO,
                    confidence=0.8,
                    metadata={"open_cases": open_cases, "resolution_rate": resolution},
                )
            )
        insights.extend(_activity_trend(ctx, "crm_trend", "CRM", 15, 0.7))
        return insights
