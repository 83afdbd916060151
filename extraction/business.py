"""
extraction/business.py

Extractors for data platforms, accounting systems and CRMs.
"""

from __future__ import annotations

from extraction.base import BaseMetricExtractor
from extraction.categories import IntegrationCategory


class DataExtractor(BaseMetricExtractor):
    category = IntegrationCategory.DATA
    FIELDS = {
        "base_count": ("base_count", "workspace_count", "sheet_count"),
        "table_count": ("table_count", "sheet_count"),
        "record_count": ("record_count", "row_count"),
    }


class FinancialExtractor(BaseMetricExtractor):
    category = IntegrationCategory.FINANCIAL
    FIELDS = {
        "invoice_count": ("invoice_count",),
        "paid_invoices": ("paid_invoices",),
        "overdue_invoices": ("overdue_invoices",),
        "payment_count": ("payment_count",),
        "payment_total": ("payment_total",),
        "account_count": ("account_count",),
    }
    SERVICE_FIELDS = {
        "quickbooks": {
            "invoice_total": ("invoice_total",),
            "open_invoices": ("open_invoices",),
            "expense_count": ("expense_count",),
            "expense_total": ("expense_total",),
            "bank_accounts": ("bank_accounts",),
            "credit_card_accounts": ("credit_card_accounts",),
        },
        "xero": {
            "invoice_total": ("invoice_total",),
            "draft_invoices": ("draft_invoices",),
            "authorised_invoices": ("authorised_invoices",),
            "bank_accounts": ("bank_accounts",),
            "revenue_accounts": ("revenue_accounts",),
            "expense_accounts": ("expense_accounts",),
        },
    }


class CRMExtractor(BaseMetricExtractor):
    category = IntegrationCategory.CRM
    FIELDS = {
        "account_count": ("account_count",),
        "opportunity_count": ("opportunity_count",),
        "case_count": ("case_count",),
        "open_opportunities": ("open_opportunities",),
        "won_opportunities": ("won_opportunities",),
        "open_cases": ("open_cases",),
        "closed_cases": ("closed_cases",),
    }
    SERVICE_FIELDS = {
        "salesforce": {
            "customer_accounts": ("customer_accounts",),
            "prospect_accounts": ("prospect_accounts",),
            "lost_opportunities": ("lost_opportunities",),
            "opportunity_value": ("opportunity_value",),
            "new_cases": ("new_cases",),
            "escalated_cases": ("escalated_cases",),
        },
    }
