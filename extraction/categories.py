"""
extraction/categories.py

Integration categories and the service-name registry that routes each
connected service to one of them.
"""

from __future__ import annotations

from enum import Enum


class IntegrationCategory(str, Enum):
    COMMUNICATION = "communication"
    MEETINGS = "meetings"
    PROJECT_MANAGEMENT = "project_management"
    ENGINEERING = "engineering"
    DOCUMENTATION = "documentation"
    SUPPORT = "support"
    DESIGN = "design"
    DATA = "data"
    FINANCIAL = "financial"
    CRM = "crm"
    GENERAL = "general"


class UnknownCategoryError(ValueError):
    """Raised when a category string does not name an IntegrationCategory."""


# ---------------------------------------------------------------------------
# Service registry
# ---------------------------------------------------------------------------

_SERVICE_CATEGORIES: dict[str, IntegrationCategory] = {
    "slack": IntegrationCategory.COMMUNICATION,
    "microsoft_teams": IntegrationCategory.COMMUNICATION,
    "discord": IntegrationCategory.COMMUNICATION,
    "zoom": IntegrationCategory.MEETINGS,
    "google_calendar": IntegrationCategory.MEETINGS,
    "google_meet": IntegrationCategory.MEETINGS,
    "jira": IntegrationCategory.PROJECT_MANAGEMENT,
    "asana": IntegrationCategory.PROJECT_MANAGEMENT,
    "trello": IntegrationCategory.PROJECT_MANAGEMENT,
    "linear": IntegrationCategory.PROJECT_MANAGEMENT,
    "monday": IntegrationCategory.PROJECT_MANAGEMENT,
    "clickup": IntegrationCategory.PROJECT_MANAGEMENT,
    "basecamp": IntegrationCategory.PROJECT_MANAGEMENT,
    "microsoft_planner": IntegrationCategory.PROJECT_MANAGEMENT,
    "github": IntegrationCategory.ENGINEERING,
    "gitlab": IntegrationCategory.ENGINEERING,
    "bitbucket": IntegrationCategory.ENGINEERING,
    "notion": IntegrationCategory.DOCUMENTATION,
    "confluence": IntegrationCategory.DOCUMENTATION,
    "zendesk": IntegrationCategory.SUPPORT,
    "intercom": IntegrationCategory.SUPPORT,
    "freshdesk": IntegrationCategory.SUPPORT,
    "servicenow": IntegrationCategory.SUPPORT,
    "figma": IntegrationCategory.DESIGN,
    "miro": IntegrationCategory.DESIGN,
    "airtable": IntegrationCategory.DATA,
    "smartsheet": IntegrationCategory.DATA,
    "quickbooks": IntegrationCategory.FINANCIAL,
    "xero": IntegrationCategory.FINANCIAL,
    "salesforce": IntegrationCategory.CRM,
}


def resolve_category(service_name: str) -> IntegrationCategory:
    """
    Map a service name (e.g. ``"slack"``) to its category.

    Unregistered services fall back to :attr:`IntegrationCategory.GENERAL`.
    """

    return _SERVICE_CATEGORIES.get(service_name.strip().lower(), IntegrationCategory.GENERAL)


def parse_category(value: str) -> IntegrationCategory:
    """
    Parse a stored category string, raising :class:`UnknownCategoryError`
    for anything that is not a member of :class:`IntegrationCategory`.
    """

    try:
        return IntegrationCategory(value.strip().lower())
    except ValueError as exc:
        raise UnknownCategoryError(f"Unknown integration category: {value!r}") from exc


def registered_services() -> dict[str, IntegrationCategory]:
    return dict(_SERVICE_CATEGORIES)


def default_display_name(service_name: str) -> str:
    return service_name.replace("_", " ").title()
