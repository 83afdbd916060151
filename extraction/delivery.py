"""
extraction/delivery.py

Extractors for project management, engineering and support services.
"""

from __future__ import annotations

from extraction.base import BaseMetricExtractor
from extraction.categories import IntegrationCategory


class ProjectManagementExtractor(BaseMetricExtractor):
    """
    Unifies the task vocabulary of Jira, Asana, Trello, Linear, Monday,
    ClickUp, Basecamp and Planner into one canonical set.
    """

    category = IntegrationCategory.PROJECT_MANAGEMENT
    FIELDS = {
        "task_count": ("task_count", "issue_count", "item_count", "card_count", "todo_count"),
        "completed_tasks": ("completed_tasks", "done_issues", "closed_cards", "completed_todos"),
        "open_tasks": ("open_tasks", "open_issues", "open_cards", "incomplete_tasks"),
        "in_progress_tasks": ("in_progress_tasks", "in_progress_issues"),
        "project_count": ("project_count", "board_count", "space_count", "plan_count", "todolist_count"),
    }
    SERVICE_FIELDS = {
        "linear": {
            "backlog_issues": ("backlog_issues",),
            "todo_issues": ("todo_issues",),
        },
    }


class EngineeringExtractor(BaseMetricExtractor):
    category = IntegrationCategory.ENGINEERING
    FIELDS = {
        "repo_count": ("repo_count", "project_count"),
        "open_issues": ("open_issues",),
        "open_pull_requests": ("open_pull_requests", "open_merge_requests"),
    }


class SupportExtractor(BaseMetricExtractor):
    category = IntegrationCategory.SUPPORT
    FIELDS = {
        "ticket_count": ("ticket_count", "conversation_count", "incident_count"),
        "open_tickets": ("open_tickets", "open_conversations", "new_incidents"),
        "pending_tickets": ("pending_tickets", "snoozed_conversations", "in_progress_incidents"),
        "resolved_tickets": ("resolved_tickets", "closed_conversations", "resolved_incidents"),
        "solved_tickets": ("solved_tickets", "closed_tickets", "closed_incidents"),
    }
