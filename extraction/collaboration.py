"""
extraction/collaboration.py

Extractors for communication, meeting, documentation and design services.
"""

from __future__ import annotations

from extraction.base import BaseMetricExtractor
from extraction.categories import IntegrationCategory


class CommunicationExtractor(BaseMetricExtractor):
    category = IntegrationCategory.COMMUNICATION
    FIELDS = {
        "message_volume": ("message_volume", "chat_count", "message_count"),
        "channel_count": ("channel_count",),
        "active_channels": ("active_channels",),
        "member_count": ("member_count",),
    }
    SERVICE_FIELDS = {
        "microsoft_teams": {"meeting_count": ("meeting_count",)},
        "discord": {"guild_count": ("guild_count",)},
    }


class MeetingsExtractor(BaseMetricExtractor):
    category = IntegrationCategory.MEETINGS
    FIELDS = {
        "meeting_count": ("meeting_count",),
        "total_duration": ("total_duration", "total_duration_minutes"),
        "total_participants": ("total_participants",),
        "attendee_count": ("attendee_count",),
    }
    SERVICE_FIELDS = {
        "google_calendar": {"event_count": ("event_count",)},
        "google_meet": {
            "upcoming_meetings": ("upcoming_meetings",),
            "past_meetings": ("past_meetings",),
        },
    }


class DocumentationExtractor(BaseMetricExtractor):
    category = IntegrationCategory.DOCUMENTATION
    FIELDS = {
        "page_count": ("page_count",),
        "space_count": ("space_count",),
        "database_count": ("database_count",),
    }


class DesignExtractor(BaseMetricExtractor):
    category = IntegrationCategory.DESIGN
    FIELDS = {
        "project_count": ("project_count",),
        "file_count": ("file_count",),
        "board_count": ("board_count",),
        "team_count": ("team_count",),
    }
