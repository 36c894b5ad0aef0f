"""
Activity component models.

Entries are append-only records of workflow and preview events per item.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from blogflow.domain.entities import SYSTEM_USER_AGENT, ActivityAction

PUBLISHING_ACTIONS: tuple[ActivityAction, ...] = (
    "published",
    "unpublished",
    "scheduled",
    "rescheduled",
    "bulk_published",
    "bulk_scheduled",
)

_ICONS: dict[str, str] = {
    "published": "check-circle",
    "bulk_published": "check-circle",
    "unpublished": "x-circle",
    "scheduled": "clock",
    "bulk_scheduled": "clock",
    "rescheduled": "calendar",
    "draft_saved": "edit",
    "preview_accessed": "eye",
    "publish_failed": "alert-circle",
    "archived": "archive",
}

_COLORS: dict[str, str] = {
    "published": "green",
    "bulk_published": "green",
    "unpublished": "red",
    "scheduled": "blue",
    "bulk_scheduled": "blue",
    "rescheduled": "blue",
    "draft_saved": "gray",
    "preview_accessed": "purple",
    "publish_failed": "red",
}


@dataclass(frozen=True)
class ActivityEntry:
    """Immutable activity log entry."""

    id: UUID
    content_item_id: UUID
    action: ActivityAction
    description: str
    occurred_at: datetime
    actor_id: str | None = None
    source_address: str | None = None
    user_agent: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_system(self) -> bool:
        return self.user_agent == SYSTEM_USER_AGENT

    @property
    def formatted_description(self) -> str:
        if self.actor_id:
            return f"{self.description} by {self.actor_id}"
        if self.is_system:
            return f"{self.description} (automatic)"
        return self.description

    @property
    def display_icon(self) -> str:
        return _ICONS.get(self.action, "activity")

    @property
    def display_color(self) -> str:
        return _COLORS.get(self.action, "gray")


@dataclass(frozen=True)
class ActivityQuery:
    """Filters for reading the activity log."""

    content_item_id: UUID | None = None
    actions: tuple[ActivityAction, ...] | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    limit: int | None = None


@dataclass(frozen=True)
class HistoryEntry:
    """One row of the publishing history display."""

    status: str
    timestamp: datetime
    description: str
    actor_id: str | None
