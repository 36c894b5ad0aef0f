"""
Activity component - append-only trail of workflow and preview events.

Invariants:
- Entries are immutable once written
- Entries for one item are returned in occurred_at order
- Only successful business events are logged, plus publish_failed
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from blogflow.domain.entities import ActivityAction, Actor

from .models import PUBLISHING_ACTIONS, ActivityEntry, ActivityQuery, HistoryEntry
from .ports import ActivityRepoPort, TimePort


def map_action_to_status(action: str) -> str:
    """Collapse a raw action into the history display vocabulary."""
    if action in ("published", "bulk_published"):
        return "published"
    if action == "unpublished":
        return "draft"
    if action in ("scheduled", "bulk_scheduled", "rescheduled"):
        return "scheduled"
    return action


class ActivityLog:
    """Writes and reads activity entries for content items."""

    def __init__(self, repo: ActivityRepoPort, clock: TimePort) -> None:
        self._repo = repo
        self._clock = clock

    def log(
        self,
        content_item_id: UUID,
        action: ActivityAction,
        description: str,
        actor: Actor | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ActivityEntry:
        entry = ActivityEntry(
            id=uuid4(),
            content_item_id=content_item_id,
            action=action,
            description=description,
            occurred_at=self._clock.now(),
            actor_id=actor.actor_id if actor else None,
            source_address=actor.source_address if actor else None,
            user_agent=actor.user_agent if actor else None,
            metadata=dict(metadata or {}),
        )
        return self._repo.append(entry)

    def entries_for(
        self,
        content_item_id: UUID,
        actions: tuple[ActivityAction, ...] | None = None,
    ) -> list[ActivityEntry]:
        return self._repo.query(ActivityQuery(content_item_id=content_item_id, actions=actions))

    def publishing_history(self, content_item_id: UUID) -> list[HistoryEntry]:
        return [
            HistoryEntry(
                status=map_action_to_status(entry.action),
                timestamp=entry.occurred_at,
                description=entry.description,
                actor_id=entry.actor_id,
            )
            for entry in self.entries_for(content_item_id, PUBLISHING_ACTIONS)
        ]

    def query(self, query: ActivityQuery) -> list[ActivityEntry]:
        return self._repo.query(query)
