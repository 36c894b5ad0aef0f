"""
Workflow hooks - observer callbacks fired after a transition commits.

Subscribers (cache invalidation, search indexing, notifications, preview
token revocation) register per event name. Dispatch is synchronous; a
failing subscriber is logged and never changes the workflow result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from blogflow.domain.entities import ContentItem

logger = logging.getLogger(__name__)

EventName = Literal["published", "scheduled", "unpublished", "archived"]


@dataclass(frozen=True)
class WorkflowEvent:
    name: EventName
    item: ContentItem
    occurred_at: datetime
    actor_id: str | None = None


Subscriber = Callable[[WorkflowEvent], None]


class WorkflowHooks:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = {}

    def subscribe(self, name: EventName, callback: Subscriber) -> None:
        self._subscribers.setdefault(name, []).append(callback)

    def subscribers(self, name: EventName) -> list[Subscriber]:
        return list(self._subscribers.get(name, []))

    def dispatch(self, event: WorkflowEvent) -> None:
        for callback in self.subscribers(event.name):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Workflow hook %r failed for %s on item %s",
                    callback,
                    event.name,
                    event.item.id,
                )
