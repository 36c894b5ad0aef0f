from datetime import datetime
from typing import Any

from blogflow.domain.entities import ContentItem, ContentStatus
from blogflow.domain.errors import InvalidScheduleError, InvalidStateError


def can_transition(
    current: ContentStatus,
    new: ContentStatus,
    publish_at: datetime | None = None,
    now: datetime | None = None,
) -> bool:
    """
    Determine if a state transition is allowed.

    Archived is terminal; nothing leaves it.
    """
    if current == "archived":
        return new == "archived"

    if new == "archived":
        return True

    if current == new:
        # scheduled -> scheduled is a reschedule and needs a future date
        if current == "scheduled":
            return publish_at is not None and now is not None and publish_at > now
        return True

    if current == "draft":
        if new == "published":
            return True
        if new == "scheduled":
            if not publish_at or not now:
                return False
            return publish_at > now

    if current == "scheduled":
        if new == "published":
            # Time reached OR manual early publish
            return True
        if new == "draft":
            return True  # Un-schedule

    if current == "published":
        if new == "draft":
            return True  # Un-publish

    return False


def transition(
    item: ContentItem,
    new_status: ContentStatus,
    now: datetime,
    publish_at: datetime | None = None,
) -> ContentItem:
    """
    Return a NEW ContentItem with the updated status and timestamps.

    Raises InvalidScheduleError for a scheduled target that is not in the
    future, InvalidStateError for any other disallowed edge.
    """
    if new_status == "scheduled":
        if publish_at is None or publish_at <= now:
            raise InvalidScheduleError("Cannot schedule post for a past date")

    if not can_transition(item.status, new_status, publish_at, now):
        raise InvalidStateError(f"Invalid transition from {item.status} to {new_status}")

    updates: dict[str, Any] = {"status": new_status, "updated_at": now}

    if new_status == "published":
        updates["publish_at"] = now
    elif new_status == "scheduled":
        updates["publish_at"] = publish_at
    elif new_status == "draft":
        updates["publish_at"] = None
    # archived keeps whatever publish_at it had

    return item.model_copy(update=updates)
