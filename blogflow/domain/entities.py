from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
ContentStatus = Literal["draft", "scheduled", "published", "archived"]
ActivityAction = Literal[
    "draft_saved",
    "published",
    "unpublished",
    "scheduled",
    "rescheduled",
    "bulk_published",
    "bulk_scheduled",
    "preview_accessed",
    "publish_failed",
    "archived",
]


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


# --- Content ---

class ContentItem(BaseModel):
    """
    A publishable post.

    `updated_at` doubles as the revision marker: every edit moves it forward,
    which is what binds preview tokens to a specific version.
    """

    id: UUID = Field(default_factory=uuid4)
    title: str = ""
    slug: str = ""
    content: str = ""
    status: ContentStatus = "draft"

    # draft: None, scheduled: future target, published: actual publish time
    publish_at: datetime | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def revision(self) -> datetime:
        return self.updated_at

    def is_published(self) -> bool:
        return self.status == "published"

    def is_scheduled(self) -> bool:
        return self.status == "scheduled"


# --- Actor ---

class Actor(BaseModel):
    """Opaque identity of whoever triggered an operation. Never authenticated here."""

    actor_id: str | None = None
    source_address: str | None = None
    user_agent: str | None = None


SYSTEM_USER_AGENT = "System/ScheduledJob"
SYSTEM_ACTOR = Actor(actor_id=None, source_address=None, user_agent=SYSTEM_USER_AGENT)
