from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from blogflow.domain.entities import ContentItem


class ContentRepoPort(Protocol):
    def get_by_id(self, item_id: UUID) -> ContentItem | None:
        ...

    def get_many(self, item_ids: list[UUID]) -> list[ContentItem]:
        """Return the items that exist, in the order requested."""
        ...

    def list_items(self, filters: dict[str, Any]) -> list[ContentItem]:
        ...

    def list_ready_for_publishing(self, now: datetime) -> list[ContentItem]:
        """Scheduled items whose publish_at is at or before now."""
        ...

    def slug_in_use(self, slug: str, exclude_id: UUID) -> bool:
        """Whether another published item already owns this slug."""
        ...

    def save(self, item: ContentItem) -> ContentItem:
        ...


class UnitOfWorkPort(Protocol):
    def transaction(self) -> AbstractContextManager[None]:
        """
        Scope in which every repo write commits together or not at all.

        Nested calls join the outer transaction.
        """
        ...
