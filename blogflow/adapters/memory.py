"""In-memory adapters.

Single-process implementations of the content repo, activity repo, unit of
work and token store. Used for development and tests; production wiring
uses the SQLite adapters.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Protocol
from uuid import UUID

from blogflow.components.activity.models import ActivityEntry, ActivityQuery
from blogflow.domain.entities import ContentItem
from blogflow.ports.clock import ClockPort


class _Participant(Protocol):
    def _snapshot(self) -> Any: ...

    def _restore(self, snapshot: Any) -> None: ...


class InMemoryUnitOfWork:
    """
    Serialises transactions with a re-entrant lock and rolls back
    participating repos to a snapshot when the block raises.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._participants: list[_Participant] = []
        self._depth = 0

    def register(self, participant: _Participant) -> None:
        self._participants.append(participant)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self.lock:
            if self._depth > 0:
                # Nested: join the outer transaction
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshots = [(p, p._snapshot()) for p in self._participants]
            self._depth = 1
            try:
                yield
            except BaseException:
                for participant, snapshot in snapshots:
                    participant._restore(snapshot)
                raise
            finally:
                self._depth = 0


class InMemoryContentRepo:
    def __init__(self, uow: InMemoryUnitOfWork | None = None) -> None:
        self._items: dict[UUID, ContentItem] = {}
        self._lock = uow.lock if uow else threading.RLock()
        if uow:
            uow.register(self)

    def get_by_id(self, item_id: UUID) -> ContentItem | None:
        with self._lock:
            item = self._items.get(item_id)
            return item.model_copy() if item else None

    def get_many(self, item_ids: list[UUID]) -> list[ContentItem]:
        with self._lock:
            return [self._items[i].model_copy() for i in item_ids if i in self._items]

    def list_items(self, filters: dict[str, Any]) -> list[ContentItem]:
        with self._lock:
            results = list(self._items.values())
        for key, value in filters.items():
            results = [i for i in results if getattr(i, key) == value]
        return [i.model_copy() for i in results]

    def list_ready_for_publishing(self, now: datetime) -> list[ContentItem]:
        with self._lock:
            ready = [
                i
                for i in self._items.values()
                if i.status == "scheduled" and i.publish_at is not None and i.publish_at <= now
            ]
        ready.sort(key=lambda i: i.publish_at or now)
        return [i.model_copy() for i in ready]

    def slug_in_use(self, slug: str, exclude_id: UUID) -> bool:
        with self._lock:
            return any(
                i.slug == slug and i.status == "published" and i.id != exclude_id
                for i in self._items.values()
            )

    def save(self, item: ContentItem) -> ContentItem:
        with self._lock:
            self._items[item.id] = item.model_copy()
        return item

    def _snapshot(self) -> dict[UUID, ContentItem]:
        return dict(self._items)

    def _restore(self, snapshot: dict[UUID, ContentItem]) -> None:
        self._items = snapshot


class InMemoryActivityRepo:
    """Append-only in-memory activity storage."""

    def __init__(self, uow: InMemoryUnitOfWork | None = None) -> None:
        self._entries: list[ActivityEntry] = []
        self._lock = uow.lock if uow else threading.RLock()
        if uow:
            uow.register(self)

    def append(self, entry: ActivityEntry) -> ActivityEntry:
        with self._lock:
            self._entries.append(entry)
        return entry

    def query(self, query: ActivityQuery) -> list[ActivityEntry]:
        with self._lock:
            results = list(self._entries)

        if query.content_item_id:
            results = [e for e in results if e.content_item_id == query.content_item_id]
        if query.actions:
            results = [e for e in results if e.action in query.actions]
        if query.start_time:
            results = [e for e in results if e.occurred_at >= query.start_time]
        if query.end_time:
            results = [e for e in results if e.occurred_at <= query.end_time]

        # Stable sort keeps insertion order for equal timestamps
        results.sort(key=lambda e: e.occurred_at)

        if query.limit is not None:
            results = results[: query.limit]
        return results

    def clear(self) -> None:
        """Clear all entries (for testing)."""
        with self._lock:
            self._entries.clear()

    def _snapshot(self) -> list[ActivityEntry]:
        return list(self._entries)

    def _restore(self, snapshot: list[ActivityEntry]) -> None:
        self._entries = snapshot


class InMemoryTokenStore:
    """
    TTL key-value store with an explicit per-item key index.

    With auto_evict=False expired entries stay readable until deleted,
    mimicking stores that never self-expire.
    """

    def __init__(self, clock: ClockPort, auto_evict: bool = True) -> None:
        self._clock = clock
        self._auto_evict = auto_evict
        self._entries: dict[str, tuple[dict[str, Any], datetime]] = {}
        self._index: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: dict[str, Any], ttl: timedelta, item_key: str) -> None:
        with self._lock:
            self._entries[key] = (copy.deepcopy(value), self._clock.now() + ttl)
            self._index.setdefault(item_key, set()).add(key)

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, evict_at = entry
            if self._auto_evict and self._clock.now() >= evict_at:
                self._remove(key)
                return None
            return copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    def keys_for_item(self, item_key: str) -> list[str]:
        with self._lock:
            keys = self._index.get(item_key, set())
            live = sorted(k for k in keys if k in self._entries)
            if live:
                self._index[item_key] = set(live)
            else:
                self._index.pop(item_key, None)
            return live

    def scan(self, prefix: str) -> list[str]:
        with self._lock:
            return sorted(k for k in self._entries if k.startswith(prefix))

    def clear(self) -> None:
        """Clear all entries (for testing)."""
        with self._lock:
            self._entries.clear()
            self._index.clear()

    def _remove(self, key: str) -> bool:
        if self._entries.pop(key, None) is None:
            return False
        for keys in self._index.values():
            keys.discard(key)
        return True
