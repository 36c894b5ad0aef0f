"""
SQLite repositories for content items, activity entries and preview tokens.

All repos share one SQLiteDatabase so writes made inside
SQLiteDatabase.transaction() commit or roll back together.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from blogflow.components.activity.models import ActivityEntry, ActivityQuery
from blogflow.domain.entities import ContentItem
from blogflow.ports.clock import ClockPort

from .db import SQLiteDatabase, format_dt, parse_dt


class SQLiteContentRepo:
    def __init__(self, db: SQLiteDatabase):
        self.db = db

    def get_by_id(self, item_id: UUID) -> ContentItem | None:
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM content_items WHERE id = ?", (str(item_id),)
            ).fetchone()
        return self._map_row(row) if row else None

    def get_many(self, item_ids: list[UUID]) -> list[ContentItem]:
        if not item_ids:
            return []
        placeholders = ", ".join("?" for _ in item_ids)
        with self.db.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM content_items WHERE id IN ({placeholders})",
                [str(i) for i in item_ids],
            ).fetchall()
        found = {row["id"]: self._map_row(row) for row in rows}
        return [found[str(i)] for i in item_ids if str(i) in found]

    def list_items(self, filters: dict[str, Any]) -> list[ContentItem]:
        query = "SELECT * FROM content_items WHERE 1=1"
        params: list[Any] = []

        if "status" in filters:
            query += " AND status = ?"
            params.append(filters["status"])
        if "slug" in filters:
            query += " AND slug = ?"
            params.append(filters["slug"])

        query += " ORDER BY created_at DESC"

        with self.db.connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._map_row(r) for r in rows]

    def list_ready_for_publishing(self, now: datetime) -> list[ContentItem]:
        with self.db.connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM content_items
                WHERE status = 'scheduled' AND publish_at IS NOT NULL AND publish_at <= ?
                ORDER BY publish_at ASC
                """,
                (format_dt(now),),
            ).fetchall()
        return [self._map_row(r) for r in rows]

    def slug_in_use(self, slug: str, exclude_id: UUID) -> bool:
        with self.db.connection() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM content_items
                WHERE slug = ? AND status = 'published' AND id != ?
                LIMIT 1
                """,
                (slug, str(exclude_id)),
            ).fetchone()
        return row is not None

    def save(self, item: ContentItem) -> ContentItem:
        with self.db.connection() as conn:
            conn.execute(
                """
                INSERT INTO content_items (
                    id, title, slug, content, status,
                    publish_at, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title=excluded.title,
                    slug=excluded.slug,
                    content=excluded.content,
                    status=excluded.status,
                    publish_at=excluded.publish_at,
                    updated_at=excluded.updated_at
                """,
                (
                    str(item.id),
                    item.title,
                    item.slug,
                    item.content,
                    item.status,
                    format_dt(item.publish_at),
                    format_dt(item.created_at),
                    format_dt(item.updated_at),
                ),
            )
        return item

    def _map_row(self, row: dict[str, Any]) -> ContentItem:
        return ContentItem(
            id=UUID(row["id"]),
            title=row["title"],
            slug=row["slug"],
            content=row["content"],
            status=row["status"],
            publish_at=parse_dt(row["publish_at"]),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )


class SQLiteActivityRepo:
    """Append-only; there is no update or delete."""

    def __init__(self, db: SQLiteDatabase):
        self.db = db

    def append(self, entry: ActivityEntry) -> ActivityEntry:
        with self.db.connection() as conn:
            conn.execute(
                """
                INSERT INTO activity_entries (
                    id, content_item_id, action, description, actor_id,
                    source_address, user_agent, metadata_json, occurred_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(entry.id),
                    str(entry.content_item_id),
                    entry.action,
                    entry.description,
                    entry.actor_id,
                    entry.source_address,
                    entry.user_agent,
                    json.dumps(entry.metadata, default=str),
                    format_dt(entry.occurred_at),
                ),
            )
        return entry

    def query(self, query: ActivityQuery) -> list[ActivityEntry]:
        sql = "SELECT * FROM activity_entries WHERE 1=1"
        params: list[Any] = []

        if query.content_item_id:
            sql += " AND content_item_id = ?"
            params.append(str(query.content_item_id))
        if query.actions:
            sql += f" AND action IN ({', '.join('?' for _ in query.actions)})"
            params.extend(query.actions)
        if query.start_time:
            sql += " AND occurred_at >= ?"
            params.append(format_dt(query.start_time))
        if query.end_time:
            sql += " AND occurred_at <= ?"
            params.append(format_dt(query.end_time))

        # seq breaks ties between entries written in the same instant
        sql += " ORDER BY occurred_at ASC, seq ASC"
        if query.limit is not None:
            sql += " LIMIT ?"
            params.append(query.limit)

        with self.db.connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._map_row(r) for r in rows]

    def _map_row(self, row: dict[str, Any]) -> ActivityEntry:
        return ActivityEntry(
            id=UUID(row["id"]),
            content_item_id=UUID(row["content_item_id"]),
            action=row["action"],
            description=row["description"],
            occurred_at=parse_dt(row["occurred_at"]),
            actor_id=row["actor_id"],
            source_address=row["source_address"],
            user_agent=row["user_agent"],
            metadata=json.loads(row["metadata_json"] or "{}"),
        )


class SQLiteTokenStore:
    """
    Token store backed by the preview_tokens table.

    SQLite never evicts on its own; reads treat entries past evict_at as
    missing and delete them.
    """

    def __init__(self, db: SQLiteDatabase, clock: ClockPort):
        self.db = db
        self._clock = clock

    def put(self, key: str, value: dict[str, Any], ttl: timedelta, item_key: str) -> None:
        evict_at = self._clock.now() + ttl
        with self.db.connection() as conn:
            conn.execute(
                """
                INSERT INTO preview_tokens (key, item_key, value_json, evict_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    item_key=excluded.item_key,
                    value_json=excluded.value_json,
                    evict_at=excluded.evict_at
                """,
                (key, item_key, json.dumps(value), format_dt(evict_at)),
            )

    def get(self, key: str) -> dict[str, Any] | None:
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT value_json, evict_at FROM preview_tokens WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                return None
            if row["evict_at"] <= format_dt(self._clock.now()):
                conn.execute("DELETE FROM preview_tokens WHERE key = ?", (key,))
                return None
        return json.loads(row["value_json"])

    def delete(self, key: str) -> bool:
        with self.db.connection() as conn:
            cursor = conn.execute("DELETE FROM preview_tokens WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def keys_for_item(self, item_key: str) -> list[str]:
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT key FROM preview_tokens WHERE item_key = ? ORDER BY key",
                (item_key,),
            ).fetchall()
        return [r["key"] for r in rows]

    def scan(self, prefix: str) -> list[str]:
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT key FROM preview_tokens WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [r["key"] for r in rows]
