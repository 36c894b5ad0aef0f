"""
SQLite connection management and unit of work.

A transaction opens one connection per thread, takes the write lock up
front with BEGIN IMMEDIATE, and exposes that connection to every repo on
the same thread until commit. Outside a transaction each repo call gets a
short-lived autocommit connection.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime | None) -> str | None:
    """Fixed-width UTC ISO string so text comparison matches time order."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def parse_uuid(s: str | None) -> UUID | None:
    """Parse UUID string."""
    return UUID(s) if s else None


class SQLiteDatabase:
    """Unit of work over a SQLite file."""

    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        self.db_path = db_path
        self._timeout = timeout
        self._local = threading.local()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self._timeout, isolation_level=None)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @property
    def _active(self) -> sqlite3.Connection | None:
        return getattr(self._local, "conn", None)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """The current transaction's connection, or a fresh autocommit one."""
        active = self._active
        if active is not None:
            yield active
            return

        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._active is not None:
            # Nested: join the outer transaction
            yield
            return

        conn = self._connect()
        conn.execute("BEGIN IMMEDIATE")
        self._local.conn = conn
        try:
            yield
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()
        finally:
            self._local.conn = None
            conn.close()
