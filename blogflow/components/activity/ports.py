"""
Activity component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .models import ActivityEntry, ActivityQuery


class ActivityRepoPort(Protocol):
    """Append-only storage for activity entries."""

    def append(self, entry: ActivityEntry) -> ActivityEntry:
        """Persist a new entry. Entries are never updated."""
        ...

    def query(self, query: ActivityQuery) -> list[ActivityEntry]:
        """Entries matching the filters, oldest first."""
        ...


class TimePort(Protocol):
    def now(self) -> datetime:
        ...
