"""
Task queue port.

The queue accepts a unit of work plus the earliest time it may run and
guarantees at-least-once delivery at or after that time. Work must
therefore be idempotent.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol


class TaskQueuePort(Protocol):
    def enqueue(
        self,
        work: Callable[[], object],
        not_before: datetime,
        name: str = "",
    ) -> str:
        """Queue work to run no earlier than not_before. Returns a task id."""
        ...
