"""Workflow component port definitions - protocols for dependencies."""

from blogflow.components.activity.ports import ActivityRepoPort
from blogflow.ports.clock import ClockPort
from blogflow.ports.repo import ContentRepoPort, UnitOfWorkPort
from blogflow.ports.tasks import TaskQueuePort

__all__ = [
    "ActivityRepoPort",
    "ClockPort",
    "ContentRepoPort",
    "TaskQueuePort",
    "UnitOfWorkPort",
]
