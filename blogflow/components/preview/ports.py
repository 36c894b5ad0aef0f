"""Preview component port definitions - protocols for dependencies."""

from blogflow.components.activity.component import ActivityLog
from blogflow.ports.clock import ClockPort
from blogflow.ports.repo import ContentRepoPort
from blogflow.ports.token_store import TokenStorePort

__all__ = [
    "ActivityLog",
    "ClockPort",
    "ContentRepoPort",
    "TokenStorePort",
]
