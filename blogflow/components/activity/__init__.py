"""Activity component - append-only audit trail per content item."""

from blogflow.components.activity.component import ActivityLog, map_action_to_status
from blogflow.components.activity.models import (
    PUBLISHING_ACTIONS,
    ActivityEntry,
    ActivityQuery,
    HistoryEntry,
)
from blogflow.components.activity.ports import ActivityRepoPort, TimePort

__all__ = [
    # Component
    "ActivityLog",
    "map_action_to_status",
    # Models
    "ActivityEntry",
    "ActivityQuery",
    "HistoryEntry",
    "PUBLISHING_ACTIONS",
    # Ports
    "ActivityRepoPort",
    "TimePort",
]
