"""Workflow component - content status transitions, scheduling and bulk operations."""

from blogflow.components.workflow.component import PublishingWorkflowService
from blogflow.components.workflow.hooks import EventName, WorkflowEvent, WorkflowHooks
from blogflow.components.workflow.models import (
    ITEM_NOT_FOUND,
    NOOP,
    OK,
    PERSISTENCE_FAILURE,
    VALIDATION_FAILED,
    ArchiveInput,
    BulkPublishInput,
    BulkResult,
    BulkScheduleInput,
    ProcessScheduledInput,
    PublishNowInput,
    RescheduleInput,
    SaveDraftInput,
    ScheduleInput,
    UnpublishInput,
    WorkflowResult,
)
from blogflow.components.workflow.ports import (
    ActivityRepoPort,
    ClockPort,
    ContentRepoPort,
    TaskQueuePort,
    UnitOfWorkPort,
)

__all__ = [
    # Component
    "PublishingWorkflowService",
    # Hooks
    "EventName",
    "WorkflowEvent",
    "WorkflowHooks",
    # Models
    "ArchiveInput",
    "BulkPublishInput",
    "BulkResult",
    "BulkScheduleInput",
    "ProcessScheduledInput",
    "PublishNowInput",
    "RescheduleInput",
    "SaveDraftInput",
    "ScheduleInput",
    "UnpublishInput",
    "WorkflowResult",
    # Result codes
    "ITEM_NOT_FOUND",
    "NOOP",
    "OK",
    "PERSISTENCE_FAILURE",
    "VALIDATION_FAILED",
    # Ports
    "ActivityRepoPort",
    "ClockPort",
    "ContentRepoPort",
    "TaskQueuePort",
    "UnitOfWorkPort",
]
