"""Workflow component models - frozen dataclass inputs and outputs."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from blogflow.domain.entities import Actor, ContentItem
from blogflow.domain.errors import FieldError

# Result codes
OK = "OK"
NOOP = "NOOP"
ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
VALIDATION_FAILED = "VALIDATION_FAILED"
PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


@dataclass(frozen=True)
class WorkflowResult:
    """Outcome of a single-item workflow operation."""

    success: bool
    code: str = OK
    message: str = ""
    errors: list[FieldError] = field(default_factory=list)
    item: ContentItem | None = None
    # False when the call succeeded without a state change (idempotent no-op)
    changed: bool = True


@dataclass(frozen=True)
class BulkResult:
    """Outcome of a bulk operation."""

    success: bool
    succeeded: int
    skipped: int
    message: str = ""
    skipped_ids: list[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class SaveDraftInput:
    item_id: UUID
    actor: Actor | None = None


@dataclass(frozen=True)
class PublishNowInput:
    item_id: UUID
    actor: Actor | None = None


@dataclass(frozen=True)
class ScheduleInput:
    item_id: UUID
    publish_at: datetime
    actor: Actor | None = None


@dataclass(frozen=True)
class UnpublishInput:
    item_id: UUID
    actor: Actor | None = None


@dataclass(frozen=True)
class RescheduleInput:
    item_id: UUID
    publish_at: datetime
    actor: Actor | None = None


@dataclass(frozen=True)
class ArchiveInput:
    item_id: UUID
    actor: Actor | None = None


@dataclass(frozen=True)
class BulkPublishInput:
    item_ids: tuple[UUID, ...]
    actor: Actor | None = None


@dataclass(frozen=True)
class BulkScheduleInput:
    item_ids: tuple[UUID, ...]
    publish_at: datetime
    actor: Actor | None = None


@dataclass(frozen=True)
class ProcessScheduledInput:
    """Input for the periodic sweep - empty input."""

    pass
