"""
Workflow error types.

Schedule and state errors are caller-input problems and are raised.
Validation failures are returned as field errors, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """Field-level validation error."""

    code: str
    message: str
    field: str | None = None


class WorkflowError(Exception):
    """Base exception for publishing workflow errors."""

    code = "WORKFLOW_ERROR"


class InvalidScheduleError(WorkflowError):
    """A schedule or reschedule target is not strictly in the future."""

    code = "INVALID_SCHEDULE"


class InvalidStateError(WorkflowError):
    """The item is not in a state that allows the requested operation."""

    code = "INVALID_STATE"


class PersistenceError(WorkflowError):
    """A store or transaction failure. The message is safe to show callers."""

    code = "PERSISTENCE_FAILURE"

    def __init__(self, message: str = "The operation could not be saved") -> None:
        super().__init__(message)
