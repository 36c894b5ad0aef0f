"""
Admin workflow routes.

Status transitions for content items. The caller identity comes from
X-Actor-Id and is recorded, never checked.

Error mapping:
- InvalidScheduleError -> 400, InvalidStateError -> 409 (app exception handlers)
- Item not found -> 404
- Validation failure -> 422 with field errors
- Persistence failure -> 500 with a generic message
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from blogflow.api.deps import get_actor, get_workflow_service
from blogflow.components.workflow import (
    ITEM_NOT_FOUND,
    VALIDATION_FAILED,
    PublishingWorkflowService,
    WorkflowResult,
)
from blogflow.domain.entities import Actor
from blogflow.domain.errors import FieldError

router = APIRouter()


# --- Request/Response Models ---


class ScheduleRequest(BaseModel):
    publish_at: datetime = Field(..., description="Target publish time, timezone-aware")


class BulkPublishRequest(BaseModel):
    item_ids: list[UUID] = Field(..., min_length=1)


class BulkScheduleRequest(BaseModel):
    item_ids: list[UUID] = Field(..., min_length=1)
    publish_at: datetime


class ItemResponse(BaseModel):
    id: UUID
    title: str
    slug: str
    status: str
    publish_at: datetime | None = None
    updated_at: datetime


class WorkflowResponse(BaseModel):
    success: bool
    changed: bool
    message: str
    item: ItemResponse | None = None


class BulkResponse(BaseModel):
    success: bool
    succeeded: int
    skipped: int
    message: str
    skipped_ids: list[UUID] = Field(default_factory=list)


class HistoryEntryResponse(BaseModel):
    status: str
    timestamp: datetime
    description: str
    actor_id: str | None = None


# --- Helpers ---


def _serialize_errors(errors: list[FieldError]) -> list[dict[str, Any]]:
    return [{"code": e.code, "message": e.message, "field": e.field} for e in errors]


def _to_response(result: WorkflowResult) -> WorkflowResponse:
    if not result.success:
        if result.code == ITEM_NOT_FOUND:
            raise HTTPException(status_code=404, detail="Item not found")
        if result.code == VALIDATION_FAILED:
            raise HTTPException(
                status_code=422,
                detail={
                    "code": result.code,
                    "message": result.message,
                    "errors": _serialize_errors(result.errors),
                },
            )
        raise HTTPException(status_code=500, detail="The operation could not be completed")

    item = result.item
    return WorkflowResponse(
        success=True,
        changed=result.changed,
        message=result.message,
        item=ItemResponse(
            id=item.id,
            title=item.title,
            slug=item.slug,
            status=item.status,
            publish_at=item.publish_at,
            updated_at=item.updated_at,
        )
        if item
        else None,
    )


# --- Routes ---


@router.post("/items/{item_id}/draft", response_model=WorkflowResponse)
def save_draft(
    item_id: UUID,
    actor: Actor = Depends(get_actor),
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    return _to_response(service.save_draft(item_id, actor))


@router.post("/items/{item_id}/publish", response_model=WorkflowResponse)
def publish_now(
    item_id: UUID,
    actor: Actor = Depends(get_actor),
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    return _to_response(service.publish_now(item_id, actor))


@router.post("/items/{item_id}/schedule", response_model=WorkflowResponse)
def schedule_post(
    item_id: UUID,
    request: ScheduleRequest,
    actor: Actor = Depends(get_actor),
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    return _to_response(service.schedule_post(item_id, request.publish_at, actor))


@router.post("/items/{item_id}/unpublish", response_model=WorkflowResponse)
def unpublish(
    item_id: UUID,
    actor: Actor = Depends(get_actor),
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    return _to_response(service.unpublish(item_id, actor))


@router.post("/items/{item_id}/reschedule", response_model=WorkflowResponse)
def reschedule_post(
    item_id: UUID,
    request: ScheduleRequest,
    actor: Actor = Depends(get_actor),
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    return _to_response(service.reschedule_post(item_id, request.publish_at, actor))


@router.post("/items/{item_id}/archive", response_model=WorkflowResponse)
def archive(
    item_id: UUID,
    actor: Actor = Depends(get_actor),
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    return _to_response(service.archive(item_id, actor))


@router.get("/items/{item_id}/history", response_model=list[HistoryEntryResponse])
def publishing_history(
    item_id: UUID,
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    return [
        HistoryEntryResponse(
            status=h.status,
            timestamp=h.timestamp,
            description=h.description,
            actor_id=h.actor_id,
        )
        for h in service.get_publishing_history(item_id)
    ]


@router.post("/bulk/publish", response_model=BulkResponse)
def bulk_publish(
    request: BulkPublishRequest,
    actor: Actor = Depends(get_actor),
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    result = service.bulk_publish(request.item_ids, actor)
    if not result.success:
        raise HTTPException(status_code=500, detail="The operation could not be completed")
    return BulkResponse(**vars(result))


@router.post("/bulk/schedule", response_model=BulkResponse)
def bulk_schedule(
    request: BulkScheduleRequest,
    actor: Actor = Depends(get_actor),
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> Any:
    result = service.bulk_schedule(request.item_ids, request.publish_at, actor)
    if not result.success:
        raise HTTPException(status_code=500, detail="The operation could not be completed")
    return BulkResponse(**vars(result))


@router.post("/process-scheduled")
def process_scheduled(
    service: PublishingWorkflowService = Depends(get_workflow_service),
) -> dict[str, Any]:
    """Periodic trigger: publish every scheduled item that is due."""
    return {"published": service.process_scheduled_posts()}
