"""Admin preview routes - issue, revoke and inspect preview credentials."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from blogflow.api.deps import get_preview_service, get_workflow_service
from blogflow.components.preview import PreviewTokenService
from blogflow.components.workflow import PublishingWorkflowService
from blogflow.domain.entities import ContentItem

router = APIRouter()


# --- Request/Response Models ---


class TokenResponse(BaseModel):
    token: str
    url: str
    expires_at: datetime


class ShareableRequest(BaseModel):
    expires_at: datetime | None = None


class ShareableResponse(BaseModel):
    url: str
    expires_at: datetime


class StatsResponse(BaseModel):
    total_previews: int
    unique_visitors: int
    last_preview: datetime | None = None


# --- Helpers ---


def _load_item(item_id: UUID, workflow: PublishingWorkflowService) -> ContentItem:
    item = workflow.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


# --- Routes ---


@router.post("/items/{item_id}/tokens", response_model=TokenResponse)
def issue_token(
    item_id: UUID,
    workflow: PublishingWorkflowService = Depends(get_workflow_service),
    service: PreviewTokenService = Depends(get_preview_service),
) -> Any:
    item = _load_item(item_id, workflow)
    issued = service.issue_token(item)
    return TokenResponse(token=issued.token, url=issued.url, expires_at=issued.expires_at)


@router.post("/items/{item_id}/shareable", response_model=ShareableResponse)
def issue_shareable_link(
    item_id: UUID,
    request: ShareableRequest,
    workflow: PublishingWorkflowService = Depends(get_workflow_service),
    service: PreviewTokenService = Depends(get_preview_service),
) -> Any:
    item = _load_item(item_id, workflow)
    try:
        link = service.generate_shareable_preview_link(item, request.expires_at)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return ShareableResponse(url=link.url, expires_at=link.expires_at)


@router.delete("/items/{item_id}/tokens/{token}")
def revoke_token(
    item_id: UUID,
    token: str,
    workflow: PublishingWorkflowService = Depends(get_workflow_service),
    service: PreviewTokenService = Depends(get_preview_service),
) -> dict[str, Any]:
    item = _load_item(item_id, workflow)
    return {"revoked": service.revoke_preview_token(item, token)}


@router.delete("/items/{item_id}/tokens")
def revoke_all_tokens(
    item_id: UUID,
    workflow: PublishingWorkflowService = Depends(get_workflow_service),
    service: PreviewTokenService = Depends(get_preview_service),
) -> dict[str, Any]:
    item = _load_item(item_id, workflow)
    return {"revoked": service.revoke_all_preview_tokens(item)}


@router.get("/items/{item_id}/stats", response_model=StatsResponse)
def preview_stats(
    item_id: UUID,
    service: PreviewTokenService = Depends(get_preview_service),
) -> Any:
    stats = service.get_preview_stats(item_id)
    return StatsResponse(
        total_previews=stats.total_previews,
        unique_visitors=stats.unique_visitors,
        last_preview=stats.last_preview,
    )


@router.post("/cleanup")
def cleanup_tokens(
    service: PreviewTokenService = Depends(get_preview_service),
) -> dict[str, Any]:
    return {"removed": service.cleanup_expired_tokens()}
