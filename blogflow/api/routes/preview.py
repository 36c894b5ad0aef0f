"""
Public preview routes.

Responses are limited to 200 (render payload, never indexed), 302 to the
live post when it is already published, and a generic 404 for everything
else.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

from blogflow.api.deps import get_actor, get_preview_service
from blogflow.components.preview import (
    PreviewOutcome,
    PreviewRedirect,
    PreviewRender,
    PreviewTokenService,
)
from blogflow.domain.entities import Actor

router = APIRouter()


class PreviewPayload(BaseModel):
    id: UUID
    title: str
    slug: str
    content: str
    status: str
    publish_at: datetime | None = None
    is_preview: bool = True
    preview_expires_at: datetime | None = None


def _respond(outcome: PreviewOutcome) -> Any:
    if isinstance(outcome, PreviewRedirect):
        return RedirectResponse(outcome.url, status_code=302)
    if isinstance(outcome, PreviewRender):
        item = outcome.item
        payload = PreviewPayload(
            id=item.id,
            title=item.title,
            slug=item.slug,
            content=item.content,
            status=item.status,
            publish_at=item.publish_at,
            preview_expires_at=outcome.expires_at,
        )
        return JSONResponse(payload.model_dump(mode="json"), headers=outcome.headers)
    raise HTTPException(status_code=404, detail="Not found")


# Declared first so "shared" is never read as an item id
@router.get("/shared/{token}")
def shared_preview(
    token: str,
    viewer: Actor = Depends(get_actor),
    service: PreviewTokenService = Depends(get_preview_service),
) -> Any:
    return _respond(service.render_shareable_preview(token, viewer))


@router.get("/{item_id}/{token}")
def token_preview(
    item_id: str,
    token: str,
    viewer: Actor = Depends(get_actor),
    service: PreviewTokenService = Depends(get_preview_service),
) -> Any:
    try:
        parsed_id = UUID(item_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Not found") from None
    return _respond(service.render_preview(parsed_id, token, viewer))
