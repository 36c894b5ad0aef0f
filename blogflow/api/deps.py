from functools import lru_cache

from fastapi import Depends, Header, Request

from blogflow.app_shell.config import Settings
from blogflow.app_shell.context import ServiceContext
from blogflow.components.preview import PreviewTokenService
from blogflow.components.workflow import PublishingWorkflowService
from blogflow.domain.entities import Actor
from blogflow.rules.loader import load_rules
from blogflow.rules.models import Rules


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Services ---
@lru_cache
def get_context() -> ServiceContext:
    return ServiceContext.create(get_settings(), get_rules())


def get_workflow_service(
    ctx: ServiceContext = Depends(get_context),
) -> PublishingWorkflowService:
    return ctx.workflow_service


def get_preview_service(
    ctx: ServiceContext = Depends(get_context),
) -> PreviewTokenService:
    return ctx.preview_service


# --- Actor ---
def get_actor(
    request: Request,
    x_actor_id: str | None = Header(default=None),
) -> Actor:
    """
    Opaque caller identity taken from X-Actor-Id.

    Nothing is authenticated here; the value is only recorded.
    """
    return Actor(
        actor_id=x_actor_id or None,
        source_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
