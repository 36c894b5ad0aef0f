import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from blogflow.adapters.sqlite import SQLiteMigrator
from blogflow.api.deps import get_context, get_rules, get_settings
from blogflow.domain.errors import InvalidScheduleError, InvalidStateError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules on startup (fail-fast)
    rules = get_rules()
    logger.info(
        "Rules loaded from %s (version %s)", settings.rules_path, rules.project.rules_version
    )

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    SQLiteMigrator(settings.db_path, str(settings.migrations_dir)).run_migrations()

    ctx = get_context()
    ctx.scheduler.start()
    yield
    ctx.scheduler.stop()


app = FastAPI(
    title="Blogflow API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# --- Error mapping ---


@app.exception_handler(InvalidScheduleError)
async def invalid_schedule_handler(request: Request, exc: InvalidScheduleError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"code": exc.code, "message": str(exc)})


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"code": exc.code, "message": str(exc)})


# --- Routers ---
from blogflow.api.routes import admin_preview, admin_workflow, preview  # noqa: E402

app.include_router(preview.router, prefix="/preview", tags=["Preview"])
app.include_router(admin_workflow.router, prefix="/api/admin/workflow", tags=["Admin Workflow"])
app.include_router(admin_preview.router, prefix="/api/admin/preview", tags=["Admin Preview"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "api"}
