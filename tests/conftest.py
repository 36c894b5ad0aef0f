from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from blogflow.adapters.dev_jobs import DevTaskQueue
from blogflow.adapters.memory import (
    InMemoryActivityRepo,
    InMemoryContentRepo,
    InMemoryTokenStore,
    InMemoryUnitOfWork,
)
from blogflow.components.activity import ActivityLog
from blogflow.components.preview import PreviewTokenService, ShareCipher
from blogflow.components.workflow import PublishingWorkflowService, WorkflowHooks
from blogflow.domain.entities import ContentItem
from blogflow.rules.loader import load_rules
from blogflow.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parents[1]
RULES_PATH = PROJECT_ROOT / "rules.yaml"
MIGRATIONS_DIR = PROJECT_ROOT / "migrations"

START = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
PREVIEW_SECRET = "test-preview-secret"


class MockClock:
    """Controllable clock."""

    def __init__(self, start: datetime = START) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: Any) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now

    def set(self, when: datetime) -> None:
        self._now = when


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture(scope="session")
def rules() -> Rules:
    return load_rules(RULES_PATH)


@pytest.fixture
def uow() -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork()


@pytest.fixture
def content_repo(uow: InMemoryUnitOfWork) -> InMemoryContentRepo:
    return InMemoryContentRepo(uow)


@pytest.fixture
def activity_repo(uow: InMemoryUnitOfWork) -> InMemoryActivityRepo:
    return InMemoryActivityRepo(uow)


@pytest.fixture
def activity(activity_repo: InMemoryActivityRepo, clock: MockClock) -> ActivityLog:
    return ActivityLog(activity_repo, clock)


@pytest.fixture
def tasks(clock: MockClock) -> DevTaskQueue:
    return DevTaskQueue(clock)


@pytest.fixture
def hooks() -> WorkflowHooks:
    return WorkflowHooks()


@pytest.fixture
def workflow(
    content_repo: InMemoryContentRepo,
    activity: ActivityLog,
    uow: InMemoryUnitOfWork,
    clock: MockClock,
    tasks: DevTaskQueue,
    rules: Rules,
    hooks: WorkflowHooks,
) -> PublishingWorkflowService:
    return PublishingWorkflowService(
        content_repo=content_repo,
        activity=activity,
        uow=uow,
        clock=clock,
        tasks=tasks,
        rules=rules.publishing,
        hooks=hooks,
    )


@pytest.fixture
def token_store(clock: MockClock) -> InMemoryTokenStore:
    return InMemoryTokenStore(clock)


@pytest.fixture
def share_key() -> str:
    return ShareCipher.generate_key()


@pytest.fixture
def preview(
    clock: MockClock,
    token_store: InMemoryTokenStore,
    content_repo: InMemoryContentRepo,
    rules: Rules,
    share_key: str,
    activity: ActivityLog,
) -> PreviewTokenService:
    return PreviewTokenService(
        clock=clock,
        token_store=token_store,
        content_repo=content_repo,
        rules=rules.preview,
        site=rules.site,
        secret=PREVIEW_SECRET,
        share_key=share_key,
        activity=activity,
    )


@pytest.fixture
def make_item(
    content_repo: InMemoryContentRepo, clock: MockClock
) -> Callable[..., ContentItem]:
    """Save a publishable draft (override fields via kwargs)."""
    counter = iter(range(1, 10_000))

    def _make(**overrides: Any) -> ContentItem:
        n = next(counter)
        fields: dict[str, Any] = {
            "title": f"Post {n}",
            "slug": f"post-{n}",
            "content": "Some body text.",
            "status": "draft",
            "created_at": clock.now(),
            "updated_at": clock.now(),
        }
        fields.update(overrides)
        return content_repo.save(ContentItem(**fields))

    return _make
