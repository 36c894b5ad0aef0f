from __future__ import annotations

from dataclasses import dataclass

from blogflow.adapters.clock import SystemClock
from blogflow.adapters.dev_jobs import DevTaskQueue, DevTaskScheduler
from blogflow.adapters.sqlite import (
    SQLiteActivityRepo,
    SQLiteContentRepo,
    SQLiteDatabase,
    SQLiteTokenStore,
)
from blogflow.app_shell.config import Settings
from blogflow.components.activity import ActivityLog
from blogflow.components.preview import PreviewTokenService, revoke_all_on_publish
from blogflow.components.workflow import PublishingWorkflowService, WorkflowHooks
from blogflow.ports.clock import ClockPort
from blogflow.ports.repo import ContentRepoPort
from blogflow.rules.models import Rules


@dataclass
class ServiceContext:
    workflow_service: PublishingWorkflowService
    preview_service: PreviewTokenService
    activity: ActivityLog
    content_repo: ContentRepoPort
    task_queue: DevTaskQueue
    scheduler: DevTaskScheduler
    hooks: WorkflowHooks
    rules: Rules
    clock: ClockPort

    @classmethod
    def create(
        cls,
        settings: Settings,
        rules: Rules,
        clock: ClockPort | None = None,
    ) -> ServiceContext:
        clock = clock or SystemClock()
        db = SQLiteDatabase(settings.db_path)

        content_repo = SQLiteContentRepo(db)
        activity = ActivityLog(SQLiteActivityRepo(db), clock)
        token_store = SQLiteTokenStore(db, clock)

        task_queue = DevTaskQueue(
            clock,
            max_attempts=rules.scheduling.task_max_attempts,
            backoff_seconds=rules.scheduling.task_backoff_seconds,
        )
        hooks = WorkflowHooks()

        workflow_service = PublishingWorkflowService(
            content_repo=content_repo,
            activity=activity,
            uow=db,
            clock=clock,
            tasks=task_queue,
            rules=rules.publishing,
            hooks=hooks,
        )
        preview_service = PreviewTokenService(
            clock=clock,
            token_store=token_store,
            content_repo=content_repo,
            rules=rules.preview,
            site=rules.site,
            secret=settings.preview_secret,
            share_key=settings.share_key,
            activity=activity,
        )
        hooks.subscribe("published", revoke_all_on_publish(preview_service))
        hooks.subscribe("archived", revoke_all_on_publish(preview_service))

        scheduler = DevTaskScheduler(
            task_queue,
            sweep=workflow_service.process_scheduled_posts,
            poll_interval_seconds=rules.scheduling.sweep_interval_seconds,
        )

        return cls(
            workflow_service=workflow_service,
            preview_service=preview_service,
            activity=activity,
            content_repo=content_repo,
            task_queue=task_queue,
            scheduler=scheduler,
            hooks=hooks,
            rules=rules,
            clock=clock,
        )
