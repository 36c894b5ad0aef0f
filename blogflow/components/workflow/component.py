"""
Publishing workflow component - owns the content status state machine.

Every operation runs in one unit-of-work transaction covering the item
write and its activity entry. Hooks fire and scheduler tasks are queued
only after the transaction commits.

Error contract:
- InvalidScheduleError / InvalidStateError are raised (caller input errors)
- Validation failures return WorkflowResult(success=False, errors=[...])
- Store failures are logged and returned as PERSISTENCE_FAILURE
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime
from uuid import UUID

from blogflow.components.activity import ActivityLog, HistoryEntry
from blogflow.domain.entities import SYSTEM_ACTOR, Actor, ContentItem, ensure_utc
from blogflow.domain.errors import (
    FieldError,
    InvalidScheduleError,
    InvalidStateError,
    PersistenceError,
    WorkflowError,
)
from blogflow.domain.state import transition
from blogflow.domain.validation import validate_for_publishing
from blogflow.rules.models import PublishingRules

from .hooks import WorkflowEvent, WorkflowHooks
from .models import (
    ITEM_NOT_FOUND,
    NOOP,
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
from .ports import ClockPort, ContentRepoPort, TaskQueuePort, UnitOfWorkPort

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

WorkflowInput = (
    SaveDraftInput
    | PublishNowInput
    | ScheduleInput
    | UnpublishInput
    | RescheduleInput
    | ArchiveInput
    | BulkPublishInput
    | BulkScheduleInput
    | ProcessScheduledInput
)


def _not_found(item_id: UUID) -> WorkflowResult:
    return WorkflowResult(
        success=False,
        code=ITEM_NOT_FOUND,
        message=f"Item {item_id} not found",
        errors=[FieldError(ITEM_NOT_FOUND, "Item not found", "item_id")],
    )


def _persistence_failure() -> WorkflowResult:
    return WorkflowResult(
        success=False,
        code=PERSISTENCE_FAILURE,
        message=str(PersistenceError()),
    )


def _dedupe(item_ids: list[UUID] | tuple[UUID, ...]) -> list[UUID]:
    return list(dict.fromkeys(item_ids))


class PublishingWorkflowService:
    """Draft / schedule / publish / unpublish / archive transitions for content items."""

    def __init__(
        self,
        content_repo: ContentRepoPort,
        activity: ActivityLog,
        uow: UnitOfWorkPort,
        clock: ClockPort,
        tasks: TaskQueuePort,
        rules: PublishingRules,
        hooks: WorkflowHooks | None = None,
    ) -> None:
        self._repo = content_repo
        self._activity = activity
        self._uow = uow
        self._clock = clock
        self._tasks = tasks
        self._rules = rules
        self.hooks = hooks or WorkflowHooks()

    # --- Dispatcher ---

    def run(self, input_data: WorkflowInput) -> WorkflowResult | BulkResult | int:
        """Route an input model to its handler."""
        if isinstance(input_data, SaveDraftInput):
            return self.save_draft(input_data.item_id, input_data.actor)
        elif isinstance(input_data, PublishNowInput):
            return self.publish_now(input_data.item_id, input_data.actor)
        elif isinstance(input_data, ScheduleInput):
            return self.schedule_post(input_data.item_id, input_data.publish_at, input_data.actor)
        elif isinstance(input_data, UnpublishInput):
            return self.unpublish(input_data.item_id, input_data.actor)
        elif isinstance(input_data, RescheduleInput):
            return self.reschedule_post(
                input_data.item_id, input_data.publish_at, input_data.actor
            )
        elif isinstance(input_data, ArchiveInput):
            return self.archive(input_data.item_id, input_data.actor)
        elif isinstance(input_data, BulkPublishInput):
            return self.bulk_publish(list(input_data.item_ids), input_data.actor)
        elif isinstance(input_data, BulkScheduleInput):
            return self.bulk_schedule(
                list(input_data.item_ids), input_data.publish_at, input_data.actor
            )
        elif isinstance(input_data, ProcessScheduledInput):
            return self.process_scheduled_posts()
        else:
            raise TypeError(f"Unknown input type: {type(input_data)}")

    # --- Validation ---

    def validate(self, item: ContentItem) -> list[FieldError]:
        """Publishability check shared by the publish and schedule paths."""
        errors = validate_for_publishing(item, self._rules)
        if not errors and self._rules.require_unique_slug:
            if self._repo.slug_in_use(item.slug, item.id):
                errors.append(
                    FieldError("SLUG_TAKEN", f"Slug '{item.slug}' is already published", "slug")
                )
        return errors

    # --- Single item operations ---

    def save_draft(self, item_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        """Force an item back to draft with no publish date."""
        try:
            with self._uow.transaction():
                item = self._repo.get_by_id(item_id)
                if item is None:
                    return _not_found(item_id)
                if item.status == "archived":
                    raise InvalidStateError("Archived posts cannot be saved as draft")

                now = self._clock.now()
                updated = item.model_copy(
                    update={"status": "draft", "publish_at": None, "updated_at": now}
                )
                self._repo.save(updated)
                self._activity.log(updated.id, "draft_saved", "Post saved as draft", actor)
        except WorkflowError:
            raise
        except Exception:
            logger.exception("Failed to save draft for item %s", item_id)
            return _persistence_failure()

        return WorkflowResult(success=True, message="Post saved as draft", item=updated)

    def publish_now(self, item_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        """
        Publish immediately.

        Idempotent: an already published item stays as it is and the call
        succeeds with changed=False.
        """
        event: WorkflowEvent | None = None
        try:
            with self._uow.transaction():
                item = self._repo.get_by_id(item_id)
                if item is None:
                    return _not_found(item_id)

                if item.status == "published":
                    self._activity.log(
                        item.id,
                        "published",
                        "Publish requested for an already published post",
                        actor,
                        metadata={"noop": True},
                    )
                    return WorkflowResult(
                        success=True,
                        code=NOOP,
                        message="Post is already published",
                        item=item,
                        changed=False,
                    )

                errors = self.validate(item)
                if errors:
                    return WorkflowResult(
                        success=False,
                        code=VALIDATION_FAILED,
                        message="Post is not ready for publishing",
                        errors=errors,
                        item=item,
                    )

                now = self._clock.now()
                updated = transition(item, "published", now)
                self._repo.save(updated)
                self._activity.log(updated.id, "published", "Post published immediately", actor)
                event = WorkflowEvent("published", updated, now, actor.actor_id if actor else None)
        except WorkflowError:
            raise
        except Exception:
            logger.exception("Failed to publish item %s", item_id)
            return _persistence_failure()

        self.hooks.dispatch(event)
        return WorkflowResult(success=True, message="Post published", item=updated)

    def schedule_post(
        self,
        item_id: UUID,
        publish_at: datetime,
        actor: Actor | None = None,
    ) -> WorkflowResult:
        """Schedule an item and queue its publish task for publish_at."""
        publish_at = ensure_utc(publish_at)
        now = self._clock.now()
        if publish_at <= now:
            raise InvalidScheduleError("Cannot schedule post for a past date")

        try:
            with self._uow.transaction():
                item = self._repo.get_by_id(item_id)
                if item is None:
                    return _not_found(item_id)

                errors = self.validate(item)
                if errors:
                    return WorkflowResult(
                        success=False,
                        code=VALIDATION_FAILED,
                        message="Post is not ready for scheduling",
                        errors=errors,
                        item=item,
                    )

                updated = transition(item, "scheduled", now, publish_at=publish_at)
                self._repo.save(updated)
                self._activity.log(
                    updated.id,
                    "scheduled",
                    f"Post scheduled for publication at {publish_at.strftime(DATE_FORMAT)}",
                    actor,
                    metadata={"publish_at": publish_at.isoformat()},
                )
        except WorkflowError:
            raise
        except Exception:
            logger.exception("Failed to schedule item %s", item_id)
            return _persistence_failure()

        self._enqueue_publish(updated.id, publish_at)
        self.hooks.dispatch(
            WorkflowEvent("scheduled", updated, now, actor.actor_id if actor else None)
        )
        return WorkflowResult(success=True, message="Post scheduled", item=updated)

    def unpublish(self, item_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        """Take a published (or scheduled) item back to draft."""
        try:
            with self._uow.transaction():
                item = self._repo.get_by_id(item_id)
                if item is None:
                    return _not_found(item_id)
                if item.status not in ("published", "scheduled"):
                    raise InvalidStateError(
                        f"Only published or scheduled posts can be unpublished (is {item.status})"
                    )

                now = self._clock.now()
                updated = transition(item, "draft", now)
                self._repo.save(updated)
                self._activity.log(
                    updated.id, "unpublished", "Post unpublished and reverted to draft", actor
                )
        except WorkflowError:
            raise
        except Exception:
            logger.exception("Failed to unpublish item %s", item_id)
            return _persistence_failure()

        self.hooks.dispatch(
            WorkflowEvent("unpublished", updated, now, actor.actor_id if actor else None)
        )
        return WorkflowResult(success=True, message="Post unpublished", item=updated)

    def reschedule_post(
        self,
        item_id: UUID,
        new_publish_at: datetime,
        actor: Actor | None = None,
    ) -> WorkflowResult:
        """
        Move a scheduled item to a new time.

        A new task is queued; the old one stays queued and becomes a no-op
        when it fires because the publish time no longer matches.
        """
        new_publish_at = ensure_utc(new_publish_at)
        now = self._clock.now()
        if new_publish_at <= now:
            raise InvalidScheduleError("Cannot reschedule post for a past date")

        try:
            with self._uow.transaction():
                item = self._repo.get_by_id(item_id)
                if item is None:
                    return _not_found(item_id)
                if item.status != "scheduled":
                    raise InvalidStateError(
                        "Can only reschedule posts that are currently scheduled"
                    )

                old_date = item.publish_at
                updated = transition(item, "scheduled", now, publish_at=new_publish_at)
                self._repo.save(updated)
                old_text = old_date.strftime(DATE_FORMAT) if old_date else "unscheduled"
                self._activity.log(
                    updated.id,
                    "rescheduled",
                    f"Post rescheduled from {old_text} "
                    f"to {new_publish_at.strftime(DATE_FORMAT)}",
                    actor,
                    metadata={
                        "old_publish_at": old_date.isoformat() if old_date else None,
                        "new_publish_at": new_publish_at.isoformat(),
                    },
                )
        except WorkflowError:
            raise
        except Exception:
            logger.exception("Failed to reschedule item %s", item_id)
            return _persistence_failure()

        self._enqueue_publish(updated.id, new_publish_at)
        return WorkflowResult(success=True, message="Post rescheduled", item=updated)

    def archive(self, item_id: UUID, actor: Actor | None = None) -> WorkflowResult:
        """Archive an item. Archived is terminal."""
        try:
            with self._uow.transaction():
                item = self._repo.get_by_id(item_id)
                if item is None:
                    return _not_found(item_id)
                if item.status == "archived":
                    return WorkflowResult(
                        success=True,
                        code=NOOP,
                        message="Post is already archived",
                        item=item,
                        changed=False,
                    )

                now = self._clock.now()
                updated = transition(item, "archived", now)
                self._repo.save(updated)
                self._activity.log(updated.id, "archived", "Post archived", actor)
        except WorkflowError:
            raise
        except Exception:
            logger.exception("Failed to archive item %s", item_id)
            return _persistence_failure()

        self.hooks.dispatch(
            WorkflowEvent("archived", updated, now, actor.actor_id if actor else None)
        )
        return WorkflowResult(success=True, message="Post archived", item=updated)

    # --- Scheduled task body ---

    def publish_scheduled(self, item_id: UUID) -> WorkflowResult:
        """
        Publish a scheduled item whose time has come.

        This is what the queued task and the periodic sweep run. Safe under
        duplicate delivery: anything that is no longer due is a no-op.
        """
        event: WorkflowEvent | None = None
        try:
            with self._uow.transaction():
                item = self._repo.get_by_id(item_id)
                if item is None:
                    logger.info("Scheduled post %s no longer exists, skipping publication", item_id)
                    return _not_found(item_id)

                if item.status != "scheduled":
                    logger.info(
                        "Post %s is no longer scheduled (status: %s), skipping publication",
                        item_id,
                        item.status,
                    )
                    return WorkflowResult(
                        success=True, code=NOOP, message="Not scheduled", item=item, changed=False
                    )

                now = self._clock.now()
                if item.publish_at is None or item.publish_at > now:
                    logger.info(
                        "Post %s scheduled time has not yet arrived, skipping publication",
                        item_id,
                    )
                    return WorkflowResult(
                        success=True, code=NOOP, message="Not yet due", item=item, changed=False
                    )

                errors = self.validate(item)
                if errors:
                    logger.error("Post %s failed validation, cannot publish", item_id)
                    reasons = "; ".join(e.message for e in errors)
                    self._activity.log(
                        item.id,
                        "publish_failed",
                        f"Automatic publication failed: {reasons}",
                        SYSTEM_ACTOR,
                        metadata={"errors": [e.code for e in errors]},
                    )
                    return WorkflowResult(
                        success=False,
                        code=VALIDATION_FAILED,
                        message="Scheduled post failed validation",
                        errors=errors,
                        item=item,
                    )

                updated = transition(item, "published", now)
                self._repo.save(updated)
                self._activity.log(
                    updated.id,
                    "published",
                    "Post automatically published from scheduled status",
                    SYSTEM_ACTOR,
                )
                event = WorkflowEvent("published", updated, now, None)
        except WorkflowError:
            raise
        except Exception:
            logger.exception("Failed to publish scheduled post %s", item_id)
            return _persistence_failure()

        logger.info("Successfully published scheduled post %s: %s", updated.id, updated.title)
        self.hooks.dispatch(event)
        return WorkflowResult(success=True, message="Post published", item=updated)

    def _run_publish_task(self, item_id: UUID) -> WorkflowResult:
        result = self.publish_scheduled(item_id)
        if result.code == PERSISTENCE_FAILURE:
            # Let the queue redeliver
            raise PersistenceError(f"Scheduled publish of {item_id} could not be saved")
        return result

    def _enqueue_publish(self, item_id: UUID, publish_at: datetime) -> None:
        try:
            self._tasks.enqueue(
                functools.partial(self._run_publish_task, item_id),
                publish_at,
                name=f"publish:{item_id}",
            )
        except Exception:
            # The periodic sweep still publishes the item when it is due
            logger.exception("Failed to queue publish task for item %s", item_id)

    # --- Bulk operations ---

    def bulk_publish(self, item_ids: list[UUID], actor: Actor | None = None) -> BulkResult:
        """
        Publish many items in one transaction.

        Items that are missing, not publishable or archived are skipped.
        Already published items count as succeeded without a state change,
        like publish_now. A store failure rolls back the whole batch.
        """
        ids = _dedupe(item_ids)
        events: list[WorkflowEvent] = []
        skipped_ids: list[UUID] = []
        unchanged = 0
        try:
            with self._uow.transaction():
                now = self._clock.now()
                found = {item.id: item for item in self._repo.get_many(ids)}
                for item_id in ids:
                    item = found.get(item_id)
                    if item is None or item.status == "archived":
                        skipped_ids.append(item_id)
                        continue
                    if item.status == "published":
                        self._activity.log(
                            item.id,
                            "bulk_published",
                            "Publish requested via bulk operation for an already published post",
                            actor,
                            metadata={"noop": True},
                        )
                        unchanged += 1
                        continue
                    if self.validate(item):
                        logger.debug("Bulk publish skipping invalid item %s", item_id)
                        skipped_ids.append(item_id)
                        continue

                    updated = transition(item, "published", now)
                    self._repo.save(updated)
                    self._activity.log(
                        updated.id, "bulk_published", "Post published via bulk operation", actor
                    )
                    events.append(
                        WorkflowEvent("published", updated, now, actor.actor_id if actor else None)
                    )
        except Exception:
            logger.exception("Failed to bulk publish posts")
            return BulkResult(
                success=False,
                succeeded=0,
                skipped=len(ids),
                message="Bulk publish failed, no posts were changed",
                skipped_ids=ids,
            )

        succeeded = len(events) + unchanged
        logger.info("Bulk published %d posts (%d already published)", succeeded, unchanged)
        for event in events:
            self.hooks.dispatch(event)
        return BulkResult(
            success=True,
            succeeded=succeeded,
            skipped=len(skipped_ids),
            message=f"Published {succeeded} posts",
            skipped_ids=skipped_ids,
        )

    def bulk_schedule(
        self,
        item_ids: list[UUID],
        publish_at: datetime,
        actor: Actor | None = None,
    ) -> BulkResult:
        """Schedule many items for the same time in one transaction."""
        publish_at = ensure_utc(publish_at)
        now = self._clock.now()
        if publish_at <= now:
            raise InvalidScheduleError("Cannot schedule posts for a past date")

        ids = _dedupe(item_ids)
        events: list[WorkflowEvent] = []
        skipped_ids: list[UUID] = []
        try:
            with self._uow.transaction():
                found = {item.id: item for item in self._repo.get_many(ids)}
                for item_id in ids:
                    item = found.get(item_id)
                    if item is None or item.status not in ("draft", "scheduled"):
                        skipped_ids.append(item_id)
                        continue
                    if self.validate(item):
                        logger.debug("Bulk schedule skipping invalid item %s", item_id)
                        skipped_ids.append(item_id)
                        continue

                    updated = transition(item, "scheduled", now, publish_at=publish_at)
                    self._repo.save(updated)
                    self._activity.log(
                        updated.id,
                        "bulk_scheduled",
                        "Post scheduled via bulk operation for "
                        f"{publish_at.strftime(DATE_FORMAT)}",
                        actor,
                        metadata={"publish_at": publish_at.isoformat()},
                    )
                    events.append(
                        WorkflowEvent("scheduled", updated, now, actor.actor_id if actor else None)
                    )
        except Exception:
            logger.exception("Failed to bulk schedule posts")
            return BulkResult(
                success=False,
                succeeded=0,
                skipped=len(ids),
                message="Bulk schedule failed, no posts were changed",
                skipped_ids=ids,
            )

        logger.info("Bulk scheduled %d posts", len(events))
        for event in events:
            self._enqueue_publish(event.item.id, publish_at)
            self.hooks.dispatch(event)
        return BulkResult(
            success=True,
            succeeded=len(events),
            skipped=len(skipped_ids),
            message=f"Scheduled {len(events)} posts",
            skipped_ids=skipped_ids,
        )

    # --- Sweep and queries ---

    def get_item(self, item_id: UUID) -> ContentItem | None:
        return self._repo.get_by_id(item_id)

    def get_posts_ready_for_publishing(self) -> list[ContentItem]:
        return self._repo.list_ready_for_publishing(self._clock.now())

    def process_scheduled_posts(self) -> int:
        """
        Safety-net sweep for scheduled items whose task never fired.

        Returns the number of items actually published by this call.
        """
        count = 0
        for item in self.get_posts_ready_for_publishing():
            result = self.publish_scheduled(item.id)
            if result.success and result.changed:
                count += 1
        return count

    def get_publishing_history(self, item_id: UUID) -> list[HistoryEntry]:
        return self._activity.publishing_history(item_id)
