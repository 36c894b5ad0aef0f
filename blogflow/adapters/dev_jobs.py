"""
Dev Task Queue Adapter.

In-process delayed task queue for development and testing. Implements
TaskQueuePort with at-least-once delivery: a task whose work raises is put
back with backoff until max_attempts is reached.

Production deployments hand enqueue() to a real broker; this provides
equivalent behaviour for local runs and a background poller that also
drives the periodic scheduled-post sweep.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from uuid import uuid4

from blogflow.ports.clock import ClockPort

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """Task execution result status."""

    SUCCESS = "success"
    RETRY = "retry"
    FAILURE = "failure"


@dataclass
class JobResult:
    """Result of one task execution attempt."""

    status: JobStatus
    task_id: str
    name: str = ""
    error: str | None = None
    execution_time_ms: int = 0


@dataclass
class BatchResult:
    """Result of running all due tasks."""

    total_processed: int
    succeeded: int
    retried: int
    failed: int
    results: list[JobResult]


@dataclass(order=True)
class QueuedTask:
    not_before: datetime
    seq: int
    task_id: str = field(compare=False)
    name: str = field(compare=False)
    work: Callable[[], object] = field(compare=False, repr=False)
    attempts: int = field(default=0, compare=False)


class DevTaskQueue:
    """Heap-backed delayed task queue."""

    def __init__(
        self,
        clock: ClockPort,
        max_attempts: int = 3,
        backoff_seconds: Sequence[int] = (30, 60, 120),
    ) -> None:
        self._clock = clock
        self._max_attempts = max_attempts
        self._backoff_seconds = tuple(backoff_seconds) or (0,)
        self._heap: list[QueuedTask] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def enqueue(
        self,
        work: Callable[[], object],
        not_before: datetime,
        name: str = "",
    ) -> str:
        task = QueuedTask(
            not_before=not_before,
            seq=next(self._seq),
            task_id=uuid4().hex,
            name=name,
            work=work,
        )
        with self._lock:
            heapq.heappush(self._heap, task)
        logger.debug("Queued task %s (%s) for %s", task.task_id, name, not_before.isoformat())
        return task.task_id

    def pending(self) -> list[QueuedTask]:
        with self._lock:
            return sorted(self._heap)

    def run_due(self, now: datetime | None = None) -> BatchResult:
        """Execute every task whose not_before has been reached."""
        now = now or self._clock.now()
        due: list[QueuedTask] = []
        with self._lock:
            while self._heap and self._heap[0].not_before <= now:
                due.append(heapq.heappop(self._heap))

        results = [self._execute(task, now) for task in due]
        return BatchResult(
            total_processed=len(results),
            succeeded=sum(1 for r in results if r.status == JobStatus.SUCCESS),
            retried=sum(1 for r in results if r.status == JobStatus.RETRY),
            failed=sum(1 for r in results if r.status == JobStatus.FAILURE),
            results=results,
        )

    def _execute(self, task: QueuedTask, now: datetime) -> JobResult:
        start_time = time.monotonic()
        task.attempts += 1
        try:
            task.work()
        except Exception as e:
            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            if task.attempts < self._max_attempts:
                index = min(task.attempts - 1, len(self._backoff_seconds) - 1)
                task.not_before = now + timedelta(seconds=self._backoff_seconds[index])
                task.seq = next(self._seq)
                with self._lock:
                    heapq.heappush(self._heap, task)
                logger.warning(
                    "Task %s (%s) failed on attempt %d, retrying at %s: %s",
                    task.task_id,
                    task.name,
                    task.attempts,
                    task.not_before.isoformat(),
                    e,
                )
                return JobResult(JobStatus.RETRY, task.task_id, task.name, str(e), elapsed_ms)

            logger.error(
                "Task %s (%s) failed permanently after %d attempts",
                task.task_id,
                task.name,
                task.attempts,
                exc_info=True,
            )
            return JobResult(JobStatus.FAILURE, task.task_id, task.name, str(e), elapsed_ms)

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        return JobResult(JobStatus.SUCCESS, task.task_id, task.name, None, elapsed_ms)


class DevTaskScheduler:
    """
    Background poller.

    Each tick delivers due queued tasks and then runs the periodic sweep
    (normally PublishingWorkflowService.process_scheduled_posts).
    """

    def __init__(
        self,
        queue: DevTaskQueue,
        sweep: Callable[[], int] | None = None,
        poll_interval_seconds: float = 60.0,
    ) -> None:
        self._queue = queue
        self._sweep = sweep
        self._poll_interval = poll_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def start(self) -> None:
        """Start the background scheduler."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll_loop, daemon=True)
        self._thread.start()
        self._running = True
        logger.info("Dev scheduler started (poll interval: %.1fs)", self._poll_interval)

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info("Dev scheduler stopped")

    def trigger_now(self) -> tuple[BatchResult, int]:
        """Run one tick immediately. Returns (queue batch, items swept)."""
        batch = self._queue.run_due()
        swept = self._sweep() if self._sweep else 0
        return batch, swept

    @property
    def is_running(self) -> bool:
        return self._running

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._poll_interval):
            try:
                batch, swept = self.trigger_now()
                if batch.total_processed or swept:
                    logger.info(
                        "Scheduler tick: %d tasks (%d ok, %d retry, %d failed), %d swept",
                        batch.total_processed,
                        batch.succeeded,
                        batch.retried,
                        batch.failed,
                        swept,
                    )
            except Exception:
                logger.exception("Error in scheduler poll loop")
