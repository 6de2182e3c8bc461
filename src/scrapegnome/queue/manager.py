"""Queue manager: the single writer of task status.

Every status transition is a compare-and-swap under one asyncio lock: the
manager re-reads the task, checks the expected status and only then saves.
That is what guarantees a task id is RUNNING in at most one worker, and that
a task canceled mid-flight never receives a late result.

Retry policy (per failed attempt)::

    if retry_count < max_retries:
        delay = min(retry_delay * backoff_factor ** retry_count, max_retry_delay)
        retry_count += 1; status = PENDING; next_retry_at = now + delay
    else:
        status = FAILED (terminal); completed_at = now
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from scrapegnome.models.queue import (
    QueueConfig,
    QueueStats,
    ScrapingTask,
    ScrapingTaskData,
    TaskQueryOptions,
    TaskResult,
    TaskStatus,
)
from scrapegnome.queue.store import TaskStore

logger = logging.getLogger(__name__)

CANCELED_MESSAGE = "Canceled by user"
TIMEOUT_MESSAGE = "Processing timed out"


class QueueManager:
    """Owns task state transitions on top of a TaskStore."""

    def __init__(
        self,
        store: TaskStore,
        config: QueueConfig | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.config = config or QueueConfig()
        self.log = log or logger
        self._lock = asyncio.Lock()

    def update_config(self, config: QueueConfig) -> None:
        self.config = config

    def retry_delay(self, retry_count: int) -> float:
        """Backoff delay in seconds before the next attempt."""
        delay = self.config.retry_delay * self.config.backoff_factor**retry_count
        return min(delay, self.config.max_retry_delay)

    async def enqueue(self, data: ScrapingTaskData) -> int:
        """Add one task and return its id."""
        max_retries = (
            data.max_retries
            if data.max_retries is not None
            else self.config.default_max_retries
        )
        task = await self.store.create(data, max_retries)
        self.log.info("Enqueued task %d: %s", task.id, task.file_name)
        return task.id

    async def enqueue_tasks(self, items: Iterable[ScrapingTaskData]) -> list[int]:
        """Add many tasks, in chunks of ``batch_size``, preserving order."""
        items = list(items)
        ids: list[int] = []
        size = self.config.batch_size
        for start in range(0, len(items), size):
            batch = items[start : start + size]
            async with self._lock:
                for data in batch:
                    ids.append(await self.enqueue(data))
            self.log.debug("Enqueued batch of %d tasks", len(batch))
        return ids

    async def dequeue(self, limit: int | None = None) -> list[ScrapingTask]:
        """Claim up to *limit* (at most ``batch_size``) due PENDING tasks.

        Tasks are ordered by priority (highest first), then enqueue order.
        Claimed tasks are RUNNING with ``started_at`` set.
        """
        limit = min(limit or self.config.batch_size, self.config.batch_size)
        now = datetime.now()
        async with self._lock:
            due = [
                task
                for task in await self.store.list_tasks(TaskStatus.PENDING)
                if task.next_retry_at is None or task.next_retry_at <= now
            ]
            due.sort(key=lambda t: (-t.priority, t.created_at, t.id))
            claimed = []
            for task in due[:limit]:
                task.status = TaskStatus.RUNNING
                task.started_at = now
                task.updated_at = now
                task.next_retry_at = None
                await self.store.save(task)
                claimed.append(task)
        return claimed

    async def complete_task(self, task_id: int, result: TaskResult) -> bool:
        """Mark a RUNNING task COMPLETED. Returns False if it is no longer RUNNING."""
        async with self._lock:
            task = await self._running_task(task_id, "complete")
            if task is None:
                return False
            now = datetime.now()
            task.status = TaskStatus.COMPLETED
            task.result = result
            task.last_error = None
            task.completed_at = now
            task.updated_at = now
            await self.store.save(task)
        self.log.info("Task %d completed", task_id)
        return True

    async def fail_task(
        self, task_id: int, error: str, result: TaskResult | None = None
    ) -> TaskStatus | None:
        """Record a failed attempt of a RUNNING task.

        Returns:
            PENDING if a retry was scheduled, FAILED if retries are exhausted,
            None if the task was no longer RUNNING (canceled or deleted).
        """
        async with self._lock:
            task = await self._running_task(task_id, "fail")
            if task is None:
                return None
            self._record_failure(task, error, result)
            await self.store.save(task)
        return task.status

    def _record_failure(
        self, task: ScrapingTask, error: str, result: TaskResult | None
    ) -> None:
        now = datetime.now()
        task.last_error = error
        task.result = result
        task.updated_at = now
        if task.retry_count < task.max_retries:
            delay = self.retry_delay(task.retry_count)
            task.retry_count += 1
            task.status = TaskStatus.PENDING
            task.next_retry_at = now + timedelta(seconds=delay)
            self.log.warning(
                "Task %d failed (attempt %d/%d), retrying in %.1fs: %s",
                task.id,
                task.retry_count,
                task.max_retries,
                delay,
                error,
            )
        else:
            task.status = TaskStatus.FAILED
            task.next_retry_at = None
            task.completed_at = now
            self.log.error(
                "Task %d failed permanently after %d retries: %s",
                task.id,
                task.retry_count,
                error,
            )

    async def _running_task(self, task_id: int, action: str) -> ScrapingTask | None:
        task = await self.store.get(task_id)
        if task is None:
            self.log.warning("Cannot %s task %d: it no longer exists", action, task_id)
            return None
        if task.status != TaskStatus.RUNNING:
            self.log.info(
                "Ignoring %s for task %d in status %s", action, task_id, task.status.value
            )
            return None
        return task

    async def get_task(self, task_id: int) -> ScrapingTask | None:
        return await self.store.get(task_id)

    async def get_stats(self) -> QueueStats:
        """Count tasks per status and average completed processing time."""
        tasks = await self.store.list_tasks()
        counts = {status: 0 for status in TaskStatus}
        durations = []
        for task in tasks:
            counts[task.status] += 1
            if (
                task.status == TaskStatus.COMPLETED
                and task.started_at is not None
                and task.completed_at is not None
            ):
                durations.append((task.completed_at - task.started_at).total_seconds())
        return QueueStats(
            pending=counts[TaskStatus.PENDING],
            running=counts[TaskStatus.RUNNING],
            completed=counts[TaskStatus.COMPLETED],
            failed=counts[TaskStatus.FAILED],
            canceled=counts[TaskStatus.CANCELED],
            total=len(tasks),
            average_processing_time=(
                sum(durations) / len(durations) if durations else None
            ),
        )

    async def get_tasks(
        self, options: TaskQueryOptions | None = None
    ) -> tuple[list[ScrapingTask], int]:
        """List tasks filtered, sorted and paged; also return the filtered total."""
        options = options or TaskQueryOptions()
        tasks = await self.store.list_tasks(options.status)

        def sort_key(task: ScrapingTask) -> tuple:
            value = getattr(task, options.sort_by)
            if value is None:
                value = task.created_at
            return (value, task.id)

        tasks.sort(key=sort_key, reverse=options.sort_order == "desc")
        page = tasks[options.offset : options.offset + options.limit]
        return page, len(tasks)

    async def retry_task(self, task_id: int) -> bool:
        """Reset a FAILED task to PENDING with a fresh retry budget."""
        async with self._lock:
            task = await self.store.get(task_id)
            if task is None:
                self.log.error("Cannot retry task %d: not found", task_id)
                return False
            if task.status != TaskStatus.FAILED:
                self.log.error(
                    "Only failed tasks can be retried: task %d is %s",
                    task_id,
                    task.status.value,
                )
                return False
            self._reset(task)
            await self.store.save(task)
        self.log.info("Task %d re-queued", task_id)
        return True

    def _reset(self, task: ScrapingTask) -> None:
        task.status = TaskStatus.PENDING
        task.retry_count = 0
        task.last_error = None
        task.next_retry_at = None
        task.started_at = None
        task.completed_at = None
        task.updated_at = datetime.now()

    async def cancel_task(self, task_id: int) -> bool:
        """Cancel a PENDING or RUNNING task.

        Returns True if the task is canceled afterwards (including when it
        already was), False if it does not exist or already finished.
        """
        async with self._lock:
            task = await self.store.get(task_id)
            if task is None:
                self.log.error("Cannot cancel task %d: not found", task_id)
                return False
            if task.status == TaskStatus.CANCELED:
                return True
            if task.status not in (TaskStatus.PENDING, TaskStatus.RUNNING):
                self.log.error(
                    "Cannot cancel task %d in status %s", task_id, task.status.value
                )
                return False
            now = datetime.now()
            task.status = TaskStatus.CANCELED
            task.last_error = CANCELED_MESSAGE
            task.next_retry_at = None
            task.completed_at = now
            task.updated_at = now
            await self.store.save(task)
        self.log.info("Task %d canceled", task_id)
        return True

    async def retry_all_failed_tasks(self) -> int:
        """Re-queue every FAILED task; return how many were reset."""
        async with self._lock:
            failed = await self.store.list_tasks(TaskStatus.FAILED)
            for task in failed:
                self._reset(task)
                await self.store.save(task)
        self.log.info("Re-queued %d failed tasks", len(failed))
        return len(failed)

    async def clear_failed_tasks(self) -> int:
        """Delete every FAILED task; return how many were removed."""
        async with self._lock:
            failed = await self.store.list_tasks(TaskStatus.FAILED)
            for task in failed:
                await self.store.delete(task.id)
        self.log.info("Cleared %d failed tasks", len(failed))
        return len(failed)

    async def delete_task(self, task_id: int) -> bool:
        async with self._lock:
            return await self.store.delete(task_id)

    async def cleanup_timeout_tasks(
        self, timeout: float | None = None, exclude: Iterable[int] = ()
    ) -> int:
        """Fail RUNNING tasks that started more than *timeout* seconds ago.

        Stale tasks go through the normal failure path, so they are retried
        while their budget lasts. Ids in *exclude* (attempts still owned by a
        live worker) are left alone.
        """
        timeout = timeout if timeout is not None else self.config.processing_timeout
        cutoff = datetime.now() - timedelta(seconds=timeout)
        skip = set(exclude)
        cleaned = 0
        async with self._lock:
            for task in await self.store.list_tasks(TaskStatus.RUNNING):
                if task.id in skip or task.started_at is None:
                    continue
                if task.started_at < cutoff:
                    self._record_failure(task, TIMEOUT_MESSAGE, None)
                    await self.store.save(task)
                    cleaned += 1
        if cleaned:
            self.log.warning("Cleaned up %d timed-out tasks", cleaned)
        return cleaned
