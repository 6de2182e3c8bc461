"""Queue service: the facade collaborators use to drive the scraping queue.

Wires a TaskStore, QueueManager, TaskProcessor and TaskWorker together and
exposes the queue operations (enqueue, inspect, retry, cancel, reconfigure).
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from scrapegnome.core.resolver import MediaResolver
from scrapegnome.models.queue import (
    QueueConfig,
    QueueStats,
    ScrapingTask,
    ScrapingTaskData,
    TaskQueryOptions,
)
from scrapegnome.queue.manager import QueueManager
from scrapegnome.queue.processor import TaskProcessor
from scrapegnome.queue.store import InMemoryTaskStore, TaskStore
from scrapegnome.queue.worker import TaskWorker

logger = logging.getLogger(__name__)


class QueueService:
    """High-level queue API.

    Usable as an async context manager, which starts the worker on entry and
    stops it (waiting for in-flight attempts) on exit.
    """

    def __init__(
        self,
        resolver: MediaResolver,
        config: QueueConfig | None = None,
        store: TaskStore | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.config = config or QueueConfig()
        self.log = log or logger
        self.manager = QueueManager(store or InMemoryTaskStore(), self.config, self.log)
        self.worker = TaskWorker(
            self.manager, TaskProcessor(resolver, self.log), self.config, self.log
        )

    async def __aenter__(self) -> "QueueService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def start(self) -> None:
        await self.worker.start()

    async def stop(self) -> None:
        await self.worker.stop()

    @property
    def is_running(self) -> bool:
        return self.worker.is_running

    async def enqueue_task(self, data: ScrapingTaskData) -> int:
        return await self.manager.enqueue(data)

    async def enqueue_tasks(self, items: Iterable[ScrapingTaskData]) -> list[int]:
        return await self.manager.enqueue_tasks(items)

    async def get_task(self, task_id: int) -> ScrapingTask | None:
        return await self.manager.get_task(task_id)

    async def get_stats(self) -> QueueStats:
        return await self.manager.get_stats()

    async def get_tasks(
        self, options: TaskQueryOptions | None = None
    ) -> tuple[list[ScrapingTask], int]:
        return await self.manager.get_tasks(options)

    async def retry_task(self, task_id: int) -> bool:
        return await self.manager.retry_task(task_id)

    async def retry_all_failed_tasks(self) -> int:
        return await self.manager.retry_all_failed_tasks()

    async def clear_failed_tasks(self) -> int:
        return await self.manager.clear_failed_tasks()

    async def cancel_task(self, task_id: int) -> bool:
        """Cancel a task; a running attempt is interrupted cooperatively."""
        canceled = await self.manager.cancel_task(task_id)
        if canceled:
            self.worker.cancel_running(task_id)
        return canceled

    async def delete_task(self, task_id: int) -> bool:
        self.worker.cancel_running(task_id)
        return await self.manager.delete_task(task_id)

    async def cleanup_timeout_tasks(self, timeout: float | None = None) -> int:
        return await self.manager.cleanup_timeout_tasks(
            timeout, exclude=self.worker.in_flight_ids
        )

    async def update_config(self, **changes: Any) -> QueueConfig:
        """Validate and apply new queue settings.

        Raises:
            pydantic.ValidationError: If the merged settings are invalid.
        """
        config = QueueConfig.model_validate({**self.config.model_dump(), **changes})
        self.config = config
        self.manager.update_config(config)
        await self.worker.update_config(config)
        self.log.info("Queue config updated: %s", changes)
        return config

    async def run_until_idle(self, timeout: float | None = None) -> QueueStats:
        """Run the worker until no task is PENDING or RUNNING.

        Starts the worker if needed and returns the final stats. Raises
        TimeoutError if *timeout* seconds pass first.
        """
        if not self.is_running:
            await self.start()

        async def drain() -> QueueStats:
            while True:
                stats = await self.get_stats()
                if stats.pending == 0 and stats.running == 0:
                    return stats
                await asyncio.sleep(self.config.queue_poll_interval)

        return await asyncio.wait_for(drain(), timeout=timeout)
