"""Task worker: a bounded pool of asyncio tasks fed by one dispatcher.

The dispatcher claims at most ``concurrency - in_flight`` tasks per cycle from
the QueueManager, so no more than ``concurrency`` attempts ever run at once.
Each attempt runs under ``processing_timeout``; a timeout counts as an
ordinary failed attempt. A periodic cleanup pass fails stale RUNNING tasks
that no live attempt owns.
"""

import asyncio
import logging

from scrapegnome.core.errors import ProcessingTimeoutError
from scrapegnome.models.queue import QueueConfig, ScrapingTask
from scrapegnome.queue.manager import QueueManager
from scrapegnome.queue.processor import TaskProcessor

logger = logging.getLogger(__name__)


class TaskWorker:
    """Dispatches queued tasks to the processor with bounded concurrency."""

    def __init__(
        self,
        manager: QueueManager,
        processor: TaskProcessor,
        config: QueueConfig | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.manager = manager
        self.processor = processor
        self.config = config or manager.config
        self.log = log or logger
        self._in_flight: dict[int, asyncio.Task[None]] = {}
        self._dispatcher: asyncio.Task[None] | None = None
        self._cleanup: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._dispatcher is not None and not self._dispatcher.done()

    @property
    def in_flight_ids(self) -> list[int]:
        """Ids of tasks with an attempt currently running in this worker."""
        return list(self._in_flight)

    async def start(self) -> None:
        if self.is_running:
            self.log.warning("Worker already running")
            return
        self._stopping = asyncio.Event()
        self._dispatcher = asyncio.create_task(self._dispatch_loop())
        self._cleanup = asyncio.create_task(self._cleanup_loop())
        self.log.info("Worker started with concurrency %d", self.config.concurrency)

    async def stop(self) -> None:
        """Stop dispatching and wait for in-flight attempts to finish."""
        if not self.is_running:
            return
        self.log.info("Stopping worker...")
        self._stopping.set()
        await asyncio.gather(
            *(t for t in (self._dispatcher, self._cleanup) if t is not None),
            return_exceptions=True,
        )
        if self._in_flight:
            await asyncio.gather(*self._in_flight.values(), return_exceptions=True)
        self._dispatcher = None
        self._cleanup = None
        self.log.info("Worker stopped")

    async def update_config(self, config: QueueConfig) -> None:
        """Apply new settings; restart the pool if concurrency changed."""
        old = self.config
        self.config = config
        self.log.info("Worker config updated: %s -> %s", old, config)
        if self.is_running and old.concurrency != config.concurrency:
            self.log.info(
                "Concurrency changed %d -> %d; restarting worker",
                old.concurrency,
                config.concurrency,
            )
            await self.stop()
            await self.start()

    def cancel_running(self, task_id: int) -> bool:
        """Cancel the in-flight attempt for *task_id*, if any."""
        attempt = self._in_flight.get(task_id)
        if attempt is None:
            return False
        attempt.cancel()
        return True

    async def _sleep(self, seconds: float) -> None:
        # Returns early when stop() is requested.
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _dispatch_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                free = self.config.concurrency - len(self._in_flight)
                if free <= 0:
                    await asyncio.wait(
                        set(self._in_flight.values()),
                        timeout=self.config.queue_poll_interval,
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                    continue
                tasks = await self.manager.dequeue(limit=free)
                if not tasks:
                    await self._sleep(self.config.queue_poll_interval)
                    continue
                for task in tasks:
                    self._in_flight[task.id] = asyncio.create_task(self._run(task))
            except Exception:
                self.log.exception("Unexpected error in dispatcher")
                await self._sleep(self.config.error_retry_interval)

    async def _run(self, task: ScrapingTask) -> None:
        try:
            try:
                result = await asyncio.wait_for(
                    self.processor.process(task),
                    timeout=self.config.processing_timeout,
                )
            except asyncio.TimeoutError:
                error = ProcessingTimeoutError(
                    f"Processing exceeded {self.config.processing_timeout}s"
                )
                self.log.error("Task %d timed out", task.id)
                await self.manager.fail_task(task.id, str(error))
                return
            if result.success:
                await self.manager.complete_task(task.id, result)
            else:
                await self.manager.fail_task(
                    task.id, result.error or "Processing failed", result
                )
        except asyncio.CancelledError:
            self.log.info("Attempt for task %d canceled", task.id)
            raise
        except Exception:
            self.log.exception("Could not record outcome of task %d", task.id)
        finally:
            self._in_flight.pop(task.id, None)

    async def _cleanup_loop(self) -> None:
        while not self._stopping.is_set():
            await self._sleep(self.config.timeout_cleanup_interval)
            if self._stopping.is_set():
                break
            try:
                await self.manager.cleanup_timeout_tasks(
                    self.config.processing_timeout, exclude=self.in_flight_ids
                )
            except Exception:
                self.log.exception("Timeout cleanup failed")
