"""Runs one resolution attempt for a task and reports it as a TaskResult."""

import logging
import time

from scrapegnome.core.resolver import MediaResolver
from scrapegnome.models.queue import ScrapingTask, TaskResult

logger = logging.getLogger(__name__)


class TaskProcessor:
    """Turns a ScrapingTask into a TaskResult via the resolver.

    Errors never escape ``process``: any failure becomes an unsuccessful
    TaskResult carrying the error message. Cancellation is not caught.
    """

    def __init__(self, resolver: MediaResolver, log: logging.Logger | None = None):
        self.resolver = resolver
        self.log = log or logger

    async def process(self, task: ScrapingTask) -> TaskResult:
        start = time.perf_counter()
        self.log.info("Processing task %d: %s", task.id, task.file_name)
        try:
            media = await self.resolver.resolve(
                task.file_name, task.is_directory, task.file_path
            )
        except Exception as exc:
            elapsed = time.perf_counter() - start
            self.log.error("Task %d failed: %s", task.id, exc)
            return TaskResult(
                success=False,
                error=str(exc) or type(exc).__name__,
                processing_time=elapsed,
            )
        elapsed = time.perf_counter() - start
        self.log.info(
            "Task %d identified as %s %r in %.2fs",
            task.id,
            media.kind,
            media.display_name,
            elapsed,
        )
        return TaskResult(success=True, media=media, processing_time=elapsed)
