"""Task storage interface and the in-memory implementation.

The queue only needs create/read/update/delete keyed by task id. Persistent
stores live outside this package and implement TaskStore.
"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from datetime import datetime

from scrapegnome.models.queue import ScrapingTask, ScrapingTaskData, TaskStatus


class TaskStore(ABC):
    """CRUD interface for ScrapingTask records."""

    @abstractmethod
    async def create(self, data: ScrapingTaskData, max_retries: int) -> ScrapingTask:
        """Persist a new PENDING task and return it with its assigned id."""
        raise NotImplementedError

    @abstractmethod
    async def get(self, task_id: int) -> ScrapingTask | None:
        """Return the task, or None if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def save(self, task: ScrapingTask) -> None:
        """Overwrite the stored task with the same id."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, task_id: int) -> bool:
        """Delete the task; return False if it did not exist."""
        raise NotImplementedError

    @abstractmethod
    async def list_tasks(self, status: TaskStatus | None = None) -> list[ScrapingTask]:
        """Return all tasks, optionally only those with *status*."""
        raise NotImplementedError


class InMemoryTaskStore(TaskStore):
    """Dict-backed TaskStore.

    Tasks are copied on the way in and out so callers never hold a reference
    to stored state.
    """

    def __init__(self) -> None:
        self._tasks: dict[int, ScrapingTask] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def create(self, data: ScrapingTaskData, max_retries: int) -> ScrapingTask:
        async with self._lock:
            task = ScrapingTask(
                id=next(self._ids),
                file_path=data.file_path,
                file_name=data.file_name,
                is_directory=data.is_directory,
                priority=data.priority,
                max_retries=max_retries,
                created_at=datetime.now(),
            )
            self._tasks[task.id] = task
            return task.model_copy(deep=True)

    async def get(self, task_id: int) -> ScrapingTask | None:
        async with self._lock:
            task = self._tasks.get(task_id)
            return task.model_copy(deep=True) if task else None

    async def save(self, task: ScrapingTask) -> None:
        async with self._lock:
            if task.id not in self._tasks:
                raise KeyError(task.id)
            self._tasks[task.id] = task.model_copy(deep=True)

    async def delete(self, task_id: int) -> bool:
        async with self._lock:
            return self._tasks.pop(task_id, None) is not None

    async def list_tasks(self, status: TaskStatus | None = None) -> list[ScrapingTask]:
        async with self._lock:
            return [
                task.model_copy(deep=True)
                for task in self._tasks.values()
                if status is None or task.status == status
            ]

    def __len__(self) -> int:
        return len(self._tasks)
