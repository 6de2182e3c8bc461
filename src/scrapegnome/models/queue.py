"""Queue domain models: scraping tasks, their results, and queue settings.

State machine for a ScrapingTask::

    PENDING -> RUNNING -> COMPLETED
                       -> PENDING   (failure with retries left, waits for next_retry_at)
                       -> FAILED    (failure with retries exhausted, terminal)
    PENDING | RUNNING -> CANCELED   (explicit cancellation, terminal)

All durations in QueueConfig are seconds.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator

from scrapegnome.models.core import DetailedMedia


class TaskStatus(str, Enum):
    """Lifecycle status of a scraping task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELED}
)


class ScrapingTaskData(BaseModel):
    """Request to enqueue one file or folder for identification."""

    file_path: str
    file_name: str
    is_directory: bool = False
    priority: int = 0
    max_retries: int | None = None


class TaskResult(BaseModel):
    """Outcome of a single processing attempt."""

    success: bool
    media: DetailedMedia | None = None
    error: str | None = None
    processing_time: float | None = None
    """Attempt duration in seconds."""


class ScrapingTask(BaseModel):
    """One unit of retryable resolution work tracked by the scheduler."""

    id: int
    file_path: str
    file_name: str
    is_directory: bool = False
    status: TaskStatus = TaskStatus.PENDING
    priority: int = 0
    retry_count: int = 0
    max_retries: int = 3
    last_error: str | None = None
    result: TaskResult | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    next_retry_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        """Whether the task can no longer change status on its own."""
        return self.status in TERMINAL_STATUSES


class QueueConfig(BaseModel):
    """Scheduler configuration."""

    concurrency: int = Field(default=1, gt=0)
    retry_delay: float = Field(default=1.0, gt=0)
    max_retry_delay: float = Field(default=300.0, gt=0)
    backoff_factor: float = Field(default=2.0, gt=0)
    default_max_retries: int = Field(default=3, gt=0)
    processing_timeout: float = Field(default=300.0, gt=0)
    batch_size: int = Field(default=10, gt=0)
    queue_poll_interval: float = Field(default=1.0, gt=0)
    error_retry_interval: float = Field(default=5.0, gt=0)
    timeout_cleanup_interval: float = Field(default=60.0, gt=0)

    @model_validator(mode="after")
    def check_retry_delays(self) -> Self:
        """Ensure the base retry delay does not exceed the cap."""
        if self.retry_delay > self.max_retry_delay:
            raise ValueError("retry_delay must not exceed max_retry_delay")
        return self


class QueueStats(BaseModel):
    """Counts per status plus the mean processing time of completed tasks."""

    pending: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0
    canceled: int = 0
    total: int = 0
    average_processing_time: float | None = None
    """Mean of ``completed_at - started_at`` in seconds."""


class TaskQueryOptions(BaseModel):
    """Filtering, sorting and paging options for task listings."""

    status: TaskStatus | None = None
    limit: int = Field(default=50, gt=0)
    offset: int = Field(default=0, ge=0)
    sort_by: Literal["created_at", "priority", "updated_at"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
