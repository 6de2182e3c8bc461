"""Tests for QueueManager status transitions and retry policy."""

import asyncio

import pytest

from scrapegnome.models.queue import QueueConfig, TaskQueryOptions, TaskResult, TaskStatus
from scrapegnome.queue.manager import CANCELED_MESSAGE, TIMEOUT_MESSAGE, QueueManager
from scrapegnome.queue.store import InMemoryTaskStore
from tests.helpers.fakes import fast_queue_config, make_tv_media, task_data


def make_manager(**overrides: object) -> QueueManager:
    return QueueManager(InMemoryTaskStore(), fast_queue_config(**overrides))


def success() -> TaskResult:
    return TaskResult(success=True, media=make_tv_media("Show"), processing_time=0.1)


def test_backoff_is_exponential_and_capped() -> None:
    manager = QueueManager(InMemoryTaskStore(), QueueConfig())
    assert [manager.retry_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]
    assert manager.retry_delay(20) == 300.0


@pytest.mark.asyncio
async def test_enqueue_uses_default_max_retries() -> None:
    manager = make_manager(default_max_retries=5)
    default_id = await manager.enqueue(task_data("a.mkv"))
    explicit_id = await manager.enqueue(task_data("b.mkv", max_retries=1))
    assert (await manager.get_task(default_id)).max_retries == 5
    assert (await manager.get_task(explicit_id)).max_retries == 1


@pytest.mark.asyncio
async def test_enqueue_tasks_preserves_order_across_batches() -> None:
    manager = make_manager(batch_size=2)
    ids = await manager.enqueue_tasks(task_data(f"{i}.mkv") for i in range(5))
    assert ids == [1, 2, 3, 4, 5]
    names = [(await manager.get_task(i)).file_name for i in ids]
    assert names == ["0.mkv", "1.mkv", "2.mkv", "3.mkv", "4.mkv"]


@pytest.mark.asyncio
async def test_dequeue_orders_by_priority_then_age() -> None:
    manager = make_manager()
    a = await manager.enqueue(task_data("a.mkv", priority=0))
    b = await manager.enqueue(task_data("b.mkv", priority=5))
    c = await manager.enqueue(task_data("c.mkv", priority=5))
    d = await manager.enqueue(task_data("d.mkv", priority=1))
    claimed = await manager.dequeue(limit=10)
    assert [t.id for t in claimed] == [b, c, d, a]
    assert all(t.status is TaskStatus.RUNNING for t in claimed)
    assert all(t.started_at is not None for t in claimed)
    assert await manager.dequeue() == []


@pytest.mark.asyncio
async def test_dequeue_is_capped_by_batch_size() -> None:
    manager = make_manager(batch_size=2)
    await manager.enqueue_tasks(task_data(f"{i}.mkv") for i in range(3))
    assert len(await manager.dequeue(limit=5)) == 2
    assert len(await manager.dequeue()) == 1


@pytest.mark.asyncio
async def test_failed_attempts_exhaust_retries() -> None:
    manager = make_manager(retry_delay=0.001, max_retry_delay=0.001)
    task_id = await manager.enqueue(task_data("a.mkv", max_retries=2))
    statuses = []
    for _ in range(3):
        await asyncio.sleep(0.01)
        [task] = await manager.dequeue()
        assert task.id == task_id
        statuses.append(await manager.fail_task(task_id, "boom"))
    assert statuses == [TaskStatus.PENDING, TaskStatus.PENDING, TaskStatus.FAILED]
    task = await manager.get_task(task_id)
    assert task.status is TaskStatus.FAILED
    assert task.retry_count == 2
    assert task.last_error == "boom"
    assert task.completed_at is not None
    await asyncio.sleep(0.01)
    assert await manager.dequeue() == []


@pytest.mark.asyncio
async def test_retry_waits_for_backoff() -> None:
    manager = make_manager(retry_delay=10.0, max_retry_delay=10.0)
    task_id = await manager.enqueue(task_data("a.mkv"))
    await manager.dequeue()
    assert await manager.fail_task(task_id, "boom") is TaskStatus.PENDING
    task = await manager.get_task(task_id)
    assert task.retry_count == 1
    assert task.next_retry_at is not None
    assert await manager.dequeue() == []


@pytest.mark.asyncio
async def test_complete_requires_running() -> None:
    manager = make_manager()
    task_id = await manager.enqueue(task_data("a.mkv"))
    assert await manager.complete_task(task_id, success()) is False
    await manager.dequeue()
    assert await manager.complete_task(task_id, success()) is True
    task = await manager.get_task(task_id)
    assert task.status is TaskStatus.COMPLETED
    assert task.result.media.title == "Show"
    assert await manager.fail_task(task_id, "late") is None


@pytest.mark.asyncio
async def test_cancel_running_ignores_late_outcome() -> None:
    manager = make_manager()
    task_id = await manager.enqueue(task_data("a.mkv"))
    await manager.dequeue()
    assert await manager.cancel_task(task_id) is True
    assert await manager.complete_task(task_id, success()) is False
    assert await manager.fail_task(task_id, "late") is None
    task = await manager.get_task(task_id)
    assert task.status is TaskStatus.CANCELED
    assert task.result is None
    assert task.last_error == CANCELED_MESSAGE
    assert await manager.cancel_task(task_id) is True


@pytest.mark.asyncio
async def test_cancel_rejects_finished_and_unknown_tasks() -> None:
    manager = make_manager()
    task_id = await manager.enqueue(task_data("a.mkv"))
    await manager.dequeue()
    await manager.complete_task(task_id, success())
    assert await manager.cancel_task(task_id) is False
    assert await manager.cancel_task(999) is False


@pytest.mark.asyncio
async def test_canceled_pending_task_is_never_dequeued() -> None:
    manager = make_manager()
    task_id = await manager.enqueue(task_data("a.mkv"))
    await manager.cancel_task(task_id)
    assert await manager.dequeue() == []


@pytest.mark.asyncio
async def test_retry_and_clear_failed_tasks() -> None:
    manager = make_manager()
    ids = await manager.enqueue_tasks(task_data(f"{i}.mkv", max_retries=0) for i in range(3))
    await manager.dequeue()
    for task_id in ids:
        assert await manager.fail_task(task_id, "boom") is TaskStatus.FAILED

    assert await manager.retry_task(ids[0]) is True
    task = await manager.get_task(ids[0])
    assert task.status is TaskStatus.PENDING
    assert task.retry_count == 0
    assert task.last_error is None
    assert await manager.retry_task(ids[0]) is False
    assert await manager.retry_task(999) is False

    assert await manager.retry_all_failed_tasks() == 2
    await manager.dequeue()
    for task_id in ids:
        await manager.fail_task(task_id, "again")
    assert await manager.clear_failed_tasks() == 3
    assert (await manager.get_stats()).total == 0


@pytest.mark.asyncio
async def test_stats_count_every_status() -> None:
    manager = make_manager(batch_size=2)
    done = await manager.enqueue(task_data("a.mkv"))
    failed = await manager.enqueue(task_data("b.mkv", max_retries=0))
    pending = await manager.enqueue(task_data("c.mkv"))
    await manager.dequeue()
    await manager.complete_task(done, success())
    await manager.fail_task(failed, "boom")
    await manager.cancel_task(pending)
    await manager.enqueue(task_data("d.mkv"))

    stats = await manager.get_stats()
    assert (stats.pending, stats.running) == (1, 0)
    assert (stats.completed, stats.failed, stats.canceled) == (1, 1, 1)
    assert stats.total == 4
    assert stats.average_processing_time is not None
    assert stats.average_processing_time >= 0


@pytest.mark.asyncio
async def test_get_tasks_filters_sorts_and_pages() -> None:
    manager = make_manager()
    for priority in (0, 5, 1):
        await manager.enqueue(task_data(f"p{priority}.mkv", priority=priority))
    page, total = await manager.get_tasks(
        TaskQueryOptions(sort_by="priority", sort_order="desc", limit=2, offset=1)
    )
    assert total == 3
    assert [t.priority for t in page] == [1, 0]

    await manager.dequeue(limit=1)
    running, total = await manager.get_tasks(
        TaskQueryOptions(status=TaskStatus.RUNNING)
    )
    assert total == 1
    assert running[0].file_name == "p5.mkv"

    oldest_first, _ = await manager.get_tasks(TaskQueryOptions(sort_order="asc"))
    assert [t.file_name for t in oldest_first] == ["p0.mkv", "p5.mkv", "p1.mkv"]


@pytest.mark.asyncio
async def test_cleanup_fails_stale_running_tasks() -> None:
    manager = make_manager(retry_delay=0.001, max_retry_delay=0.001)
    ids = await manager.enqueue_tasks(task_data(f"{i}.mkv") for i in range(2))
    await manager.dequeue()
    await asyncio.sleep(0.01)

    assert await manager.cleanup_timeout_tasks(timeout=0, exclude=[ids[1]]) == 1
    stale = await manager.get_task(ids[0])
    assert stale.status is TaskStatus.PENDING
    assert stale.retry_count == 1
    assert stale.last_error == TIMEOUT_MESSAGE
    assert (await manager.get_task(ids[1])).status is TaskStatus.RUNNING
    assert await manager.cleanup_timeout_tasks(timeout=3600) == 0
