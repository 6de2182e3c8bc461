"""Tests for the in-memory task store."""

import pytest

from scrapegnome.models.queue import TaskStatus
from scrapegnome.queue.store import InMemoryTaskStore
from tests.helpers.fakes import task_data


@pytest.mark.asyncio
async def test_create_assigns_increasing_ids() -> None:
    store = InMemoryTaskStore()
    first = await store.create(task_data("a.mkv"), max_retries=3)
    second = await store.create(task_data("b.mkv", priority=2), max_retries=1)
    assert (first.id, second.id) == (1, 2)
    assert second.priority == 2
    assert second.max_retries == 1
    assert first.status is TaskStatus.PENDING
    assert len(store) == 2


@pytest.mark.asyncio
async def test_tasks_are_copied_in_and_out() -> None:
    store = InMemoryTaskStore()
    task = await store.create(task_data("a.mkv"), max_retries=3)
    task.status = TaskStatus.RUNNING
    assert (await store.get(task.id)).status is TaskStatus.PENDING
    await store.save(task)
    task.status = TaskStatus.FAILED
    assert (await store.get(task.id)).status is TaskStatus.RUNNING


@pytest.mark.asyncio
async def test_save_unknown_task_raises() -> None:
    store = InMemoryTaskStore()
    task = await store.create(task_data("a.mkv"), max_retries=3)
    await store.delete(task.id)
    with pytest.raises(KeyError):
        await store.save(task)


@pytest.mark.asyncio
async def test_delete_and_list() -> None:
    store = InMemoryTaskStore()
    a = await store.create(task_data("a.mkv"), max_retries=3)
    b = await store.create(task_data("b.mkv"), max_retries=3)
    b.status = TaskStatus.COMPLETED
    await store.save(b)
    assert [t.id for t in await store.list_tasks(TaskStatus.PENDING)] == [a.id]
    assert len(await store.list_tasks()) == 2
    assert await store.delete(a.id) is True
    assert await store.delete(a.id) is False
    assert await store.get(a.id) is None
