import asyncio

import pytest

from swiffcore.core.services.task_registry import (
    ManagedTask,
    TaskRegistry,
    current_cancellation_token,
)
from swiffcore.domain.events.task_events import TaskCancelled, TaskFinished, TaskRegistered
from swiffcore.domain.models.tasks import TaskOutcome, TaskStatistics


async def _sleep_forever():
    await asyncio.sleep(3600)


@pytest.fixture
def registry(events):
    return TaskRegistry(event_sink=events.append)


def test_register_and_cancel(registry: TaskRegistry):
    async def scenario():
        task = ManagedTask("Backup Operation", _sleep_forever)
        registry.register(task)
        assert registry.active_count == 1
        assert registry.has_active

        assert registry.cancel(task.task_id) is True
        # Bookkeeping is updated before the work unwinds
        assert registry.active_count == 0
        assert task.token.is_cancelled
        with pytest.raises(asyncio.CancelledError):
            await task.value()
        return task

    task = asyncio.run(scenario())
    assert registry.cancelled_task_count == 1
    history = registry.get_history()
    assert len(history) == 1
    assert history[0].task_id == task.task_id
    assert history[0].outcome is TaskOutcome.CANCELLED


def test_cancel_unknown_id_is_noop(registry: TaskRegistry):
    assert registry.cancel("missing") is False
    assert registry.cancelled_task_count == 0


def test_register_duplicate_id_rejected(registry: TaskRegistry):
    async def scenario():
        task = ManagedTask("First", _sleep_forever, task_id="same")
        registry.register(task)
        duplicate = ManagedTask("Second", _sleep_forever, task_id="same")
        try:
            with pytest.raises(ValueError):
                registry.register(duplicate)
        finally:
            duplicate.cancel()
            registry.cancel_all()

    asyncio.run(scenario())


def test_cancel_all(registry: TaskRegistry):
    async def scenario():
        for i in range(4):
            registry.register(ManagedTask(f"Task {i}", _sleep_forever))
        before = registry.cancelled_task_count
        cancelled = registry.cancel_all()
        await asyncio.sleep(0)
        return before, cancelled

    before, cancelled = asyncio.run(scenario())
    assert cancelled == 4
    assert registry.active_count == 0
    assert registry.cancelled_task_count == before + 4


def test_cancel_all_on_empty_registry(registry: TaskRegistry):
    assert registry.cancel_all() == 0
    assert registry.cancelled_task_count == 0


def test_cancel_matching_is_case_insensitive(registry: TaskRegistry):
    async def scenario():
        registry.register(ManagedTask("Backup Operation", _sleep_forever))
        registry.register(ManagedTask("Sync Operation", _sleep_forever))
        cancelled = registry.cancel_matching("backup")
        remaining = registry.active_descriptions
        registry.cancel_all()
        return cancelled, remaining

    cancelled, remaining = asyncio.run(scenario())
    assert cancelled == 1
    assert remaining == ["Sync Operation"]


def test_run_managed_returns_result(registry: TaskRegistry, events):
    async def work():
        await asyncio.sleep(0.01)
        return 42

    result = asyncio.run(registry.run_managed("Compute", work))

    assert result == 42
    assert registry.active_count == 0
    assert registry.total_tasks_run == 1
    history = registry.get_history()
    assert [entry.outcome for entry in history] == [TaskOutcome.COMPLETED]
    assert isinstance(events[0], TaskRegistered)
    assert isinstance(events[-1], TaskFinished)
    assert events[-1].outcome == "completed"


def test_run_managed_propagates_errors(registry: TaskRegistry):
    async def work():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(registry.run_managed("Failing", work))

    assert registry.active_count == 0
    assert registry.cancelled_task_count == 0
    assert [entry.outcome for entry in registry.get_history()] == [TaskOutcome.FAILED]


def test_run_managed_cancelled_through_registry(registry: TaskRegistry, events):
    async def scenario():
        runner = asyncio.ensure_future(registry.run_managed("Long Backup", _sleep_forever))
        await asyncio.sleep(0.01)
        assert registry.cancel_matching("long") == 1
        with pytest.raises(asyncio.CancelledError):
            await runner

    asyncio.run(scenario())
    assert registry.cancelled_task_count == 1
    assert registry.total_tasks_run == 1
    assert [entry.outcome for entry in registry.get_history()] == [TaskOutcome.CANCELLED]
    assert sum(isinstance(e, TaskCancelled) for e in events) == 1


def test_run_managed_cancelled_by_caller(registry: TaskRegistry):
    async def scenario():
        runner = asyncio.ensure_future(registry.run_managed("Upload", _sleep_forever))
        await asyncio.sleep(0.01)
        runner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await runner

    asyncio.run(scenario())
    assert registry.active_count == 0
    assert registry.cancelled_task_count == 1
    assert [entry.outcome for entry in registry.get_history()] == [TaskOutcome.CANCELLED]


def test_cancellation_runs_cleanup(registry: TaskRegistry):
    cleaned_up = []

    async def work():
        try:
            await asyncio.sleep(3600)
        finally:
            cleaned_up.append(True)

    async def scenario():
        task = ManagedTask("Cleanup", work)
        registry.register(task)
        await asyncio.sleep(0)
        registry.cancel(task.task_id)
        with pytest.raises(asyncio.CancelledError):
            await task.value()

    asyncio.run(scenario())
    assert cleaned_up == [True]


def test_work_sees_its_cancellation_token(registry: TaskRegistry):
    async def scenario():
        seen = []

        async def work():
            seen.append(current_cancellation_token())

        task = ManagedTask("Token", work)
        await task.value()
        return task, seen

    task, seen = asyncio.run(scenario())
    assert seen == [task.token]
    assert current_cancellation_token() is None


def test_task_finishing_on_its_own_moves_to_history(registry: TaskRegistry):
    async def scenario():
        async def work():
            return "done"

        task = ManagedTask("Quick", work)
        registry.register(task)
        await task.value()
        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert registry.active_count == 0
    assert [entry.description for entry in registry.get_history()] == ["Quick"]


def test_run_managed_with_progress_forwards_in_order(registry: TaskRegistry):
    received = []

    async def work(progress):
        for value in (0.0, 0.25, 0.5, 1.0):
            progress(value)
            await asyncio.sleep(0)
        return "ok"

    result = asyncio.run(registry.run_managed_with_progress("Sync", work, received.append))

    assert result == "ok"
    assert received == [0.0, 0.25, 0.5, 1.0]


def test_history_is_bounded():
    registry = TaskRegistry(history_limit=3)

    async def work():
        return None

    async def scenario():
        for i in range(5):
            await registry.run_managed(f"Task {i}", work)

    asyncio.run(scenario())
    assert [entry.description for entry in registry.get_history()] == ["Task 2", "Task 3", "Task 4"]
    assert registry.total_tasks_run == 5


def test_statistics_and_reset(registry: TaskRegistry):
    async def work():
        return None

    async def scenario():
        await registry.run_managed("One", work)
        await registry.run_managed("Two", work)
        registry.register(ManagedTask("Three", _sleep_forever))
        registry.cancel_all()

    asyncio.run(scenario())
    stats = registry.get_statistics()
    assert stats == TaskStatistics(total_tasks_run=3, cancelled_tasks=1, active_tasks=0)
    assert stats.completion_rate == pytest.approx(2 / 3)
    assert "Completion Rate: 66.7%" in stats.description

    registry.reset_statistics()
    assert registry.get_statistics().total_tasks_run == 0
    # History is independent of the counters
    assert len(registry.get_history()) == 3

    registry.clear_history()
    assert registry.get_history() == []


def test_completion_rate_with_no_tasks():
    assert TaskStatistics(0, 0, 0).completion_rate == 0.0
