"""Registry for in-flight asynchronous work.

Tracks managed tasks by identifier, supports single, bulk and
description-based cancellation, keeps completion statistics and a bounded
history, and runs progress-reporting work on behalf of callers.

Cancellation is cooperative: the registry flips the task's cancellation
token and requests asyncio cancellation, which the work observes at its
next suspension point. The registry's bookkeeping is updated immediately
and does not wait for the work to unwind.
"""

import asyncio
import contextvars
import logging
import time
import uuid
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Generic, List, Optional, TypeVar

from swiffcore.domain.events.base import DomainEvent, EventSink
from swiffcore.domain.events.task_events import TaskCancelled, TaskFinished, TaskRegistered
from swiffcore.domain.models.common import ProgressCallback, TaskID
from swiffcore.domain.models.tasks import TaskHistoryEntry, TaskOutcome, TaskStatistics

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HISTORY_LIMIT = 100

_current_token: "contextvars.ContextVar[Optional[CancellationToken]]" = contextvars.ContextVar(
    "swiffcore_cancellation_token", default=None
)


def current_cancellation_token() -> Optional["CancellationToken"]:
    """Returns the token of the managed task running the caller, if any."""
    return _current_token.get()


class CancellationToken:
    """Flag set by the registry when cancellation of a task is requested."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        """Checkpoint for work that does not otherwise suspend."""
        if self._cancelled:
            raise asyncio.CancelledError()


class ManagedTask(Generic[T]):
    """An asyncio task with an identifier, a description and a cancellation token.

    The work starts running as soon as the ManagedTask is created, so it must
    be constructed inside a running event loop.
    """

    def __init__(
        self,
        description: str,
        work: Callable[[], Awaitable[T]],
        task_id: Optional[TaskID] = None,
    ):
        self.task_id = task_id or TaskID(uuid.uuid4().hex)
        self.description = description
        self.token = CancellationToken()
        self.started_at = time.monotonic()
        self._task: "asyncio.Task[T]" = asyncio.get_running_loop().create_task(self._run(work))

    async def _run(self, work: Callable[[], Awaitable[T]]) -> T:
        # Each asyncio task runs in its own context copy
        _current_token.set(self.token)
        return await work()

    def cancel(self) -> None:
        self.token.cancel()
        if not self._task.done():
            self._task.cancel()
        logger.debug(f"Cancellation requested for task: {self.description} (ID: {self.task_id})")

    @property
    def is_running(self) -> bool:
        return not self._task.done() and not self.token.is_cancelled

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def duration(self) -> float:
        return time.monotonic() - self.started_at

    async def value(self) -> T:
        """Awaits the work's result, re-raising its exception or cancellation."""
        return await self._task

    def add_done_callback(self, callback: Callable[["ManagedTask[T]"], None]) -> None:
        self._task.add_done_callback(lambda _: callback(self))

    def outcome(self) -> TaskOutcome:
        """Terminal outcome of a finished task."""
        if self._task.cancelled():
            return TaskOutcome.CANCELLED
        if self._task.exception() is not None:
            return TaskOutcome.FAILED
        return TaskOutcome.COMPLETED

    def __repr__(self) -> str:
        return f"ManagedTask(id={self.task_id!r}, description={self.description!r}, done={self.done})"


class TaskRegistry:
    """Single owner of managed task bookkeeping.

    All mutations happen on the event loop thread; callers must not touch a
    registry from other threads.
    """

    def __init__(
        self,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the TaskRegistry.

        Args:
            history_limit: Maximum number of history entries kept; the oldest
                entries are dropped first.
            event_sink: Optional callable receiving task lifecycle events.
        """
        self._active: Dict[TaskID, ManagedTask[Any]] = {}
        self._history: Deque[TaskHistoryEntry] = deque(maxlen=history_limit)
        self._event_sink = event_sink
        self.total_tasks_run = 0
        self.cancelled_task_count = 0
        logger.info(f"TaskRegistry initialized: history_limit={history_limit}")

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_sink is not None:
            self._event_sink(event)

    # --- Registration ---

    def register(self, task: ManagedTask[Any]) -> None:
        """Adds a task to the active set and counts it as run."""
        if task.task_id in self._active:
            raise ValueError(f"Task ID already active: {task.task_id}")
        self._active[task.task_id] = task
        self.total_tasks_run += 1
        task.add_done_callback(self._on_task_done)
        logger.info(f"Registered task: {task.description} (ID: {task.task_id})")
        self._dispatch(TaskRegistered(task_id=task.task_id, description=task.description))

    def unregister(self, task_id: TaskID, outcome: TaskOutcome = TaskOutcome.COMPLETED) -> bool:
        """Removes a task from the active set without cancelling it."""
        task = self._active.pop(task_id, None)
        if task is None:
            return False
        self._record(task, outcome)
        return True

    def _on_task_done(self, task: ManagedTask[Any]) -> None:
        # Tasks cancelled through the registry have already left the active set
        if task.task_id not in self._active:
            return
        outcome = task.outcome()
        if outcome is TaskOutcome.CANCELLED:
            self.cancelled_task_count += 1
        self.unregister(task.task_id, outcome)

    def _record(self, task: ManagedTask[Any], outcome: TaskOutcome) -> None:
        self._history.append(
            TaskHistoryEntry(task_id=task.task_id, description=task.description, outcome=outcome)
        )
        if outcome is TaskOutcome.CANCELLED:
            logger.info(f"Cancelled task: {task.description} (ID: {task.task_id})")
            self._dispatch(TaskCancelled(task_id=task.task_id, description=task.description))
        else:
            logger.info(f"Unregistered task: {task.description} ({outcome.value})")
            self._dispatch(
                TaskFinished(
                    task_id=task.task_id,
                    description=task.description,
                    outcome=outcome.value,
                    duration_seconds=task.duration,
                )
            )

    # --- Cancellation ---

    def cancel(self, task_id: TaskID) -> bool:
        """Requests cancellation of one active task.

        Returns:
            True if the task was active and is now cancelled, False otherwise.
        """
        task = self._active.pop(task_id, None)
        if task is None:
            logger.debug(f"Cancel ignored, task not active: {task_id}")
            return False
        task.cancel()
        self.cancelled_task_count += 1
        self._record(task, TaskOutcome.CANCELLED)
        return True

    def cancel_all(self) -> int:
        """Cancels every active task. Safe on an empty registry."""
        count = len(self._active)
        if count:
            logger.warning(f"Cancelling all {count} active tasks...")
        for task_id in list(self._active):
            self.cancel(task_id)
        return count

    def cancel_matching(self, substring: str) -> int:
        """Cancels active tasks whose description contains substring, ignoring case."""
        needle = substring.casefold()
        matching = [
            task_id for task_id, task in self._active.items()
            if needle in task.description.casefold()
        ]
        for task_id in matching:
            self.cancel(task_id)
        logger.info(f"Cancelled {len(matching)} task(s) matching '{substring}'")
        return len(matching)

    # --- Running work ---

    async def run_managed(self, description: str, work: Callable[[], Awaitable[T]]) -> T:
        """Runs work as a registered task and returns its result.

        The work's exceptions propagate to the caller. Cancellation, whether
        requested through the registry or by cancelling the caller, surfaces
        as asyncio.CancelledError.
        """
        task: ManagedTask[T] = ManagedTask(description, work)
        self.register(task)
        try:
            result = await task.value()
        except asyncio.CancelledError:
            if task.task_id in self._active:
                task.cancel()
                self.cancelled_task_count += 1
                self.unregister(task.task_id, TaskOutcome.CANCELLED)
            raise
        except Exception:
            self.unregister(task.task_id, TaskOutcome.FAILED)
            raise
        self.unregister(task.task_id, TaskOutcome.COMPLETED)
        return result

    async def run_managed_with_progress(
        self,
        description: str,
        work: Callable[[ProgressCallback], Awaitable[T]],
        progress_handler: ProgressCallback,
    ) -> T:
        """Like run_managed, but hands the work a progress callback.

        Values are forwarded to progress_handler in the order the work emits
        them; monotonicity is up to the work.
        """
        def update_progress(value: float) -> None:
            progress_handler(value)

        async def run_with_progress() -> T:
            return await work(update_progress)

        return await self.run_managed(description, run_with_progress)

    # --- Query Methods ---

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def has_active(self) -> bool:
        return bool(self._active)

    @property
    def active_descriptions(self) -> List[str]:
        return [task.description for task in self._active.values()]

    def get_task(self, task_id: TaskID) -> Optional[ManagedTask[Any]]:
        return self._active.get(task_id)

    def get_history(self) -> List[TaskHistoryEntry]:
        return list(self._history)

    def get_statistics(self) -> TaskStatistics:
        return TaskStatistics(
            total_tasks_run=self.total_tasks_run,
            cancelled_tasks=self.cancelled_task_count,
            active_tasks=self.active_count,
        )

    # --- Cleanup ---

    def clear_history(self) -> None:
        self._history.clear()

    def reset_statistics(self) -> None:
        self.total_tasks_run = 0
        self.cancelled_task_count = 0
