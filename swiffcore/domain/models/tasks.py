"""Domain models for managed task bookkeeping.

Statistics and history entries are plain value objects produced by the
task registry; the registry is their single writer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from swiffcore.domain.models.common import TaskID


class TaskOutcome(str, Enum):
    """Terminal state recorded for a task leaving the registry."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TaskHistoryEntry:
    """Record of a task that completed, failed or was cancelled."""
    task_id: TaskID
    description: str
    outcome: TaskOutcome
    completed_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class TaskStatistics:
    """Snapshot of the registry counters."""
    total_tasks_run: int
    cancelled_tasks: int
    active_tasks: int

    @property
    def completion_rate(self) -> float:
        if self.total_tasks_run == 0:
            return 0.0
        return (self.total_tasks_run - self.cancelled_tasks) / self.total_tasks_run

    @property
    def completion_rate_percentage(self) -> str:
        return f"{self.completion_rate * 100:.1f}%"

    @property
    def description(self) -> str:
        return (
            "Task Statistics:\n"
            f"- Total Tasks Run: {self.total_tasks_run}\n"
            f"- Cancelled: {self.cancelled_tasks}\n"
            f"- Currently Active: {self.active_tasks}\n"
            f"- Completion Rate: {self.completion_rate_percentage}"
        )
