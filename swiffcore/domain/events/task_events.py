"""Domain Events related to managed task lifecycle."""

from dataclasses import dataclass, field
import time

from swiffcore.domain.events.base import DomainEvent


@dataclass
class TaskRegistered(DomainEvent):
    """Event triggered when a task enters the active set."""
    task_id: str
    description: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class TaskCancelled(DomainEvent):
    """Event triggered when cancellation is requested and the task leaves the active set."""
    task_id: str
    description: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class TaskFinished(DomainEvent):
    """Event triggered when a task leaves the active set on its own."""
    task_id: str
    description: str
    outcome: str  # 'completed' or 'failed'
    duration_seconds: float
    timestamp: float = field(default_factory=time.time)
