"""Domain Events related to network calls and resilience.

Examples include events for when calls are retried, fail, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Optional

from swiffcore.domain.events.base import DomainEvent


@dataclass
class RequestSucceeded(DomainEvent):
    """Event triggered when an operation succeeds, possibly after retries."""
    operation: str
    attempts: int
    duration_seconds: float
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestFailed(DomainEvent):
    """Event triggered when an operation fails definitively (after retries)."""
    operation: str
    attempts: int
    error_kind: str
    error_message: str
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed operation."""
    operation: str
    attempt_number: int
    delay_seconds: float
    error_kind: str
    timestamp: float = field(default_factory=time.time)
