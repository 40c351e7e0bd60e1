"""Base event type and the sink signature used to publish events."""

from dataclasses import dataclass
from typing import Callable


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


EventSink = Callable[[DomainEvent], None]
