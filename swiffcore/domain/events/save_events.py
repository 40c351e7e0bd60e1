"""Domain Events related to entity persistence and auto-save."""

from dataclasses import dataclass, field
import time
from typing import Optional

from swiffcore.domain.events.base import DomainEvent


@dataclass
class EntitySaved(DomainEvent):
    """Event triggered when an entity reaches the store."""
    kind: str
    entity_id: str
    mode: str  # 'immediate', 'debounced', 'update'
    timestamp: float = field(default_factory=time.time)


@dataclass
class AutoSaveFailed(DomainEvent):
    """Event triggered when a debounced save fails after its caller returned."""
    kind: str
    entity_id: str
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class BulkImportCompleted(DomainEvent):
    """Event triggered when a bulk import finishes, successfully or not."""
    total: int
    imported: int
    error_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
