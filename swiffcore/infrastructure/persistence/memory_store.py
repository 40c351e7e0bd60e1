"""In-memory implementation of the PersistenceStore interface.

Used by tests and as a scratch store; nothing survives the process.
"""

import copy
import logging
from typing import Dict, List, Optional

from swiffcore.domain.interfaces.persistence import PersistenceStore
from swiffcore.domain.models.entities import ENTITY_KINDS, Entity
from swiffcore.domain.models.errors import EntityNotFoundError

logger = logging.getLogger(__name__)


class InMemoryStore(PersistenceStore):
    """Per-kind dictionaries holding deep copies of saved entities."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Entity]] = {kind: {} for kind in ENTITY_KINDS}
        logger.info("InMemoryStore initialized.")

    def _collection(self, kind: str) -> Dict[str, Entity]:
        return self._collections.setdefault(kind, {})

    async def save(self, entity: Entity) -> None:
        # Copy so later mutation by the caller cannot change stored state
        self._collection(entity.kind)[entity.id] = copy.deepcopy(entity)  # type: ignore[attr-defined]
        logger.debug(f"Stored {entity.kind} {entity.id}")  # type: ignore[attr-defined]

    async def fetch(self, kind: str, entity_id: str) -> Optional[Entity]:
        entity = self._collection(kind).get(entity_id)
        return copy.deepcopy(entity) if entity is not None else None

    async def fetch_all(self, kind: str) -> List[Entity]:
        return [copy.deepcopy(entity) for entity in self._collection(kind).values()]

    async def delete(self, kind: str, entity_id: str) -> None:
        try:
            del self._collection(kind)[entity_id]
        except KeyError:
            raise EntityNotFoundError(kind, entity_id) from None
        logger.debug(f"Removed {kind} {entity_id}")

    async def clear(self, kind: Optional[str] = None) -> None:
        kinds = [kind] if kind is not None else list(self._collections)
        for name in kinds:
            self._collection(name).clear()
        logger.info(f"Cleared in-memory store: {', '.join(kinds)}")
