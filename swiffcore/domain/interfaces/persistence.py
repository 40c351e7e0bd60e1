"""Interface for the persistence store the save coordinator writes through.

Defines the contract for saving, fetching and deleting entities, each kept
in an independent collection per entity kind. Implementations are assumed
durable on return and atomic per single call.
"""

import abc
from typing import List, Optional

from swiffcore.domain.models.entities import Entity


class PersistenceStore(abc.ABC):
    """Abstract Base Class for entity persistence."""

    @abc.abstractmethod
    async def save(self, entity: Entity) -> None:
        """Inserts or replaces an entity in its kind's collection.

        Args:
            entity: The entity to store. Its ``kind`` selects the collection.

        Raises:
            PersistenceError: If the backend rejects the write.
        """
        pass

    @abc.abstractmethod
    async def fetch(self, kind: str, entity_id: str) -> Optional[Entity]:
        """Retrieves one entity.

        Args:
            kind: The collection to look in.
            entity_id: The identifier of the entity.

        Returns:
            The stored entity, or None if absent.

        Raises:
            PersistenceError: If the backend read fails.
        """
        pass

    @abc.abstractmethod
    async def fetch_all(self, kind: str) -> List[Entity]:
        """Retrieves every entity of a kind.

        Raises:
            PersistenceError: If the backend read fails.
        """
        pass

    @abc.abstractmethod
    async def delete(self, kind: str, entity_id: str) -> None:
        """Removes one entity.

        Raises:
            EntityNotFoundError: If the entity is not stored.
            PersistenceError: If the backend rejects the delete.
        """
        pass

    @abc.abstractmethod
    async def clear(self, kind: Optional[str] = None) -> None:
        """Removes every entity of a kind, or of all kinds when kind is None."""
        pass
