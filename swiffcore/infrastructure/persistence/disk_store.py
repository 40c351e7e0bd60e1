"""Durable implementation of the PersistenceStore interface backed by diskcache.

Each entity kind lives in its own ``diskcache.Cache`` directory under the
store root, keyed by entity id. diskcache commits every ``set`` and
``delete`` in its own SQLite transaction, which gives the per-call atomicity
the save coordinator relies on. Blocking cache calls run in a worker thread
so the event loop keeps scheduling timers and other writes.
"""

import asyncio
import logging
import pickle
import sqlite3
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

import diskcache as dc

from swiffcore.domain.interfaces.persistence import PersistenceStore
from swiffcore.domain.models.entities import ENTITY_KINDS, Entity
from swiffcore.domain.models.errors import EntityNotFoundError, PersistenceError

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_STORE_DIR = Path.home() / ".swiffcore" / "store"
# Seconds diskcache waits on a locked SQLite database before failing
DEFAULT_CACHE_TIMEOUT = 5

_BACKEND_ERRORS = (OSError, sqlite3.Error, pickle.PicklingError, dc.Timeout)


class DiskStore(PersistenceStore):
    """Stores entities on disk, one diskcache directory per entity kind."""

    def __init__(self, store_dir: Union[str, Path] = DEFAULT_STORE_DIR, timeout: float = DEFAULT_CACHE_TIMEOUT):
        """Initializes the DiskStore.

        Args:
            store_dir: Root directory; created if missing.
            timeout: SQLite lock timeout passed to each diskcache.Cache.

        Raises:
            PersistenceError: If the root directory cannot be created.
        """
        self.store_dir = Path(store_dir)
        self.timeout = timeout
        try:
            self.store_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create store directory {self.store_dir}: {e}")
            raise PersistenceError("initialize", e) from e
        self._caches: Dict[str, dc.Cache] = {}
        logger.info(f"DiskStore initialized at: {self.store_dir}")

    def _cache(self, kind: str) -> dc.Cache:
        cache = self._caches.get(kind)
        if cache is None:
            cache = dc.Cache(str(self.store_dir / kind), timeout=self.timeout)
            self._caches[kind] = cache
            logger.debug(f"Opened {kind} collection at: {cache.directory}")
        return cache

    async def _run(self, operation: str, func: Callable[..., R], *args: Any) -> R:
        try:
            return await asyncio.to_thread(func, *args)
        except _BACKEND_ERRORS as e:
            logger.error(f"DiskStore failed to {operation}: {e}", exc_info=True)
            raise PersistenceError(operation, e) from e

    # --- PersistenceStore Interface Implementation ---

    async def save(self, entity: Entity) -> None:
        cache = self._cache(entity.kind)
        await self._run("save", cache.set, entity.id, entity)  # type: ignore[attr-defined]
        logger.debug(f"Persisted {entity.kind} {entity.id}")  # type: ignore[attr-defined]

    async def fetch(self, kind: str, entity_id: str) -> Optional[Entity]:
        cache = self._cache(kind)
        return await self._run("fetch", cache.get, entity_id)

    async def fetch_all(self, kind: str) -> List[Entity]:
        cache = self._cache(kind)

        def read_all() -> List[Entity]:
            # Keys removed concurrently come back as None
            items = (cache.get(key) for key in cache.iterkeys())
            return [item for item in items if item is not None]

        return await self._run("fetch", read_all)

    async def delete(self, kind: str, entity_id: str) -> None:
        cache = self._cache(kind)
        removed = await self._run("delete", cache.delete, entity_id)
        if not removed:
            raise EntityNotFoundError(kind, entity_id)
        logger.debug(f"Deleted {kind} {entity_id} from disk")

    async def clear(self, kind: Optional[str] = None) -> None:
        kinds = [kind] if kind is not None else list(ENTITY_KINDS)
        for name in kinds:
            count = await self._run("clear", self._cache(name).clear)
            logger.info(f"Cleared {count} {name} record(s) from disk")

    def close(self) -> None:
        """Closes every open cache; the store reopens them on next use."""
        for cache in self._caches.values():
            cache.close()
        self._caches.clear()
        logger.debug("DiskStore closed.")
