"""Debounced, fault-tolerant auto-save layer in front of a persistence store.

Three write paths with deliberately different error propagation:

- ``save_immediately`` / ``update`` persist now and raise to the caller.
- ``schedule_save`` coalesces rapid edits per entity (last write wins) and,
  because its caller has already returned, reports failures through the
  observable ``error`` attribute instead of raising.
- ``import_many`` persists a batch with progress reporting and raises on the
  first failing item. Items written before the failure are not rolled back.
"""

import asyncio
import copy
import logging
from typing import Dict, Iterable, List, Optional, Set

from swiffcore.core.services.task_registry import ManagedTask, TaskRegistry, current_cancellation_token
from swiffcore.domain.events.base import DomainEvent, EventSink
from swiffcore.domain.events.save_events import AutoSaveFailed, BulkImportCompleted, EntitySaved
from swiffcore.domain.interfaces.persistence import PersistenceStore
from swiffcore.domain.models.common import EntityID, EntityKey, EntityKind, ProgressCallback
from swiffcore.domain.models.entities import ENTITY_KINDS, Entity, Person, Subscription, Transaction
from swiffcore.domain.models.errors import BulkImportError, EntityNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_DELAY = 0.5  # seconds


class SaveCoordinator:
    """Coordinates immediate, debounced and bulk writes to a PersistenceStore.

    Keeps an in-memory copy of every collection for the UI layer together
    with observable ``error``, ``operation_progress`` and ``operation_message``
    slots. All state is owned by the event loop the coordinator is used from.
    """

    def __init__(
        self,
        store: PersistenceStore,
        task_registry: Optional[TaskRegistry] = None,
        default_delay: float = DEFAULT_DEBOUNCE_DELAY,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the SaveCoordinator.

        Args:
            store: The persistence collaborator.
            task_registry: Optional registry; when given, every debounce timer
                is tracked there as a cancellable managed task.
            default_delay: Debounce delay used when schedule_save gets none.
            event_sink: Optional callable receiving save events.
        """
        self.store = store
        self.task_registry = task_registry
        self.default_delay = default_delay
        self._event_sink = event_sink

        self._collections: Dict[str, Dict[EntityID, Entity]] = {kind: {} for kind in ENTITY_KINDS}
        # One armed timer per entity; fired timers move to _in_flight until their write ends
        self._pending: Dict[EntityKey, ManagedTask[None]] = {}
        self._in_flight: Set[ManagedTask[None]] = set()
        self._write_locks: Dict[EntityKey, asyncio.Lock] = {}

        # Observable state for the UI layer
        self.error: Optional[BaseException] = None
        self.operation_progress: Optional[float] = None
        self.operation_message: Optional[str] = None
        self.is_performing_operation = False
        self.is_loading = False

        logger.info(
            f"SaveCoordinator initialized: store={type(store).__name__}, "
            f"default_delay={default_delay}s, registry={'yes' if task_registry else 'no'}"
        )

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._event_sink is not None:
            self._event_sink(event)

    # --- In-memory collections ---

    def entities(self, kind: str) -> List[Entity]:
        items = list(self._collections[kind].values())
        if kind == Transaction.KIND:
            items.sort(key=lambda t: t.date, reverse=True)  # type: ignore[attr-defined]
        return items

    @property
    def people(self) -> List[Person]:
        return self.entities(Person.KIND)  # type: ignore[return-value]

    @property
    def subscriptions(self) -> List[Subscription]:
        return self.entities(Subscription.KIND)  # type: ignore[return-value]

    @property
    def transactions(self) -> List[Transaction]:
        return self.entities(Transaction.KIND)  # type: ignore[return-value]

    def _remember(self, entity: Entity) -> None:
        self._collections[entity.kind][entity.id] = entity  # type: ignore[attr-defined]

    # --- Immediate writes ---

    async def save_immediately(self, entity: Entity) -> None:
        """Validates and persists a new entity now.

        Raises:
            ValidationError: Before the store is touched.
            PersistenceError: If the store rejects the write; memory is left as is.
        """
        entity.validate()
        await self.store.save(entity)
        self._remember(entity)
        logger.info(f"Saved {entity.kind} {entity.id}")  # type: ignore[attr-defined]
        self._dispatch(EntitySaved(kind=entity.kind, entity_id=entity.id, mode="immediate"))  # type: ignore[attr-defined]

    async def update(self, entity: Entity) -> None:
        """Validates and persists a change to an entity that is already stored."""
        entity.validate()
        existing = await self.store.fetch(entity.kind, entity.id)  # type: ignore[attr-defined]
        if existing is None:
            raise EntityNotFoundError(entity.kind, entity.id)  # type: ignore[attr-defined]
        await self.store.save(entity)
        self._remember(entity)
        logger.info(f"Updated {entity.kind} {entity.id}")  # type: ignore[attr-defined]
        self._dispatch(EntitySaved(kind=entity.kind, entity_id=entity.id, mode="update"))  # type: ignore[attr-defined]

    async def delete(self, kind: str, entity_id: str) -> None:
        """Deletes an entity, dropping any save still armed for it.

        A debounced save that has already fired holds the entity's write
        lock; the delete waits for it so the entity is not written back.
        """
        key: EntityKey = (EntityKind(kind), EntityID(entity_id))
        self._disarm(key)
        async with self._write_lock(key):
            await self.store.delete(kind, entity_id)
            self._collections[kind].pop(EntityID(entity_id), None)
        logger.info(f"Deleted {kind} {entity_id}")

    # --- Debounced writes ---

    def schedule_save(self, entity: Entity, delay: Optional[float] = None) -> None:
        """Arms (or re-arms) the save timer for this entity.

        A previous timer for the same entity that has not fired yet is
        cancelled, so only the most recent value is ever written. The value
        is captured now; later mutation of ``entity`` by the caller does not
        change what gets saved. Must be called from a running event loop.
        """
        effective_delay = self.default_delay if delay is None else delay
        key: EntityKey = entity.key
        self._disarm(key)

        snapshot = copy.deepcopy(entity)

        async def fire() -> None:
            await self._debounced_save(snapshot, effective_delay)

        timer: ManagedTask[None] = ManagedTask(f"Auto-save {key[0]} {key[1]}", fire)
        self._pending[key] = timer
        if self.task_registry is not None:
            self.task_registry.register(timer)
        logger.debug(f"Scheduled save for {key[0]} {key[1]} in {effective_delay}s")

    def _disarm(self, key: EntityKey) -> bool:
        timer = self._pending.pop(key, None)
        if timer is None:
            return False
        if self.task_registry is None or not self.task_registry.cancel(timer.task_id):
            timer.cancel()
        logger.debug(f"Superseded pending save for {key[0]} {key[1]}")
        return True

    async def _debounced_save(self, entity: Entity, delay: float) -> None:
        await asyncio.sleep(delay)

        key: EntityKey = entity.key
        timer = self._pending.get(key)
        if timer is None or timer.token is not current_cancellation_token():
            # Superseded between waking up and running
            return
        # Fired: a newer schedule_save no longer cancels this write
        del self._pending[key]
        self._in_flight.add(timer)
        try:
            async with self._write_lock(key):
                try:
                    entity.validate()
                    await self.store.save(entity)
                except Exception as e:
                    logger.error(f"Auto-save failed for {key[0]} {key[1]}: {e}", exc_info=True)
                    self.error = e
                    self._dispatch(
                        AutoSaveFailed(
                            kind=key[0], entity_id=key[1],
                            error_type=type(e).__name__, error_message=str(e),
                        )
                    )
                    return
                self._remember(entity)
            self.error = None
            logger.info(f"Auto-saved {key[0]} {key[1]}")
            self._dispatch(EntitySaved(kind=key[0], entity_id=key[1], mode="debounced"))
        finally:
            self._in_flight.discard(timer)

    def _write_lock(self, key: EntityKey) -> asyncio.Lock:
        lock = self._write_locks.get(key)
        if lock is None:
            lock = self._write_locks[key] = asyncio.Lock()
        return lock

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def has_pending_save(self, entity: Entity) -> bool:
        return entity.key in self._pending

    def cancel_pending(self) -> int:
        """Drops every armed save that has not fired yet."""
        keys = list(self._pending)
        for key in keys:
            self._disarm(key)
        if keys:
            logger.warning(f"Dropped {len(keys)} pending save(s)")
        return len(keys)

    async def wait_for_pending(self) -> None:
        """Waits until every armed or in-flight debounced save has finished."""
        while self._pending or self._in_flight:
            timers = list(self._pending.values()) + list(self._in_flight)
            await asyncio.gather(*(timer.value() for timer in timers), return_exceptions=True)

    # --- Bulk import ---

    def _set_progress(
        self, fraction: float, message: str, progress_callback: Optional[ProgressCallback]
    ) -> None:
        self.operation_progress = fraction
        self.operation_message = message
        if progress_callback is not None:
            progress_callback(fraction)

    async def import_many(
        self,
        entities: Iterable[Entity],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> int:
        """Persists a batch, one progress step per item.

        Returns:
            The number of imported entities.

        Raises:
            BulkImportError: On the first item that fails validation or
                persistence. Earlier items remain in the store.
        """
        items = list(entities)
        if not items:
            return 0

        total = len(items)
        imported = 0
        failure: Optional[str] = None
        self.is_performing_operation = True
        self._set_progress(0.0, f"Importing {total} item(s)...", progress_callback)
        try:
            for entity in items:
                try:
                    entity.validate()
                    await self.store.save(entity)
                except Exception as e:
                    failure = str(e)
                    logger.error(
                        f"Bulk import stopped at item {imported + 1}/{total}: {e}", exc_info=True
                    )
                    raise BulkImportError(imported, total, entity, e) from e
                self._remember(entity)
                imported += 1
                self._set_progress(
                    imported / total, f"Imported {imported} of {total} item(s)", progress_callback
                )
                logger.debug(f"Imported {entity.kind} {imported}/{total}")  # type: ignore[attr-defined]
                # Let observers see intermediate progress
                await asyncio.sleep(0)
        finally:
            self.operation_progress = None
            self.operation_message = None
            self.is_performing_operation = False
            self._dispatch(BulkImportCompleted(total=total, imported=imported, error_message=failure))

        logger.info(f"Bulk import complete: {imported} item(s) imported")
        return imported

    # --- Loading ---

    async def load_all(self) -> None:
        """Repopulates every in-memory collection from the store."""
        self.is_loading = True
        self.error = None
        try:
            loaded = {kind: await self.store.fetch_all(kind) for kind in ENTITY_KINDS}
        except Exception as e:
            logger.error(f"Error loading data: {e}", exc_info=True)
            self.error = e
            raise
        finally:
            self.is_loading = False

        for kind, items in loaded.items():
            self._collections[kind] = {item.id: item for item in items}  # type: ignore[attr-defined]
        logger.info(
            "Data loaded successfully: "
            + ", ".join(f"{kind}={len(items)}" for kind, items in loaded.items())
        )
