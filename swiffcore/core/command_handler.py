"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the save coordinator, the task registry and the network
resilience engine. Every handler reports failures through the user
interface instead of raising, so no traceback reaches the terminal.
"""

import json
import logging
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiofiles
import yaml

from swiffcore.core.services.save_coordinator import SaveCoordinator
from swiffcore.core.services.task_registry import TaskRegistry
from swiffcore.domain.interfaces.connectivity import ConnectivityProbe
from swiffcore.domain.interfaces.user_interface import UserInterface
from swiffcore.domain.models.entities import Entity, entity_type_for
from swiffcore.domain.models.errors import BulkImportError, EntityNotFoundError, PersistenceError
from swiffcore.domain.models.network import NetworkError, RetryConfiguration
from swiffcore.infrastructure.resilience.network_resilience import (
    NetworkResilienceEngine,
    classify_status_code,
)

logger = logging.getLogger(__name__)


def _column_names(entity_type: type) -> List[str]:
    return [f.name for f in fields(entity_type)]


def _parse_records(content: str, suffix: str) -> List[Dict[str, Any]]:
    """Parses a JSON or YAML document holding a list of records."""
    if suffix == ".json":
        data = json.loads(content)
    else:
        data = yaml.safe_load(content)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ValueError("Import file must contain a list of objects")
    return data


def _coerce_field(entity: Entity, name: str, raw: str) -> Any:
    current = getattr(entity, name)
    if isinstance(current, datetime):
        return datetime.fromisoformat(raw)
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, float):
        return float(raw)
    if isinstance(current, int):
        return int(raw)
    return raw


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        coordinator: SaveCoordinator,
        task_registry: TaskRegistry,
        resilience_engine: NetworkResilienceEngine,
        connectivity_probe: ConnectivityProbe,
        ui: UserInterface,
    ):
        """Initializes the CommandHandler with required services."""
        self.coordinator = coordinator
        self.task_registry = task_registry
        self.resilience_engine = resilience_engine
        self.connectivity_probe = connectivity_probe
        self.ui = ui

    # --- Data commands ---

    async def handle_import(self, kind: str, file_path_str: str) -> None:
        """Handles the 'import' command: reads a file and bulk-imports its records."""
        logger.info(f"Handling 'import' command: kind={kind}, file={file_path_str}")
        path = Path(file_path_str)
        try:
            entity_type = entity_type_for(kind)
            async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
                content = await f.read()
            records = _parse_records(content, path.suffix.lower())
            entities = [entity_type.from_dict(record) for record in records]
        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.error(f"Could not read import file {path}: {e}", exc_info=True)
            self.ui.display_error(f"Could not read import file: {e}")
            return

        if not entities:
            self.ui.display_warning(f"No records found in {path.name}.")
            return

        self.ui.display_info(f"Importing {len(entities)} {kind} record(s) from {path.name}...")

        def on_progress(fraction: float) -> None:
            self.ui.display_progress(fraction, self.coordinator.operation_message)

        async def import_work(progress) -> int:
            return await self.coordinator.import_many(entities, progress)

        try:
            imported = await self.task_registry.run_managed_with_progress(
                f"Import {kind} from {path.name}", import_work, on_progress
            )
        except BulkImportError as e:
            logger.error(f"Import command failed: {e}", exc_info=True)
            self.ui.display_error(
                f"Import stopped: {e.cause}",
                suggestion=f"{e.imported} of {e.total} record(s) were saved before the failure.",
            )
            return
        self.ui.display_info(f"Imported {imported} {kind} record(s).")

    async def handle_list(self, kind: str) -> None:
        """Handles the 'list' command."""
        logger.info(f"Handling 'list' command for kind: {kind}")
        try:
            entity_type = entity_type_for(kind)
            await self.coordinator.load_all()
        except (ValueError, PersistenceError) as e:
            logger.error(f"List command failed: {e}", exc_info=True)
            self.ui.display_error(f"Failed to list {kind}: {e}")
            return

        columns = _column_names(entity_type)
        rows = []
        for entity in self.coordinator.entities(kind):
            data = entity.to_dict()
            rows.append([data[column] for column in columns])
        self.ui.display_table(columns, rows, title=f"{kind.capitalize()} records")

    async def handle_edit(self, kind: str, entity_id: str, assignments: Sequence[str]) -> None:
        """Handles the 'edit' command.

        Each ``field=value`` assignment is scheduled as its own debounced save,
        so a burst of edits to one record coalesces into a single write of
        the final value.
        """
        logger.info(f"Handling 'edit' command: {kind} {entity_id} {list(assignments)}")
        try:
            entity_type = entity_type_for(kind)
            entity = await self.coordinator.store.fetch(kind, entity_id)
        except (ValueError, PersistenceError) as e:
            logger.error(f"Edit command failed: {e}", exc_info=True)
            self.ui.display_error(f"Failed to edit {kind}: {e}")
            return
        if entity is None:
            self.ui.display_error(f"No {kind} with ID {entity_id}.")
            return

        editable = set(_column_names(entity_type)) - {"id"}
        for assignment in assignments:
            name, sep, raw = assignment.partition("=")
            name = name.strip()
            if not sep or name not in editable:
                self.ui.display_error(
                    f"Invalid assignment '{assignment}'.",
                    suggestion=f"Use field=value with one of: {', '.join(sorted(editable))}",
                )
                self.coordinator.cancel_pending()
                return
            try:
                setattr(entity, name, _coerce_field(entity, name, raw))
            except ValueError as e:
                self.ui.display_error(f"Invalid value for {name}: {e}")
                self.coordinator.cancel_pending()
                return
            self.coordinator.schedule_save(entity)

        await self.coordinator.wait_for_pending()
        if self.coordinator.error is not None:
            self.ui.display_error(f"Save failed: {self.coordinator.error}")
        else:
            self.ui.display_info(f"Saved {kind} {entity_id}.")

    async def handle_delete(self, kind: str, entity_id: str) -> None:
        """Handles the 'delete' command."""
        logger.info(f"Handling 'delete' command: {kind} {entity_id}")
        try:
            entity_type_for(kind)
            await self.coordinator.delete(kind, entity_id)
        except EntityNotFoundError as e:
            self.ui.display_error(str(e))
            return
        except (ValueError, PersistenceError) as e:
            logger.error(f"Delete command failed: {e}", exc_info=True)
            self.ui.display_error(f"Failed to delete: {e}")
            return
        self.ui.display_info(f"Deleted {kind} {entity_id}.")

    # --- Network commands ---

    def handle_classify(self, status_code: int) -> None:
        """Handles the 'classify' command for an HTTP status code."""
        error = classify_status_code(status_code)
        if error is None:
            self.ui.display_info(f"HTTP {status_code}: success, no error.")
            return
        self.ui.display_table(
            ["Status", "Kind", "Retryable", "Message", "Suggestion"],
            [[status_code, error.kind.value, "yes" if error.is_retryable else "no",
              error.description, error.recovery_suggestion]],
            title="Classification",
        )

    def handle_backoff(self, profile: str) -> None:
        """Handles the 'backoff' command: shows the delay schedule of a retry profile."""
        try:
            config = RetryConfiguration.from_profile(profile)
        except ValueError as e:
            self.ui.display_error(str(e))
            return
        rows = [
            [attempt, f"{config.delay(attempt):.2f}s"]
            for attempt in range(1, config.max_retries + 1)
        ]
        self.ui.display_table(
            ["After attempt", "Delay"],
            rows,
            title=f"Backoff for '{profile}' ({config.max_retries + 1} attempts max)",
        )

    async def handle_connectivity(self, timeout: float) -> None:
        """Handles the 'connectivity' command."""
        logger.info(f"Handling 'connectivity' command with timeout: {timeout}s")

        async def probe() -> Any:
            return await self.resilience_engine.with_timeout(timeout, self.connectivity_probe.refresh)

        try:
            await self.task_registry.run_managed("Connectivity check", probe)
        except NetworkError as e:
            self.ui.display_error(e.description, suggestion=e.recovery_suggestion)
            return

        stats = self.resilience_engine.network_statistics()
        self.ui.display_table(
            ["Connected", "Connection", "Status"],
            [["yes" if stats["is_connected"] else "no", stats["connection_type"], stats["status"]]],
            title="Network",
        )
        if not stats["is_connected"]:
            self.ui.display_warning("No internet connection. Please check your network settings.")

    # --- Task reporting ---

    def handle_tasks(self, history_limit: Optional[int] = None) -> None:
        """Shows task statistics and recent history for this session."""
        stats = self.task_registry.get_statistics()
        self.ui.display_output(stats.description, title="Tasks")
        history = self.task_registry.get_history()
        if history_limit is not None:
            history = history[-history_limit:]
        self.ui.display_table(
            ["Task", "Outcome", "Finished"],
            [[entry.description, entry.outcome.value, entry.completed_at.strftime("%H:%M:%S")]
             for entry in history],
            title="Task history",
        )
