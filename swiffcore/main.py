"""Main entry point for the swiffcore application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from swiffcore.core.command_handler import CommandHandler
from swiffcore.core.services.save_coordinator import SaveCoordinator
from swiffcore.core.services.task_registry import TaskRegistry
from swiffcore.domain.models.entities import ENTITY_KINDS
from swiffcore.domain.models.network import RetryConfiguration

# --- Infrastructure Layer ---
from swiffcore.infrastructure.cli.display import ConsoleDisplay
from swiffcore.infrastructure.config.settings import (
    get_config,
    get_debounce_delay,
    get_history_limit,
    get_probe_hosts,
    get_retry_profile,
    get_network_timeout,
    get_store_dir,
    load_configuration,
)
from swiffcore.infrastructure.connectivity.socket_probe import SocketConnectivityProbe
from swiffcore.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, setup_logging
from swiffcore.infrastructure.persistence.disk_store import DiskStore
from swiffcore.infrastructure.resilience.network_resilience import NetworkResilienceEngine

logger = logging.getLogger(__name__)


# --- Dependency Injection (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for one CLI invocation.

    This acts as the Composition Root.
    """
    load_configuration()
    setup_logging(
        log_level=get_config('logging.level', 'WARNING'),
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )

    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()
    try:
        dependencies['store'] = DiskStore(get_store_dir())
        dependencies['task_registry'] = TaskRegistry(history_limit=get_history_limit())
        dependencies['coordinator'] = SaveCoordinator(
            store=dependencies['store'],
            task_registry=dependencies['task_registry'],
            default_delay=get_debounce_delay(),
        )
        dependencies['connectivity_probe'] = SocketConnectivityProbe(hosts=get_probe_hosts())
        dependencies['resilience_engine'] = NetworkResilienceEngine(
            connectivity_probe=dependencies['connectivity_probe'],
            default_config=RetryConfiguration.from_profile(get_retry_profile()),
        )
        dependencies['command_handler'] = CommandHandler(
            coordinator=dependencies['coordinator'],
            task_registry=dependencies['task_registry'],
            resilience_engine=dependencies['resilience_engine'],
            connectivity_probe=dependencies['connectivity_probe'],
            ui=dependencies['ui'],
        )
    except Exception as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        dependencies['ui'].display_error(f"Application Initialization Failed: {e}")
        raise typer.Exit(code=1)

    logger.info("All dependencies initialized successfully.")
    return dependencies


def create_command_handler() -> CommandHandler:
    return create_dependencies()['command_handler']


# --- Typer App Definition ---
app = typer.Typer(
    name="swiffcore",
    help="swiffcore: debounced persistence, managed tasks and resilient networking.",
    add_completion=False,
)


def run_async(coro: Coroutine[Any, Any, None]) -> None:
    """Runs an async command handler to completion from a sync Typer command."""
    asyncio.run(coro)


# --- CLI Commands ---

KindArgument = Annotated[
    str,
    typer.Argument(help=f"Entity kind: {', '.join(ENTITY_KINDS)}.")
]

ShowTasksOption = Annotated[
    bool,
    typer.Option("--show-tasks", help="Show task statistics and history after the command.")
]


@app.command(name="import")
def import_command(
    kind: KindArgument,
    file: Annotated[Path, typer.Argument(
        exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True,
        help="JSON or YAML file holding a list of records.",
    )],
    show_tasks: ShowTasksOption = False,
):
    """Import records from a file with progress reporting."""
    handler = create_command_handler()

    async def run() -> None:
        await handler.handle_import(kind, str(file))
        if show_tasks:
            handler.handle_tasks()

    run_async(run())


@app.command(name="list")
def list_command(kind: KindArgument):
    """List stored records of one kind."""
    handler = create_command_handler()
    run_async(handler.handle_list(kind))


@app.command()
def edit(
    kind: KindArgument,
    entity_id: Annotated[str, typer.Argument(help="ID of the record to edit.")],
    assignments: Annotated[List[str], typer.Argument(help="One or more field=value pairs.")],
    show_tasks: ShowTasksOption = False,
):
    """Edit a record; rapid edits are coalesced into one debounced save."""
    handler = create_command_handler()

    async def run() -> None:
        await handler.handle_edit(kind, entity_id, assignments)
        if show_tasks:
            handler.handle_tasks()

    run_async(run())


@app.command()
def delete(
    kind: KindArgument,
    entity_id: Annotated[str, typer.Argument(help="ID of the record to delete.")],
):
    """Delete a stored record."""
    handler = create_command_handler()
    run_async(handler.handle_delete(kind, entity_id))


@app.command()
def classify(
    status_code: Annotated[int, typer.Argument(help="HTTP status code to classify.")],
):
    """Show how an HTTP status code is classified and whether it is retried."""
    create_command_handler().handle_classify(status_code)


@app.command()
def backoff(
    profile: Annotated[str, typer.Option("--profile", "-p", help="Retry profile: default, aggressive or conservative.")] = "default",
):
    """Show the retry delay schedule of a profile."""
    create_command_handler().handle_backoff(profile)


@app.command()
def connectivity(
    timeout: Annotated[Optional[float], typer.Option("--timeout", "-t", help="Seconds before the check is abandoned.")] = None,
    show_tasks: ShowTasksOption = False,
):
    """Check internet connectivity."""
    handler = create_command_handler()

    async def run() -> None:
        await handler.handle_connectivity(timeout if timeout is not None else get_network_timeout())
        if show_tasks:
            handler.handle_tasks()

    run_async(run())


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        sys.exit(130)


if __name__ == "__main__":
    cli_entry_point()
