import logging
from typing import Any, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from swiffcore.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays plain output, optionally inside a titled panel.

        Args:
            output: The text to display.
            **kwargs: ``title`` wraps the text in a rounded panel.
        """
        title = kwargs.get("title")
        if title:
            self.console.print(
                Panel(Text(output), title=f"[bold cyan]{title}[/bold cyan]",
                      title_align="left", border_style="cyan", box=ROUNDED, padding=(0, 1))
            )
        else:
            self.console.print(output)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
            **kwargs: ``suggestion`` adds a recovery hint under the message.
        """
        body = Text(error_message, style="white")
        suggestion = kwargs.get("suggestion")
        if suggestion:
            body.append(f"\n{suggestion}", style="dim")
        panel = Panel(
            body,
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_table(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        title: Optional[str] = None,
    ) -> None:
        """Displays rows in a rounded cyan table; an empty result gets a dim note."""
        logger.debug(f"Displaying table '{title}' with {len(rows)} row(s)")
        if not rows:
            self.console.print(Text(f"No {title.lower() if title else 'rows'} to show.", style="dim"))
            return
        table = Table(title=title, show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        for column in columns:
            table.add_column(column, style="white")
        for row in rows:
            table.add_row(*(str(cell) for cell in row))
        self.console.print(table)

    def display_progress(self, fraction: float, message: Optional[str] = None) -> None:
        fraction = min(max(fraction, 0.0), 1.0)
        line = Table.grid(padding=(0, 1))
        line.add_column(width=30)
        line.add_column(justify="right", style="cyan")
        line.add_column(style="dim")
        line.add_row(
            ProgressBar(total=1.0, completed=fraction, width=30),
            f"{fraction * 100:.0f}%",
            message or "",
        )
        self.console.print(line)
