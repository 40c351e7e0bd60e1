import pytest
from unittest.mock import MagicMock
from rich.box import HEAVY, SIMPLE
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from swiffcore.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()


@pytest.fixture
def console_display(mock_console: MagicMock):
    """Fixture to create a ConsoleDisplay instance with a mocked console."""
    return ConsoleDisplay(console=mock_console)


def _printed(mock_console: MagicMock):
    mock_console.print.assert_called_once()
    args, _ = mock_console.print.call_args
    return args[0]


def test_display_output_plain(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_output("hello")
    mock_console.print.assert_called_once_with("hello")


def test_display_output_with_title(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_output("Task Statistics", title="Tasks")
    panel = _printed(mock_console)
    assert isinstance(panel, Panel)
    assert "Tasks" in panel.title


def test_display_error(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_error("Something went wrong", suggestion="Try again")
    panel = _printed(mock_console)
    assert isinstance(panel, Panel)
    assert panel.box is HEAVY
    assert "Error" in panel.title
    assert isinstance(panel.renderable, Text)
    assert panel.renderable.plain == "Something went wrong\nTry again"


def test_display_info(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_info("Process completed")
    panel = _printed(mock_console)
    assert panel.box is SIMPLE
    assert panel.renderable.plain == "Process completed"


def test_display_warning(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_warning("Careful")
    panel = _printed(mock_console)
    assert "Warning" in panel.title


def test_display_table(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_table(["id", "name"], [["p1", "Ada"], ["p2", "Grace"]], title="People")
    table = _printed(mock_console)
    assert isinstance(table, Table)
    assert [column.header for column in table.columns] == ["id", "name"]
    assert table.row_count == 2


def test_display_table_empty(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_table(["id"], [], title="People")
    note = _printed(mock_console)
    assert isinstance(note, Text)
    assert note.plain == "No people to show."


def test_display_progress_clamps(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_progress(1.7, "Importing")
    grid = _printed(mock_console)
    assert isinstance(grid, Table)
    assert grid.row_count == 1
