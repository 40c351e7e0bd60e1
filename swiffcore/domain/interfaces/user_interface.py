"""Interface for interacting with the user (output only).

Defines the contract for displaying information, errors, warnings,
tables and progress, allowing different UI implementations.
"""

import abc
from typing import Any, Optional, Sequence


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The text to display.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_table(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        title: Optional[str] = None,
    ) -> None:
        """Displays tabular data.

        Args:
            columns: Column headers.
            rows: One sequence of cell values per row.
            title: Optional table title.
        """
        pass

    @abc.abstractmethod
    def display_progress(self, fraction: float, message: Optional[str] = None) -> None:
        """Displays the progress of a running operation.

        Args:
            fraction: Completed share of the work, 0.0 .. 1.0.
            message: Optional status line.
        """
        pass
