"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output.
Uses Rich for spinners, colored output and formatted summaries. Supports
verbosity levels and the --no-color flag.
"""

from contextlib import contextmanager
from typing import Iterator

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.spinner import Spinner

from src.portal_client.errors import RemoteError, SyncError
from src.sync_engine.models import OperationSummary


def describe_error(error: BaseException) -> str:
    """Render an error with its phase context, outermost phase first.

    Example:
        >>> describe_error(err)
        'Unable to complete export. Unable to fetch content types. Request failed: 500'
    """
    notes = list(getattr(error, '__notes__', []))
    return " ".join(list(reversed(notes)) + [str(error)])


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Content captured")
        >>> with handler.spinner("Capturing..."):
        ...     engine.capture()
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        self.verbosity = verbosity
        self.console = Console(
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(message)}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(escape(message))

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def print(self, message: str) -> None:
        self.console.print(escape(message))

    def failure(self, label: str, error: BaseException) -> None:
        """Display an operation failure with phase context and details."""
        self.error(f"{label} failed: {describe_error(error)}")
        if isinstance(error, RemoteError) and error.details:
            self.debug(f"Details: {error.details}")
        elif not isinstance(error, SyncError):
            self.debug(f"{type(error).__name__}")

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner while a long operation runs.

        Example:
            >>> with handler.spinner("Importing content..."):
            ...     engine.generate()
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10, transient=True):
            yield

    def print_summary(self, operation: str, summary: OperationSummary) -> None:
        """Display the counters of a capture, generate or cleanup run."""
        self.console.print(f"\n[bold]{operation} Summary:[/bold]")

        if summary.content_items > 0:
            self.console.print(f"  [green]✓[/green] Content items: {summary.content_items}")

        if summary.media_files > 0:
            self.console.print(f"  [green]✓[/green] Media files: {summary.media_files}")

        if summary.deleted_items > 0:
            self.console.print(f"  [red]✗[/red] Deleted content items: {summary.deleted_items}")

        if summary.deleted_blobs > 0:
            self.console.print(f"  [red]✗[/red] Deleted media files: {summary.deleted_blobs}")

        if summary.skipped > 0:
            self.console.print(f"  [yellow]⊘[/yellow] Skipped: {summary.skipped}")

        total = (
            summary.content_items + summary.media_files
            + summary.deleted_items + summary.deleted_blobs + summary.skipped
        )
        if total == 0:
            self.console.print("\n[yellow]Nothing to do[/yellow]")
