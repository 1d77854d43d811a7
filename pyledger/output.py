"""Output formatting for the pyledger CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormatter:
    """Prints CLI output as rich text or as JSON."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
            console: Console for regular output (stdout)
            err_console: Console for errors and warnings (stderr)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        """Print a plain line (skipped in JSON mode)."""
        if not self.json_output:
            self.console.print(message, markup=False, soft_wrap=True)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if self.quiet or self.json_output:
            return
        self.console.print(message, markup=False, soft_wrap=True)

    def success(self, message: str) -> None:
        """Print a success message."""
        if self.quiet or self.json_output:
            return
        self.console.print(f"[green]{escape(message)}[/green]", soft_wrap=True)

    def warning(self, message: str) -> None:
        """Print a warning to stderr."""
        if self.quiet:
            return
        self.err_console.print(
            f"[yellow]Warning: {escape(message)}[/yellow]", soft_wrap=True
        )

    def error(self, message: str) -> None:
        """Print an error to stderr (never suppressed)."""
        if self.json_output:
            self.err_console.print(
                json.dumps({"error": message}), markup=False, soft_wrap=True
            )
            return
        self.err_console.print(f"[red]Error: {escape(message)}[/red]", soft_wrap=True)

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON."""
        self.console.print(
            json.dumps(data, indent=2, default=str), markup=False, soft_wrap=True
        )

    def output_table(
        self,
        rows: list[dict[str, Any]],
        columns: list[str],
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """Print rows as a table.

        Args:
            rows: One dictionary per row
            columns: Keys to show, in order
            headers: Optional display names for the columns
        """
        if self.json_output:
            self.output_json(rows)
            return

        headers = headers or {}
        table = Table(show_header=True, header_style="bold")
        for column in columns:
            table.add_column(headers.get(column, column))
        for row in rows:
            table.add_row(*(escape(str(row.get(column, ""))) for column in columns))
        self.console.print(table)

