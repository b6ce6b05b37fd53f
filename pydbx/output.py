"""Output formatting for the CLI."""

import json
from typing import Any, Optional, Sequence

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .utils import format_size


class OutputFormatter:
    """Writes CLI output either as rich text or as JSON."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize the formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False, soft_wrap=True)
        self.err_console = Console(stderr=True, highlight=False, soft_wrap=True)

    def print(self, message: str) -> None:
        self.console.print(Text(message))

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(Text(message, style="cyan"))

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(Text(message, style="green"))

    def warning(self, message: str) -> None:
        self.err_console.print(Text(message, style="yellow"))

    def error(self, message: str) -> None:
        self.err_console.print(Text(f"Error: {message}", style="bold red"))

    def output_json(self, data: Any) -> None:
        # click.echo keeps the JSON free of console wrapping
        click.echo(json.dumps(data, indent=2, default=str))

    def print_table(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        title: Optional[str] = None,
    ) -> None:
        table = Table(title=title, show_edge=False, header_style="bold")
        for column in columns:
            table.add_column(column, overflow="fold")
        for row in rows:
            table.add_row(*(Text("" if v is None else str(v)) for v in row))
        self.console.print(table)

    def print_summary(self, title: str, items: Sequence[tuple[str, Any]]) -> None:
        """Print a titled list of key/value pairs."""
        if self.quiet:
            return
        self.console.print(Text(title, style="bold"))
        for key, value in items:
            self.console.print(Text(f"  {key}: {value}"))

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)
