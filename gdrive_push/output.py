"""Console output helpers."""

import json
from typing import Any, Optional

import click
from rich.console import Console


class OutputFormatter:
    """Writes status lines to stdout and diagnostics to stderr.

    Status lines (one per reconciled entry) are the program's actual
    output and are printed even in quiet mode.
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        self.quiet = quiet
        self._err_console = console

    @property
    def err_console(self) -> Console:
        # Created lazily so it binds to the sys.stderr in effect at use time
        if self._err_console is None:
            self._err_console = Console(stderr=True, highlight=False)
        return self._err_console

    def status(self, marker: str, line: str) -> None:
        """Print a reconciliation status line, e.g. ``+ /a/x.txt (10 B)``."""
        click.echo(f"{marker} {line}")

    def print(self, message: str = "") -> None:
        """Print a plain line to stdout unless quiet."""
        if not self.quiet:
            click.echo(message)

    def info(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(message, markup=False, soft_wrap=True)

    def success(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(
                message, style="green", markup=False, soft_wrap=True
            )

    def warning(self, message: str) -> None:
        self.err_console.print(message, style="yellow", markup=False, soft_wrap=True)

    def error(self, message: str) -> None:
        self.err_console.print(
            f"Error: {message}", style="bold red", markup=False, soft_wrap=True
        )

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON to stdout."""
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
