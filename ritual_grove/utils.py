"""Shared utility functions for the ritual engine.

Provides Rich-based console output, logging setup and answer-file I/O.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ritual_grove.errors import ConfigurationError

console = Console()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def setup_logging(verbose: bool = False) -> None:
    """Route log records through Rich.

    Args:
        verbose: Emit DEBUG records (skips, submitted answers) as well.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Answer files
# ---------------------------------------------------------------------------


def load_answers(path: str | Path) -> dict[str, Any]:
    """Load a YAML or JSON answers file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file does not contain a mapping.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    data = json.loads(raw) if file_path.suffix == ".json" else yaml.safe_load(raw)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"answers file {file_path} must contain a mapping")
    return data


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, Any], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
