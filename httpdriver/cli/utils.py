"""
httpdriver - CLI Utilities
"""

from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.table import Table


console = Console()
err_console = Console(stderr=True)


def success(message: str):
    """Display success message."""
    console.print(f"[green]✓[/green] {message}")


def error(message: str):
    """Display error message."""
    err_console.print(f"[red]✗[/red] {message}")


def info(message: str):
    """Display info message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_key_value(data: Dict[str, Any], title: Optional[str] = None):
    """
    Print key-value pairs in a formatted way.

    Args:
        data: Dictionary of key-value pairs
        title: Optional title
    """
    table = Table(title=title, show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    for key, value in data.items():
        table.add_row(f"{key}:", str(value))

    console.print(table)


def parse_header(value: str) -> tuple[str, str]:
    """
    Parse a 'Name: value' header option.

    Raises:
        click.BadParameter: If the value has no colon or an empty name
    """
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise click.BadParameter(f"Header must look like 'Name: value', got {value!r}")
    return name.strip(), header_value.strip()


def parse_field(value: str) -> tuple[str, str]:
    """
    Parse a 'key=value' form field option.

    Raises:
        click.BadParameter: If the value has no '=' or an empty key
    """
    name, sep, field_value = value.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"Field must look like 'key=value', got {value!r}")
    return name, field_value
