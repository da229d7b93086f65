"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from treesize.core.report import format_bytes, is_significant
from treesize.core.theme import get_theme

if TYPE_CHECKING:
    from treesize.models.snapshot import FolderSizeDiff


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_diff_table(title: str = "Size Changes") -> Table:
    """Create a pre-configured table for displaying folder size changes.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for diff display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Folder", style="path", overflow="fold")
    table.add_column("Previous", style="muted", justify="right")
    table.add_column("Current", style="size", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("%", justify="right")
    return table


def format_diff_row(diff: FolderSizeDiff) -> tuple[str, str, str, str, str, str]:
    """Format a folder size change as a table row.

    Growth is shown with an up arrow, shrinkage with a down arrow, and
    significant changes are highlighted.

    Args:
        diff: The size change to format.

    Returns:
        Tuple of (icon, path, previous, current, change, percent) with Rich markup.
    """
    style = "growth" if diff.size_difference > 0 else "shrink"
    icon = f"[{style}]▲[/]" if diff.size_difference > 0 else f"[{style}]▼[/]"
    sign = "+" if diff.size_difference > 0 else "-"
    change = f"[{style}]{sign}{format_bytes(abs(diff.size_difference))}[/]"
    percent_style = "significant" if is_significant(diff) else style
    percent = f"[{percent_style}]{diff.percentage_change:+.2f}%[/]"

    return (
        icon,
        diff.path,
        format_bytes(diff.previous_size),
        format_bytes(diff.current_size),
        change,
        percent,
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
