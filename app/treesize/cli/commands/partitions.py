"""Partitions command implementation.

Lists the mounted partitions available for tracking.
"""

import json
from typing import Annotated

import typer
from rich.table import Table

from treesize.cli.types import require_config
from treesize.core.partitions import list_partitions
from treesize.core.report import format_bytes
from treesize.utils.formatting import console, print_info


def partitions(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """List mounted partitions and whether they are tracked."""
    found = list_partitions()
    config = require_config()

    if json_output:
        console.print_json(
            json.dumps(
                [{**p.to_dict(), "tracked": p.path in config.partitions} for p in found]
            )
        )
        return

    if not found:
        print_info("No partitions found.")
        return

    table = Table(
        title="Partitions",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Mount", style="path")
    table.add_column("Label")
    table.add_column("Type", style="muted")
    table.add_column("Used", justify="right")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Tracked", justify="center")

    for partition in found:
        tracked = partition.path in config.partitions
        table.add_row(
            partition.path,
            partition.label,
            partition.filesystem,
            f"{partition.usage_percentage:.0f}%",
            format_bytes(partition.total_size),
            "[success]yes[/]" if tracked else "[muted]no[/]",
        )

    console.print(table)
