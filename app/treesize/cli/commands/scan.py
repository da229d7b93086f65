"""Scan command implementation.

Walks the configured root folders of one or all partitions and stores a
new snapshot of their folder sizes.
"""

import json
from typing import Annotated

import typer
from rich.table import Table

from treesize.cli.types import get_service, require_config, resolve_partitions
from treesize.models.scan import ScanOutcome, ScanStatus
from treesize.utils.formatting import console, print_error, print_warning

_STATUS_STYLES: dict[ScanStatus, str] = {
    ScanStatus.COMPLETED: "success",
    ScanStatus.CANCELLED: "warning",
    ScanStatus.DEFERRED: "warning",
    ScanStatus.DISABLED: "muted",
    ScanStatus.FAILED: "error",
}


def scan(
    partition: Annotated[
        str | None,
        typer.Argument(help="Partition to scan (default: all enabled partitions)."),
    ] = None,
    parallel: Annotated[
        bool,
        typer.Option(
            "--parallel",
            "-p",
            help="Scan partitions concurrently.",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Scan partitions and record folder sizes.

    Examples:
        treesize scan                 # Scan every enabled partition
        treesize scan /mnt/data       # Scan one partition
        treesize scan --parallel      # Scan partitions concurrently
    """
    config = require_config()
    partitions = resolve_partitions(config, partition)
    service = get_service(config)

    if json_output:
        outcomes = service.perform_scan(partition, parallel=parallel)
    else:
        with console.status(f"Scanning {', '.join(partitions)}..."):
            outcomes = service.perform_scan(partition, parallel=parallel)

    if json_output:
        console.print_json(json.dumps([o.to_dict() for o in outcomes]))
    else:
        _print_table(outcomes)

    failed = [o for o in outcomes if o.status == ScanStatus.FAILED]
    for outcome in failed:
        print_error(f"Scan of {outcome.partition} failed: {outcome.error}")
    for outcome in outcomes:
        if outcome.status == ScanStatus.DEFERRED:
            print_warning(f"Scan of {outcome.partition} already in progress.")

    if failed:
        raise typer.Exit(code=1)


def _print_table(outcomes: list[ScanOutcome]) -> None:
    """Print scan outcomes as a Rich table."""
    table = Table(
        title="Scan Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Partition", style="path")
    table.add_column("Status")
    table.add_column("Folders", justify="right")
    table.add_column("Records", justify="right")

    for outcome in outcomes:
        style = _STATUS_STYLES.get(outcome.status, "text")
        table.add_row(
            outcome.partition,
            f"[{style}]{outcome.status.value}[/]",
            str(outcome.directories_scanned),
            str(outcome.records_written),
        )

    console.print(table)
