"""History command for viewing past scans.

This module provides the `treesize history` command for listing the
scan passes stored for each partition.
"""

import json
from datetime import datetime
from typing import Annotated

import typer
from rich.table import Table

from treesize.cli.types import get_service, require_config, resolve_partitions
from treesize.core.store import ScanInfo, StoreError
from treesize.models.scan import ScanStatus
from treesize.utils.formatting import console, print_error, print_info


def history(
    partition: Annotated[
        str | None,
        typer.Argument(help="Partition to show (default: all enabled partitions)."),
    ] = None,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of scans to show per partition.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show past scans, newest first.

    Examples:
        treesize history              # Last 20 scans of every partition
        treesize history / -n 5       # Last 5 scans of the root partition
    """
    config = require_config()
    service = get_service(config)

    scans: dict[str, list[ScanInfo]] = {}
    for name in resolve_partitions(config, partition):
        try:
            with service.open_store(name) as store:
                scans[name] = store.list_scans(limit=limit)
        except StoreError as e:
            print_error(f"Failed to read scans of {name}: {e}")
            raise typer.Exit(code=1) from e

    if json_output:
        payload = {name: [_scan_to_dict(s) for s in entries] for name, entries in scans.items()}
        console.print_json(json.dumps(payload))
        return

    for name, entries in scans.items():
        if not entries:
            print_info(f"No scans recorded for {name}.")
            continue
        _print_table(name, entries)


def _scan_to_dict(scan: ScanInfo) -> dict[str, object]:
    return {
        "scan_time": scan.scan_time.isoformat(),
        "status": scan.status.value,
        "started_at": scan.started_at.isoformat(),
        "finished_at": scan.finished_at.isoformat() if scan.finished_at else None,
        "records": scan.records,
    }


def _print_table(partition: str, entries: list[ScanInfo]) -> None:
    """Print the scans of one partition as a Rich table."""
    table = Table(
        title=f"Scan History ({partition})",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Scan Time")
    table.add_column("Status")
    table.add_column("Records", justify="right")
    table.add_column("Duration", justify="right", style="muted")

    for entry in entries:
        style = "success" if entry.status == ScanStatus.COMPLETED else "warning"
        table.add_row(
            _format_timestamp(entry.scan_time),
            f"[{style}]{entry.status.value}[/]",
            str(entry.records),
            _format_duration(entry),
        )

    console.print(table)


def _format_timestamp(value: datetime) -> str:
    """Format a timestamp in local time (YYYY-MM-DD HH:MM:SS)."""
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _format_duration(entry: ScanInfo) -> str:
    if entry.finished_at is None:
        return "-"
    return f"{(entry.finished_at - entry.started_at).total_seconds():.1f}s"
