"""Diff command implementation.

Shows how folder sizes changed between the two most recent scans.
"""

import json
from typing import Annotated

import typer

from treesize.cli.types import get_service, require_config, resolve_partitions
from treesize.core.diff import DiffResult
from treesize.core.report import format_bytes
from treesize.core.scanner import ScanService
from treesize.core.store import StoreError
from treesize.models.snapshot import FolderSizeDiff
from treesize.utils.formatting import (
    console,
    create_diff_table,
    format_diff_row,
    print_error,
    print_info,
)


def diff(
    partition: Annotated[
        str | None,
        typer.Argument(help="Partition to compare (default: all enabled partitions)."),
    ] = None,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of folders to show per partition (0 for all).",
        ),
    ] = 20,
    include_incomplete: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
            help="Include scans that did not complete.",
        ),
    ] = False,
    folder: Annotated[
        str | None,
        typer.Option(
            "--path",
            "-p",
            help="Only show the change of this folder (path as recorded).",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show folder size changes between the two latest scans.

    Folders are ordered by the size of their change, largest first.
    Folders recorded by only one scan are not listed.

    Examples:
        treesize diff                 # Top changes of every partition
        treesize diff / -n 50         # Top 50 changes of the root partition
        treesize diff --json          # JSON output for scripting
        treesize diff -p /home/me     # Change of a single folder
    """
    config = require_config()
    service = get_service(config)
    partitions = resolve_partitions(config, partition)

    if folder is not None:
        _diff_folder(service, partitions, folder, include_incomplete, json_output)
        return

    results: list[DiffResult] = []
    for name in partitions:
        try:
            results.append(service.get_diffs(name, include_incomplete=include_incomplete))
        except StoreError as e:
            print_error(f"Failed to read snapshots of {name}: {e}")
            raise typer.Exit(code=1) from e

    if json_output:
        console.print_json(json.dumps([r.to_dict() for r in results]))
        return

    for result in results:
        _print_result(result, limit or None)


def _print_result(result: DiffResult, limit: int | None) -> None:
    """Print the changes of one partition."""
    changed = result.changed
    if not changed:
        print_info(f"No size changes recorded for {result.partition}.")
        return

    table = create_diff_table(f"Size Changes ({result.partition})")
    shown = result.top(limit)
    for entry in shown:
        table.add_row(*format_diff_row(entry))
    console.print(table)

    summary = (
        f"{len(changed)} of {len(result.diffs)} folders changed: "
        f"+{format_bytes(result.total_growth)} / -{format_bytes(abs(result.total_shrinkage))}"
    )
    if len(shown) < len(changed):
        summary += f" (showing {len(shown)})"
    console.print(f"\n[dim]{summary}[/]")


def _diff_folder(
    service: ScanService,
    partitions: list[str],
    folder: str,
    include_incomplete: bool,
    json_output: bool,
) -> None:
    """Print the change of one folder, looked up in every selected partition."""
    diffs: list[FolderSizeDiff] = []
    for name in partitions:
        try:
            found = service.get_path_diff(name, folder, include_incomplete=include_incomplete)
        except StoreError as e:
            print_error(f"Failed to read snapshots of {name}: {e}")
            raise typer.Exit(code=1) from e
        if found is not None:
            diffs.append(found)

    if json_output:
        console.print_json(json.dumps([d.to_dict() for d in diffs]))
        return

    if not diffs:
        print_info(f"No two scans recorded {folder}.")
        return

    table = create_diff_table(f"Size Change ({folder})")
    for entry in diffs:
        table.add_row(*format_diff_row(entry))
    console.print(table)
