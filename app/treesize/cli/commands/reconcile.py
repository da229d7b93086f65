"""Reconcile command implementation.

Prunes stored snapshots that the current scan policy would no longer
record, after a depth or exclusion change.
"""

import json
from typing import Annotated

import typer

from treesize.cli.types import get_service, require_config, resolve_partitions
from treesize.core.reconcile import ReconcileResult
from treesize.core.store import StoreError
from treesize.utils.formatting import console, print_error, print_info, print_success


def reconcile(
    partition: Annotated[
        str | None,
        typer.Argument(help="Partition to reconcile (default: all enabled partitions)."),
    ] = None,
    no_rollup: Annotated[
        bool,
        typer.Option(
            "--no-rollup",
            help="Delete pruned records without adding their sizes to the kept ancestor.",
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
    """Bring stored snapshots in line with the current configuration.

    Run this after lowering a scan depth or adding an exclusion so that
    diffs compare like with like.

    Examples:
        treesize reconcile            # Reconcile every enabled partition
        treesize reconcile /mnt/data  # Reconcile one partition
    """
    config = require_config()
    partitions = resolve_partitions(config, partition)
    service = get_service(config)

    results: dict[str, ReconcileResult] = {}
    for name in partitions:
        try:
            results.update(service.reconcile(name, roll_up=not no_rollup))
        except StoreError as e:
            print_error(f"Failed to reconcile {name}: {e}")
            raise typer.Exit(code=1) from e

    if json_output:
        console.print_json(json.dumps({name: r.to_dict() for name, r in results.items()}))
        return

    for name in partitions:
        result = results.get(name)
        if result is None:
            print_info(f"Skipped {name}: a scan is in progress.")
        elif result.total_removed == 0:
            print_info(f"{name}: snapshots already match the configuration.")
        else:
            print_success(
                f"{name}: removed {result.total_removed} records, "
                f"rolled up {len(result.updated_paths)} "
                f"across {result.scans_processed} scans."
            )
