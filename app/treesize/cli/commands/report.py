"""Report command implementation.

Writes CSV and text reports of the latest size changes.
"""

from typing import Annotated

import typer

from treesize.cli.types import get_service, require_config, resolve_partitions
from treesize.core.report import generate_reports
from treesize.core.store import StoreError
from treesize.utils.formatting import print_error, print_info, print_success


def report(
    partition: Annotated[
        str | None,
        typer.Argument(help="Partition to report on (default: all enabled partitions)."),
    ] = None,
) -> None:
    """Write size change reports to the reports directory.

    Examples:
        treesize report               # One report pair per partition
        treesize report /             # Root partition only
    """
    config = require_config()
    service = get_service(config)

    for name in resolve_partitions(config, partition):
        try:
            result = service.get_diffs(name)
            files = generate_reports(result.diffs, partition=name)
        except StoreError as e:
            print_error(f"Failed to read snapshots of {name}: {e}")
            raise typer.Exit(code=1) from e
        except (OSError, RuntimeError) as e:
            print_error(f"Failed to write reports for {name}: {e}")
            raise typer.Exit(code=1) from e

        print_success(f"Reports for {name} written.")
        print_info(f"  CSV:  {files.csv_path}")
        print_info(f"  Text: {files.text_path}")
