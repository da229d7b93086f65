"""Config commands.

Provides commands to inspect and edit the per-partition scan policy:
root folders, exclusion rules, inclusion overrides and scan depths.
"""

import json
from typing import Annotated

import typer
from rich.table import Table

from treesize.cli.types import require_config
from treesize.core.config import (
    ConfigError,
    create_default_partition_config,
    get_partition_config,
    save_config,
    set_folder_depth_override,
)
from treesize.core.policy import path_key
from treesize.models.config import (
    ExclusionKind,
    ExclusionRule,
    GlobalConfiguration,
    InclusionOverride,
    RootFolder,
    ScanConfiguration,
)
from treesize.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show and edit the scan configuration.",
    invoke_without_command=True,
    no_args_is_help=True,
)


def _save(config: GlobalConfiguration) -> None:
    """Save the configuration or exit with an error."""
    try:
        path = save_config(config)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_info(f"Configuration saved to {path}")


def _require_partition(config: GlobalConfiguration, partition: str) -> ScanConfiguration:
    """Get a configured partition or exit with a hint."""
    scan_config = config.partitions.get(partition)
    if scan_config is None:
        print_error(f"Partition not configured: {partition}")
        print_info(f"Run 'treesize config add-partition {partition}' first.")
        raise typer.Exit(code=1)
    return scan_config


@app.command()
def show(
    partition: Annotated[
        str | None,
        typer.Argument(help="Partition to show (default: all)."),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
) -> None:
    """Show the scan configuration."""
    config = require_config()
    if partition is not None:
        selected = [_require_partition(config, partition)]
    else:
        selected = list(config.partitions.values())

    if json_output:
        console.print_json(json.dumps([c.model_dump(mode="json") for c in selected]))
        return

    if not selected:
        print_info("No partitions configured.")
        return

    for scan_config in selected:
        _print_partition(scan_config)


@app.command("add-partition")
def add_partition(
    partition: Annotated[str, typer.Argument(help="Partition mount point or drive.")],
    default_depth: Annotated[
        int | None,
        typer.Option("--default-depth", "-d", min=0, help="Default scan depth."),
    ] = None,
) -> None:
    """Track a partition with the default scan policy."""
    config = require_config()
    if partition in config.partitions:
        print_info(f"Partition already configured: {partition}")
        return

    scan_config = create_default_partition_config(partition)
    scan_config.default_scan_depth = default_depth
    config.partitions[partition] = scan_config
    _save(config)
    print_success(f"Tracking partition {partition}")


@app.command("add-root")
def add_root(
    partition: Annotated[str, typer.Argument(help="Partition the folder belongs to.")],
    path: Annotated[str, typer.Argument(help="Root folder to scan.")],
    max_depth: Annotated[
        int | None,
        typer.Option("--depth", "-d", min=0, help="Scan depth below this root."),
    ] = None,
) -> None:
    """Add a root folder to a partition."""
    config = require_config()
    scan_config = get_partition_config(config, partition)

    if any(path_key(r.path) == path_key(path) for r in scan_config.root_folders):
        print_info(f"Root folder already configured: {path}")
        return

    scan_config.root_folders.append(RootFolder(path=path, max_depth=max_depth))
    _save(config)
    print_success(f"Added root folder {path}")


@app.command()
def exclude(
    partition: Annotated[str, typer.Argument(help="Partition the rule applies to.")],
    pattern: Annotated[str, typer.Argument(help="Path, name or pattern to exclude.")],
    kind: Annotated[
        ExclusionKind,
        typer.Option("--kind", "-k", case_sensitive=False, help="How the pattern matches."),
    ] = ExclusionKind.FOLDER_NAME,
    description: Annotated[
        str,
        typer.Option("--description", help="Note shown in 'config show'."),
    ] = "",
) -> None:
    """Add an exclusion rule to a partition."""
    config = require_config()
    scan_config = _require_partition(config, partition)

    scan_config.exclusion_rules.append(
        ExclusionRule(pattern=pattern, kind=kind, description=description)
    )
    _save(config)
    print_success(f"Excluding {kind.value} '{pattern}'")


@app.command()
def override(
    partition: Annotated[str, typer.Argument(help="Partition the folder belongs to.")],
    path: Annotated[str, typer.Argument(help="Folder to override.")],
    depth: Annotated[
        int,
        typer.Option("--depth", "-d", min=0, help="Scan depth below this folder."),
    ] = 1,
    force_include: Annotated[
        bool,
        typer.Option(
            "--force/--no-force",
            help="Scan the folder even if an exclusion rule matches it.",
        ),
    ] = True,
    description: Annotated[
        str,
        typer.Option("--description", help="Note shown in 'config show'."),
    ] = "",
) -> None:
    """Add or replace an inclusion override."""
    config = require_config()
    scan_config = _require_partition(config, partition)

    scan_config.inclusion_overrides = [
        o for o in scan_config.inclusion_overrides if path_key(o.path) != path_key(path)
    ]
    scan_config.inclusion_overrides.append(
        InclusionOverride(
            path=path,
            scan_depth=depth,
            force_include=force_include,
            description=description,
        )
    )
    _save(config)
    print_success(f"Override for {path}: depth {depth}")


@app.command()
def depth(
    partition: Annotated[str, typer.Argument(help="Partition the folder belongs to.")],
    path: Annotated[str, typer.Argument(help="Folder to set the depth of.")],
    value: Annotated[
        int | None,
        typer.Argument(min=0, help="Scan depth (omit to remove the override)."),
    ] = None,
) -> None:
    """Set or remove the depth override of a folder."""
    config = require_config()
    scan_config = _require_partition(config, partition)

    result = set_folder_depth_override(scan_config, path, value)
    _save(config)
    if result is None:
        print_success(f"Removed depth override for {path}")
    else:
        print_success(f"Depth override for {path}: {result.scan_depth}")


@app.command("default-depth")
def default_depth(
    partition: Annotated[str, typer.Argument(help="Partition to configure.")],
    value: Annotated[
        int | None,
        typer.Argument(min=0, help="Default scan depth (omit for unlimited)."),
    ] = None,
) -> None:
    """Set the default scan depth of a partition."""
    config = require_config()
    scan_config = _require_partition(config, partition)

    scan_config.default_scan_depth = value
    _save(config)
    shown = "unlimited" if value is None else str(value)
    print_success(f"Default scan depth of {partition}: {shown}")
    print_info("Run 'treesize reconcile' to apply a lower depth to stored scans.")


def _print_partition(scan_config: ScanConfiguration) -> None:
    """Print the policy of one partition."""
    state = "[success]enabled[/]" if scan_config.enabled else "[muted]disabled[/]"
    depth_text = (
        "unlimited" if scan_config.default_scan_depth is None else scan_config.default_scan_depth
    )
    console.print(f"\n[bold_header]{scan_config.partition_path}[/] ({state})")
    console.print(f"  Default depth: {depth_text}")

    roots = Table(title="Root Folders", header_style="bold_header", border_style="border")
    roots.add_column("Path", style="path")
    roots.add_column("Depth", justify="right")
    roots.add_column("Enabled", justify="center")
    for root in scan_config.root_folders:
        roots.add_row(
            root.path,
            "-" if root.max_depth is None else str(root.max_depth),
            "yes" if root.enabled else "no",
        )
    console.print(roots)

    if scan_config.exclusion_rules:
        rules = Table(title="Exclusions", header_style="bold_header", border_style="border")
        rules.add_column("Pattern")
        rules.add_column("Kind", style="muted")
        rules.add_column("Enabled", justify="center")
        rules.add_column("Description", style="muted")
        for rule in scan_config.exclusion_rules:
            rules.add_row(
                rule.pattern,
                rule.kind.value,
                "yes" if rule.enabled else "no",
                rule.description,
            )
        console.print(rules)

    if scan_config.inclusion_overrides:
        overrides = Table(title="Overrides", header_style="bold_header", border_style="border")
        overrides.add_column("Path", style="path")
        overrides.add_column("Depth", justify="right")
        overrides.add_column("Force", justify="center")
        overrides.add_column("Enabled", justify="center")
        for item in scan_config.inclusion_overrides:
            overrides.add_row(
                item.path,
                str(item.scan_depth),
                "yes" if item.force_include else "no",
                "yes" if item.enabled else "no",
            )
        console.print(overrides)
