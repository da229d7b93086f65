"""Tree command implementation.

Lists the child folders of a folder on the live filesystem, with the
depth override configured for each.
"""

import json
from typing import Annotated

import typer
from rich.tree import Tree

from treesize.cli.types import require_config
from treesize.core.config import get_partition_config
from treesize.core.tree import FolderTreeNode, list_child_folders, root_node
from treesize.utils.formatting import console, print_error, print_info


def tree(
    path: Annotated[
        str | None,
        typer.Argument(help="Folder to list (default: the partition root)."),
    ] = None,
    partition: Annotated[
        str,
        typer.Option(
            "--partition",
            "-P",
            help="Partition whose overrides are shown.",
        ),
    ] = "/",
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """List child folders and their depth overrides.

    Examples:
        treesize tree                       # Children of /
        treesize tree /home                 # Children of /home
        treesize tree /mnt/data/projects -P /mnt/data
    """
    config = get_partition_config(require_config(), partition)

    if path is None:
        node = root_node(config)
        if node is None:
            print_error(f"Partition root does not exist: {partition}")
            raise typer.Exit(code=1)
        parent = node.path
        label = node.name
    else:
        parent = path
        label = path

    children = list_child_folders(parent, config)

    if json_output:
        console.print_json(json.dumps([c.to_dict() for c in children]))
        return

    if not children:
        print_info(f"No visible subfolders in {parent}.")
        return

    root = Tree(f"[path]{label}[/]", guide_style="border")
    for child in children:
        root.add(_format_node(child))
    console.print(root)


def _format_node(node: FolderTreeNode) -> str:
    """Format a tree node label with its override depth."""
    marker = "" if node.has_children else " [muted](empty)[/]"
    override = "" if node.override_depth is None else f" [info]depth {node.override_depth}[/]"
    return f"{node.name}{override}{marker}"
