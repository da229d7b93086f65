"""On-demand folder tree listing.

Lists the live filesystem (not the snapshot store) one level at a time
so a user can pick folders to give a depth override. Hidden folders and
reparse points are left out.
"""

import logging
import os
from dataclasses import dataclass

from treesize.core.policy import path_key
from treesize.models.config import ScanConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FolderTreeNode:
    """One folder in the browsing tree.

    Attributes:
        path: Full folder path.
        name: Display name.
        has_children: True if the folder has at least one subfolder.
        override_depth: Configured override depth, if any.
    """

    path: str
    name: str
    has_children: bool = False
    override_depth: int | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary for JSON output."""
        return {
            "path": self.path,
            "name": self.name,
            "has_children": self.has_children,
            "override_depth": self.override_depth,
        }


def _override_depths(config: ScanConfiguration) -> dict[str, int]:
    depths: dict[str, int] = {}
    for override in config.active_overrides:
        depths.setdefault(path_key(override.path), override.scan_depth)
    return depths


def has_subdirectories(path: str) -> bool:
    """Check if a folder has any subfolder (False if unreadable)."""
    try:
        with os.scandir(path) as it:
            return any(entry.is_dir() for entry in it)
    except OSError:
        return False


def _is_hidden(entry: os.DirEntry[str]) -> bool:
    return entry.name.startswith(".")


def root_node(config: ScanConfiguration) -> FolderTreeNode | None:
    """The partition root as a tree node, or None if it does not exist."""
    root = config.partition_path
    if len(root) == 2 and root[1] == ":":
        root += os.sep
    if not os.path.isdir(root):
        return None
    return FolderTreeNode(
        path=root,
        name=config.partition_path,
        has_children=has_subdirectories(root),
        override_depth=_override_depths(config).get(path_key(root)),
    )


def list_child_folders(parent: str, config: ScanConfiguration) -> list[FolderTreeNode]:
    """List the visible child folders of a folder.

    Args:
        parent: Folder to list.
        config: Partition configuration supplying override depths.

    Returns:
        Child folder nodes sorted by name. Empty if ``parent`` is unreadable.
    """
    depths = _override_depths(config)
    nodes: list[FolderTreeNode] = []

    try:
        with os.scandir(parent) as it:
            entries = list(it)
    except PermissionError:
        logger.debug("Access denied to directory: %s", parent)
        return []
    except OSError as e:
        logger.error("Error listing child folders of %s: %s", parent, e)
        return []

    for entry in entries:
        try:
            if not entry.is_dir() or _is_hidden(entry):
                continue
            if entry.is_symlink() or entry.is_junction():
                continue
        except OSError as e:
            logger.debug("Error processing directory %s: %s", entry.path, e)
            continue

        nodes.append(
            FolderTreeNode(
                path=entry.path,
                name=entry.name,
                has_children=has_subdirectories(entry.path),
                override_depth=depths.get(path_key(entry.path)),
            )
        )

    nodes.sort(key=lambda n: n.name)
    return nodes
