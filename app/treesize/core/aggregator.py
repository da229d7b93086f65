"""Directory size aggregation primitives.

Provides the two measurements the tree walker needs: the stats of the
files directly inside one directory, and the rollup of an entire
subtree once the depth frontier is reached. Unreadable entries below
the measured directory contribute zero; failure to list the measured
directory itself is raised to the caller.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DirectoryStats:
    """Size counters of a directory.

    Attributes:
        size_bytes: Summed size of the counted files.
        file_count: Number of counted files.
        subfolder_count: Number of direct child directories.
    """

    size_bytes: int = 0
    file_count: int = 0
    subfolder_count: int = 0


@dataclass(frozen=True, slots=True)
class DirectoryListing:
    """Immediate stats of a directory plus its traversable children.

    Attributes:
        stats: Stats of the files directly inside the directory.
        subdirectories: Child directory paths that are not reparse points,
            sorted by name.
    """

    stats: DirectoryStats
    subdirectories: tuple[str, ...]


def is_reparse_point(entry: os.DirEntry[str]) -> bool:
    """Check if a directory entry redirects elsewhere (symlink or junction)."""
    return entry.is_symlink() or entry.is_junction()


def read_directory(path: str) -> DirectoryListing:
    """List one directory and measure the files directly inside it.

    Child directories are counted in ``subfolder_count`` whether or not
    they are reparse points, but only real directories are returned as
    traversable ``subdirectories``.

    Args:
        path: Directory to read.

    Returns:
        DirectoryListing for the directory.

    Raises:
        OSError: If the directory itself cannot be listed.
    """
    with os.scandir(path) as it:
        entries = sorted(it, key=lambda e: e.name)

    size = 0
    files = 0
    subfolders = 0
    children: list[str] = []

    for entry in entries:
        try:
            if entry.is_dir():
                subfolders += 1
                if not is_reparse_point(entry):
                    children.append(entry.path)
            elif entry.is_file(follow_symlinks=False):
                size += entry.stat(follow_symlinks=False).st_size
                files += 1
        except OSError as e:
            logger.debug("Could not stat entry %s: %s", entry.path, e)

    return DirectoryListing(
        stats=DirectoryStats(size_bytes=size, file_count=files, subfolder_count=subfolders),
        subdirectories=tuple(children),
    )


def immediate_stats(path: str) -> DirectoryStats:
    """Stats of the files directly inside a directory (non-recursive).

    Raises:
        OSError: If the directory cannot be listed.
    """
    return read_directory(path).stats


def recursive_stats(
    path: str,
    should_scan: Callable[[str], bool] | None = None,
) -> DirectoryStats:
    """Total size and file count of a whole subtree.

    Uses an explicit work stack, so arbitrarily deep trees do not grow
    the interpreter call stack. Reparse points are never entered, and
    descendants rejected by ``should_scan`` contribute nothing.

    Args:
        path: Subtree root.
        should_scan: Optional predicate deciding whether a descendant
            directory is included.

    Returns:
        DirectoryStats with subtree totals and the root's direct
        subfolder count.

    Raises:
        OSError: If the subtree root itself cannot be listed.
    """
    root = read_directory(path)
    total_size = root.stats.size_bytes
    total_files = root.stats.file_count

    def admitted(children: tuple[str, ...]) -> list[str]:
        if should_scan is None:
            return list(children)
        return [c for c in children if should_scan(c)]

    stack = admitted(root.subdirectories)
    stack.reverse()

    while stack:
        current = stack.pop()
        try:
            listing = read_directory(current)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", current, e)
            continue

        total_size += listing.stats.size_bytes
        total_files += listing.stats.file_count

        children = admitted(listing.subdirectories)
        children.reverse()
        stack.extend(children)

    return DirectoryStats(
        size_bytes=total_size,
        file_count=total_files,
        subfolder_count=root.stats.subfolder_count,
    )
