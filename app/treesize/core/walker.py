"""Depth-bounded directory tree walker.

Walks the root folders of one partition, consulting the policy resolver
at every node, and produces folder size snapshots: one record per folder
above the depth frontier (immediate stats) and one aggregate record per
frontier folder (whole subtree). All mutable traversal state lives in a
ScanContext owned by a single scan pass.
"""

import logging
import os
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime

from treesize.core.aggregator import read_directory, recursive_stats
from treesize.core.policy import PolicyResolver, clamp_depth, normalize_path
from treesize.models.config import MAX_SCAN_DEPTH, RootFolder
from treesize.models.scan import ScanProgress
from treesize.models.snapshot import FolderSizeSnapshot

logger = logging.getLogger(__name__)

# Records accumulated before a batch is handed to the store.
DEFAULT_BATCH_SIZE = 1000

# Visited-path set size above which it is cleared at the next flush.
VISITED_PATHS_LIMIT = 10_000


@dataclass
class ScanContext:
    """Traversal state of one scan pass over one partition.

    A context must never be shared between concurrent scans.

    Attributes:
        policy: Policy resolver for the partition being scanned.
        scan_time: Timestamp stamped on every record of this pass.
        progress: Progress counters exposed to observers.
        cancel_event: Set to request cooperative cancellation.
        visited_limit: Visited-set size that triggers a clear on flush.
        visited: Normalized paths already visited in this pass.
    """

    policy: PolicyResolver
    scan_time: datetime
    progress: ScanProgress = field(default_factory=ScanProgress)
    cancel_event: threading.Event = field(default_factory=threading.Event)
    visited_limit: int = VISITED_PATHS_LIMIT
    visited: set[str] = field(default_factory=set)

    @property
    def cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self.cancel_event.is_set()

    def mark_visited(self, path: str) -> bool:
        """Mark a path visited.

        Returns:
            False if the path was already visited in this pass.
        """
        key = normalize_path(path)
        if key in self.visited:
            return False
        self.visited.add(key)
        return True

    def trim_visited(self) -> None:
        """Clear the visited set once it grows past the limit.

        A cleared entry can be walked again if reached through another
        path, which repeats work but never loops.
        """
        if len(self.visited) > self.visited_limit:
            logger.debug("Clearing %d visited paths to free memory", len(self.visited))
            self.visited.clear()


class TreeWalker:
    """Produces folder size snapshots for the root folders of a partition.

    Args:
        context: Scan-scoped traversal state.
    """

    def __init__(self, context: ScanContext) -> None:
        self._context = context
        self._policy = context.policy

    def iter_batches(
        self,
        roots: Iterable[RootFolder],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Iterator[list[FolderSizeSnapshot]]:
        """Walk every root and yield records in batches.

        Args:
            roots: Root folders to walk, in order.
            batch_size: Maximum records per yielded batch.

        Yields:
            Non-empty lists of at most ``batch_size`` snapshots.
        """
        batch: list[FolderSizeSnapshot] = []
        for root in roots:
            if self._context.cancelled:
                break
            for record in self.walk_root(root):
                batch.append(record)
                if len(batch) >= batch_size:
                    yield batch
                    batch = []
                    self._context.trim_visited()
        if batch:
            yield batch

    def walk_root(self, root: RootFolder) -> Iterator[FolderSizeSnapshot]:
        """Walk one root folder.

        A missing root is logged and produces no records.

        Args:
            root: Root folder to walk.

        Yields:
            Snapshots in depth-first order, parents before children.
        """
        if not os.path.isdir(root.path):
            logger.warning("Root folder does not exist: %s", root.path)
            return

        ceiling = self._policy.effective_max_depth(root)
        yield from self._visit(root.path, 0, ceiling)

    def _visit(self, path: str, depth: int, ceiling: int) -> Iterator[FolderSizeSnapshot]:
        """Visit one node and, above the frontier, its children.

        Args:
            path: Folder path as walked.
            depth: Levels below the root folder.
            ceiling: Depth at which the subtree is aggregated.
        """
        context = self._context
        if context.cancelled:
            return

        if not context.mark_visited(path):
            logger.debug("Already visited: %s", path)
            return

        override = self._policy.find_inclusion_override(path)
        if not self._policy.should_scan(path, override):
            logger.debug("Excluded folder: %s", path)
            return

        if override is not None:
            ceiling = min(depth + clamp_depth(override.scan_depth), MAX_SCAN_DEPTH)
            logger.debug(
                "Applying inclusion override for %s with depth %d", path, override.scan_depth
            )

        context.progress.visit(path)
        children: tuple[str, ...] = ()
        try:
            if depth >= ceiling:
                stats = recursive_stats(path, self._policy.should_scan)
            else:
                listing = read_directory(path)
                stats = listing.stats
                children = listing.subdirectories
        except PermissionError:
            logger.warning("Access denied to folder: %s", path)
            return
        except OSError as e:
            logger.warning("Error scanning folder %s: %s", path, e)
            return

        yield FolderSizeSnapshot(
            path=path,
            size_bytes=stats.size_bytes,
            file_count=stats.file_count,
            subfolder_count=stats.subfolder_count,
            scan_time=context.scan_time,
        )

        for child in children:
            yield from self._visit(child, depth + 1, ceiling)
