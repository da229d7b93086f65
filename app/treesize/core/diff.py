"""Diff engine for comparing the two latest scans of a partition.

This module provides the DiffEngine class that pairs, for every folder
path in a partition's snapshot store, its two most recent snapshots and
reports the size change between them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from treesize.models.snapshot import FolderSizeDiff

if TYPE_CHECKING:
    from treesize.core.store import SnapshotStore


@dataclass(frozen=True, slots=True)
class DiffResult:
    """Size changes of one partition.

    Attributes:
        partition: Partition the diffs belong to.
        diffs: One entry per path with at least two snapshots, sorted by
            absolute size difference (largest first), then path.
    """

    partition: str
    diffs: tuple[FolderSizeDiff, ...]

    @property
    def changed(self) -> tuple[FolderSizeDiff, ...]:
        """Diffs whose size actually changed."""
        return tuple(d for d in self.diffs if d.size_difference != 0)

    @property
    def total_growth(self) -> int:
        """Summed positive size differences in bytes."""
        return sum(d.size_difference for d in self.diffs if d.size_difference > 0)

    @property
    def total_shrinkage(self) -> int:
        """Summed negative size differences in bytes (as a negative number)."""
        return sum(d.size_difference for d in self.diffs if d.size_difference < 0)

    def top(self, limit: int | None) -> tuple[FolderSizeDiff, ...]:
        """Largest changes, at most ``limit`` of them (all if None)."""
        changed = self.changed
        return changed if limit is None else changed[:limit]

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "partition": self.partition,
            "summary": {
                "paths": len(self.diffs),
                "changed": len(self.changed),
                "growth": self.total_growth,
                "shrinkage": self.total_shrinkage,
            },
            "diffs": [d.to_dict() for d in self.diffs],
        }


def sort_key(diff: FolderSizeDiff) -> tuple[int, str]:
    """Ordering of diffs: largest absolute change first, then path."""
    return (-abs(diff.size_difference), diff.path)


class DiffEngine:
    """Engine for computing size changes between consecutive scans.

    A path with fewer than two snapshots yields no diff at all (it is
    omitted, not reported as zero).

    Example:
        >>> with SnapshotStore("/") as store:
        ...     result = DiffEngine(store).get_latest_diffs()
        >>> for diff in result.top(10):
        ...     print(diff.path, diff.size_difference)
    """

    def __init__(self, store: SnapshotStore) -> None:
        """Initialize the DiffEngine with a partition store.

        Args:
            store: Snapshot store of the partition to compare.
        """
        self.store = store

    def diff_path(self, path: str, *, include_incomplete: bool = False) -> FolderSizeDiff | None:
        """Diff the two most recent snapshots of a single path.

        Args:
            path: Folder path as recorded.
            include_incomplete: Also consider scans that did not complete.

        Returns:
            FolderSizeDiff, or None if the path has fewer than two snapshots.
        """
        latest = self.store.query_latest_two_by_path(path, completed_only=not include_incomplete)
        if len(latest) < 2:
            return None
        current, previous = latest[0], latest[1]
        return FolderSizeDiff(
            path=path,
            previous_size=previous.size_bytes,
            current_size=current.size_bytes,
            previous_scan=previous.scan_time,
            current_scan=current.scan_time,
        )

    def get_latest_diffs(self, *, include_incomplete: bool = False) -> DiffResult:
        """Diff the two most recent snapshots of every path.

        Args:
            include_incomplete: Also consider scans that did not complete.

        Returns:
            DiffResult with every path that has at least two snapshots.

        Raises:
            StoreError: If the store cannot be read.
        """
        latest = self.store.query_latest_per_path(2, completed_only=not include_incomplete)

        diffs: list[FolderSizeDiff] = []
        for path, snapshots in latest.items():
            if len(snapshots) < 2:
                continue
            current, previous = snapshots[0], snapshots[1]
            diffs.append(
                FolderSizeDiff(
                    path=path,
                    previous_size=previous.size_bytes,
                    current_size=current.size_bytes,
                    previous_scan=previous.scan_time,
                    current_scan=current.scan_time,
                )
            )

        diffs.sort(key=sort_key)
        return DiffResult(partition=self.store.partition, diffs=tuple(diffs))
