"""Retroactive reconciliation of stored snapshots with the current policy.

When the depth or exclusion policy of a partition changes, snapshots
recorded by earlier scans may contain folders the current policy would
never record. The ReconciliationEngine brings each stored scan pass back
in line without walking the filesystem again:

- records of folders the walker would now skip (excluded and not
  force-included, or below such a folder) are deleted;
- records deeper than the allowed depth under their controlling path are
  deleted and, when roll-up is enabled, their sizes are added to the
  retained ancestor at the allowed depth.

Each scan pass is reconciled independently, in its own transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import PurePath
from typing import TYPE_CHECKING

from treesize.core.policy import PolicyResolver, clamp_depth, normalize_path
from treesize.models.config import MAX_SCAN_DEPTH, ScanConfiguration
from treesize.models.snapshot import FolderSizeSnapshot

if TYPE_CHECKING:
    from treesize.core.store import SnapshotStore

logger = logging.getLogger(__name__)

PathParts = tuple[str, ...]


def _split(path: str) -> tuple[PathParts, PathParts]:
    """Split a path into its normalized parts and their casefolded keys."""
    parts = PurePath(normalize_path(path)).parts
    return parts, tuple(p.casefold() for p in parts)


@dataclass(frozen=True, slots=True)
class ControllingPath:
    """A path whose depth budget governs the folders below it.

    Attributes:
        path: Normalized path (a root folder or an inclusion override).
        key: Casefolded path segments used for prefix matching.
        max_depth: Levels below ``path`` that may be recorded individually.
        base: Depth of ``path`` below the root folder it is walked from.
    """

    path: str
    key: PathParts
    max_depth: int
    base: int = 0


@dataclass(frozen=True, slots=True)
class ReconcilePlan:
    """Changes needed to bring one scan pass in line with the policy.

    Attributes:
        removals: Records to delete.
        updates: Retained records with rolled-up size and file count.
    """

    removals: tuple[FolderSizeSnapshot, ...] = ()
    updates: tuple[FolderSizeSnapshot, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Check if the scan pass already complies with the policy."""
        return not (self.removals or self.updates)


@dataclass
class ReconcileResult:
    """Summary of a reconciliation run.

    Attributes:
        total_removed: Number of records deleted.
        removed_paths: Paths of the deleted records.
        updated_paths: Paths of records whose size was rolled up.
        scans_processed: Number of scan passes examined.
    """

    total_removed: int = 0
    removed_paths: list[str] = field(default_factory=list)
    updated_paths: list[str] = field(default_factory=list)
    scans_processed: int = 0

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary for JSON output."""
        return {
            "total_removed": self.total_removed,
            "removed_paths": list(self.removed_paths),
            "updated_paths": list(self.updated_paths),
            "scans_processed": self.scans_processed,
        }


def build_depth_map(config: ScanConfiguration) -> list[ControllingPath]:
    """Build the controlling paths of a partition.

    Enabled root folders control their subtrees from depth zero. An
    enabled inclusion override replaces a root naming the same path, and
    below a root it only controls anything when the walker reaches it:
    its offset under the enclosing controlling path must not exceed that
    path's depth. Overrides past the frontier, or outside every root, are
    left out so their records fall back to the enclosing path. Override
    depths are capped so the absolute depth below the root stays within
    MAX_SCAN_DEPTH.

    Args:
        config: Partition scan configuration.

    Returns:
        Controlling paths, longest (most specific) first.
    """
    controlling: dict[PathParts, ControllingPath] = {}
    for root in config.active_roots:
        parts, key = _split(root.path)
        if key not in controlling:
            depth = root.max_depth if root.max_depth is not None else config.default_scan_depth
            controlling[key] = ControllingPath(str(PurePath(*parts)), key, clamp_depth(depth))

    overrides: dict[PathParts, tuple[PathParts, int]] = {}
    for override in config.active_overrides:
        parts, key = _split(override.path)
        overrides.setdefault(key, (parts, override.scan_depth))

    for key in sorted(overrides, key=len):
        parts, scan_depth = overrides[key]
        path = str(PurePath(*parts))
        enclosing = _longest_prefix(controlling.values(), key)
        if enclosing is None:
            logger.debug("Override outside every root folder: %s", path)
            continue

        offset = len(key) - len(enclosing.key)
        if offset > enclosing.max_depth:
            logger.debug("Override below the depth frontier of %s: %s", enclosing.path, path)
            continue

        base = enclosing.base + offset
        max_depth = min(clamp_depth(scan_depth), MAX_SCAN_DEPTH - base)
        controlling[key] = ControllingPath(path, key, max_depth, base)

    return sorted(controlling.values(), key=lambda c: len(c.key), reverse=True)


def _longest_prefix(
    candidates: Iterable[ControllingPath], key: PathParts
) -> ControllingPath | None:
    """Longest candidate whose segments prefix ``key``."""
    best: ControllingPath | None = None
    for candidate in candidates:
        if key[: len(candidate.key)] == candidate.key and (
            best is None or len(candidate.key) > len(best.key)
        ):
            best = candidate
    return best


class ReconciliationEngine:
    """Prunes stored snapshots that the current policy would not record.

    Args:
        config: Current scan configuration of the partition.
        roll_up: Add the sizes of pruned deep records to their retained
            ancestor at the allowed depth.
    """

    def __init__(self, config: ScanConfiguration, *, roll_up: bool = True) -> None:
        self._config = config
        self._policy = PolicyResolver(config)
        self._depth_map = build_depth_map(config)
        self._roll_up = roll_up
        self._scan_cache: dict[str, bool] = {}

    @property
    def depth_map(self) -> list[ControllingPath]:
        """Controlling paths, most specific first."""
        return list(self._depth_map)

    def controlling_path(self, path: str) -> ControllingPath | None:
        """Most specific controlling path containing ``path``.

        Matching is on whole path segments, case-insensitive.
        """
        _, key = _split(path)
        return self._match(key)

    def _match(self, key: PathParts) -> ControllingPath | None:
        for candidate in self._depth_map:
            if key[: len(candidate.key)] == candidate.key:
                return candidate
        return None

    def _outermost(self, key: PathParts) -> ControllingPath | None:
        for candidate in reversed(self._depth_map):
            if key[: len(candidate.key)] == candidate.key:
                return candidate
        return None

    def _is_walkable(self, parts: PathParts, key: PathParts) -> bool:
        """Check if the walker would reach this path under the current rules.

        Every folder from the outermost root down to the path itself
        must pass the exclusion check.
        """
        outer = self._outermost(key)
        start = len(outer.key) if outer is not None else len(parts)
        for end in range(start, len(parts) + 1):
            ancestor = str(PurePath(*parts[:end]))
            cached = self._scan_cache.get(ancestor)
            if cached is None:
                cached = self._policy.should_scan(ancestor)
                self._scan_cache[ancestor] = cached
            if not cached:
                return False
        return True

    def plan(self, records: Iterable[FolderSizeSnapshot]) -> ReconcilePlan:
        """Compute the changes for the records of a single scan pass.

        Args:
            records: Records sharing one scan timestamp.

        Returns:
            ReconcilePlan with the records to delete and to rewrite.
        """
        by_key: dict[PathParts, FolderSizeSnapshot] = {}
        entries: list[tuple[FolderSizeSnapshot, PathParts, PathParts]] = []
        for record in records:
            parts, key = _split(record.path)
            by_key.setdefault(key, record)
            entries.append((record, parts, key))

        removals: list[FolderSizeSnapshot] = []
        rolled: dict[PathParts, tuple[int, int]] = {}

        for record, parts, key in entries:
            controlling = self._match(key)
            if controlling is None:
                continue

            if not self._is_walkable(parts, key):
                logger.debug("Pruning excluded record: %s", record.path)
                removals.append(record)
                continue

            depth = len(key) - len(controlling.key)
            if depth <= controlling.max_depth:
                continue

            removals.append(record)
            target = key[: len(controlling.key) + controlling.max_depth]
            size, files = rolled.get(target, (0, 0))
            rolled[target] = (size + record.size_bytes, files + record.file_count)

        updates: list[FolderSizeSnapshot] = []
        if self._roll_up:
            for target, (size, files) in rolled.items():
                ancestor = by_key.get(target)
                if ancestor is None:
                    logger.debug("No stored ancestor to roll up into: %s", "/".join(target))
                    continue
                updates.append(
                    replace(
                        ancestor,
                        size_bytes=ancestor.size_bytes + size,
                        file_count=ancestor.file_count + files,
                    )
                )

        return ReconcilePlan(removals=tuple(removals), updates=tuple(updates))

    def reconcile(self, store: SnapshotStore) -> ReconcileResult:
        """Reconcile every stored scan pass of the partition.

        Args:
            store: Snapshot store of the partition.

        Returns:
            ReconcileResult summarizing the removed and updated records.

        Raises:
            StoreError: If the store cannot be read or a transaction fails.
        """
        result = ReconcileResult()
        records = store.query_by_path_prefix(self._config.partition_path)

        groups: dict[datetime, list[FolderSizeSnapshot]] = {}
        for record in records:
            groups.setdefault(record.scan_time, []).append(record)

        for scan_time, group in groups.items():
            result.scans_processed += 1
            plan = self.plan(group)
            if plan.is_empty:
                continue

            if plan.updates:
                removed = store.apply_reconciliation(plan.removals, plan.updates)
            else:
                removed = store.remove_batch(plan.removals)
            result.total_removed += removed
            result.removed_paths.extend(r.path for r in plan.removals)
            result.updated_paths.extend(r.path for r in plan.updates)
            logger.info(
                "Removed %d entries and rolled up %d from scan %s",
                removed,
                len(plan.updates),
                scan_time.isoformat(),
            )

        return result
