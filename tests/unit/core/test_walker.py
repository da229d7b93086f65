"""Unit tests for the tree walker.

Tests for depth-bounded traversal, overrides, cycle protection, error
isolation, batching and cancellation.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from treesize.core.aggregator import read_directory
from treesize.core.policy import PolicyResolver
from treesize.core.walker import ScanContext, TreeWalker
from treesize.models.config import (
    ExclusionKind,
    ExclusionRule,
    InclusionOverride,
    RootFolder,
    ScanConfiguration,
)
from treesize.models.snapshot import FolderSizeSnapshot

SCAN_TIME = datetime(2026, 3, 1, tzinfo=UTC)


def _walk(config: ScanConfiguration, batch_size: int = 1000) -> list[FolderSizeSnapshot]:
    context = ScanContext(policy=PolicyResolver(config), scan_time=SCAN_TIME)
    walker = TreeWalker(context)
    return [r for batch in walker.iter_batches(config.active_roots, batch_size) for r in batch]


def _by_path(records: list[FolderSizeSnapshot], base: Path) -> dict[str, FolderSizeSnapshot]:
    return {str(Path(r.path).relative_to(base)): r for r in records}


class TestDepthFrontier:
    """Tests for recording above and at the depth frontier."""

    def test_depth_one(self, data_tree: Path, scan_config: ScanConfiguration) -> None:
        """Depth 1 records the root's own files and aggregates each child."""
        scan_config.default_scan_depth = 1
        records = _by_path(_walk(scan_config), data_tree)

        assert list(records) == [".", "a", "empty", "logs"]
        assert records["."].size_bytes == 10
        assert records["."].subfolder_count == 3
        assert records["a"].size_bytes == 100 + 1000 + 10000
        assert records["a"].file_count == 3
        assert records["logs"].size_bytes == 50 + 500 + 5000
        assert records["empty"].size_bytes == 0

    def test_depth_zero_aggregates_root(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """Depth 0 produces one aggregate record for the root."""
        scan_config.default_scan_depth = 0
        records = _walk(scan_config)

        assert len(records) == 1
        assert records[0].size_bytes == 16660
        assert records[0].file_count == 7

    def test_unbounded_depth_records_every_folder(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """Without a depth limit every folder gets its immediate stats."""
        records = _by_path(_walk(scan_config), data_tree)

        assert set(records) == {
            ".",
            "a",
            "a/b",
            "a/b/c",
            "empty",
            "logs",
            "logs/2026",
            "logs/2026/01",
        }
        assert records["a"].size_bytes == 100
        assert sum(r.size_bytes for r in records.values()) == 16660

    def test_parents_before_children(self, data_tree: Path, scan_config: ScanConfiguration) -> None:
        """Records are emitted depth-first, each parent before its children."""
        paths = [r.path for r in _walk(scan_config)]
        for index, path in enumerate(paths):
            parent = str(Path(path).parent)
            if parent in paths:
                assert paths.index(parent) < index

    def test_single_scan_time(self, data_tree: Path, scan_config: ScanConfiguration) -> None:
        """Every record of a pass carries the same timestamp."""
        assert {r.scan_time for r in _walk(scan_config)} == {SCAN_TIME}

    def test_root_depth_overrides_default(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """A root's own depth replaces the partition default."""
        scan_config.default_scan_depth = 5
        scan_config.root_folders[0].max_depth = 0
        assert len(_walk(scan_config)) == 1


class TestOverridesAndExclusions:
    """Tests for exclusion rules and inclusion overrides during a walk."""

    def test_excluded_folder_skipped(self, data_tree: Path, scan_config: ScanConfiguration) -> None:
        """Excluded folders produce no record and no aggregate contribution."""
        scan_config.default_scan_depth = 0
        scan_config.exclusion_rules = [
            ExclusionRule(pattern="logs", kind=ExclusionKind.FOLDER_NAME)
        ]
        records = _walk(scan_config)
        assert records[0].size_bytes == 10 + 100 + 1000 + 10000

    def test_force_included_override_scanned_deeper(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """An excluded folder with a force-include override is walked to its own depth."""
        scan_config.default_scan_depth = 1
        scan_config.exclusion_rules = [
            ExclusionRule(pattern="logs", kind=ExclusionKind.FOLDER_NAME)
        ]
        scan_config.inclusion_overrides = [
            InclusionOverride(path=str(data_tree / "logs"), scan_depth=3, force_include=True)
        ]
        records = _by_path(_walk(scan_config), data_tree)

        assert list(records) == [".", "a", "empty", "logs", "logs/2026", "logs/2026/01"]
        assert records["a"].size_bytes == 11100
        assert records["logs"].size_bytes == 50
        assert records["logs/2026"].size_bytes == 500
        assert records["logs/2026/01"].size_bytes == 5000

    def test_override_can_make_subtree_shallower(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """An override depth of 0 aggregates its folder even below a deep root."""
        scan_config.inclusion_overrides = [
            InclusionOverride(path=str(data_tree / "a"), scan_depth=0, force_include=False)
        ]
        records = _by_path(_walk(scan_config), data_tree)

        assert "a/b" not in records
        assert records["a"].size_bytes == 11100
        assert "logs/2026/01" in records

    def test_override_ceiling_capped_below_root(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """An override cannot push the frontier past the depth limit below the root."""
        scan_config.default_scan_depth = 1
        scan_config.inclusion_overrides = [
            InclusionOverride(path=str(data_tree / "a"), scan_depth=5, force_include=False)
        ]
        with patch("treesize.core.walker.MAX_SCAN_DEPTH", 2):
            records = _by_path(_walk(scan_config), data_tree)

        assert "a/b/c" not in records
        assert records["a"].size_bytes == 100
        assert records["a/b"].size_bytes == 11000


class TestCycleProtection:
    """Tests for reparse points and repeated paths."""

    def test_link_to_ancestor_terminates(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """A link back to the root is not followed and nothing is double counted."""
        (data_tree / "link").symlink_to(data_tree, target_is_directory=True)
        records = _by_path(_walk(scan_config), data_tree)

        assert "link" not in records
        assert records["."].subfolder_count == 4
        assert sum(r.size_bytes for r in records.values()) == 16660

    def test_duplicate_roots_recorded_once(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """A folder reachable from two roots is recorded once per pass."""
        scan_config.root_folders.append(RootFolder(path=str(data_tree / "a")))
        paths = [r.path for r in _walk(scan_config)]
        assert len(paths) == len(set(paths))

    def test_visited_set_trimmed_past_limit(self, data_tree: Path) -> None:
        """The visited set is cleared once it exceeds its limit."""
        context = ScanContext(
            policy=PolicyResolver(ScanConfiguration(partition_path=str(data_tree))),
            scan_time=SCAN_TIME,
            visited_limit=2,
        )
        for name in ("a", "b", "c"):
            context.mark_visited(f"/x/{name}")
        context.trim_visited()
        assert context.visited == set()
        assert context.mark_visited("/x/a")


class TestErrorIsolation:
    """Tests for missing roots and unreadable folders."""

    def test_missing_root_skipped(
        self,
        data_tree: Path,
        scan_config: ScanConfiguration,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A missing root is logged and the other roots are still walked."""
        scan_config.root_folders.insert(0, RootFolder(path=str(data_tree / "gone")))
        scan_config.default_scan_depth = 0
        with caplog.at_level(logging.WARNING):
            records = _walk(scan_config)

        assert [r.path for r in records] == [str(data_tree)]
        assert "Root folder does not exist" in caplog.text

    def test_access_denied_folder_skipped(
        self,
        data_tree: Path,
        scan_config: ScanConfiguration,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A folder that cannot be read produces no record; siblings continue."""
        blocked = str(data_tree / "a")

        def guarded(path: str):
            if path == blocked:
                raise PermissionError(path)
            return read_directory(path)

        with (
            patch("treesize.core.walker.read_directory", side_effect=guarded),
            caplog.at_level(logging.WARNING),
        ):
            records = _by_path(_walk(scan_config), data_tree)

        assert "a" not in records
        assert "a/b" not in records
        assert "logs/2026/01" in records
        assert "Access denied" in caplog.text


class TestBatchingAndCancellation:
    """Tests for batch sizes and cooperative cancellation."""

    def test_batches_bounded(self, data_tree: Path, scan_config: ScanConfiguration) -> None:
        """Batches never exceed the batch size and cover every record."""
        context = ScanContext(policy=PolicyResolver(scan_config), scan_time=SCAN_TIME)
        batches = list(TreeWalker(context).iter_batches(scan_config.active_roots, 3))

        assert [len(b) for b in batches] == [3, 3, 2]

    def test_cancel_before_start(self, data_tree: Path, scan_config: ScanConfiguration) -> None:
        """A cancelled context produces nothing."""
        context = ScanContext(policy=PolicyResolver(scan_config), scan_time=SCAN_TIME)
        context.cancel_event.set()
        assert list(TreeWalker(context).iter_batches(scan_config.active_roots)) == []

    def test_cancel_mid_walk_keeps_prefix(
        self, data_tree: Path, scan_config: ScanConfiguration
    ) -> None:
        """Cancelling between batches stops the walk after the current node."""
        context = ScanContext(policy=PolicyResolver(scan_config), scan_time=SCAN_TIME)
        batches = TreeWalker(context).iter_batches(scan_config.active_roots, 2)

        first = next(batches)
        context.cancel_event.set()
        rest = [r for batch in batches for r in batch]

        assert len(first) == 2
        assert len(first) + len(rest) < 8
        assert context.progress.directories_scanned < 8
