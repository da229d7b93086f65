"""Unit tests for reconcile command."""

import json
from pathlib import Path

from treesize.cli.main import app
from treesize.core.config import load_config, save_config
from typer.testing import CliRunner, Result

runner = CliRunner()


def _output(result: Result) -> str:
    """Command output with line wrapping undone."""
    return " ".join(result.output.split())


def _lower_depth(partition: str, depth: int) -> None:
    config = load_config()
    config.partitions[partition].default_scan_depth = depth
    save_config(config)


class TestReconcileCommand:
    """Tests for the reconcile command."""

    def test_nothing_to_do(self, tracked_tree: Path) -> None:
        """Snapshots that match the configuration are left alone."""
        runner.invoke(app, ["scan"])
        result = runner.invoke(app, ["reconcile"])

        assert result.exit_code == 0
        assert "already match the configuration" in _output(result)

    def test_lowered_depth_json(self, tracked_tree: Path) -> None:
        """Lowering the depth prunes deeper records."""
        runner.invoke(app, ["scan"])
        _lower_depth(str(tracked_tree), 1)

        result = runner.invoke(app, ["reconcile", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        summary = payload[str(tracked_tree)]
        assert summary["total_removed"] == 4
        assert sorted(summary["updated_paths"]) == [
            str(tracked_tree / "a"),
            str(tracked_tree / "logs"),
        ]

    def test_no_rollup(self, tracked_tree: Path) -> None:
        """--no-rollup removes records without updating ancestors."""
        runner.invoke(app, ["scan"])
        _lower_depth(str(tracked_tree), 1)

        result = runner.invoke(app, ["reconcile", "--no-rollup", "--json"])

        summary = json.loads(result.output)[str(tracked_tree)]
        assert summary["total_removed"] == 4
        assert summary["updated_paths"] == []

    def test_success_message(self, tracked_tree: Path) -> None:
        """The default output summarizes removals."""
        runner.invoke(app, ["scan"])
        _lower_depth(str(tracked_tree), 0)

        result = runner.invoke(app, ["reconcile"])

        assert result.exit_code == 0
        assert "removed 7 records" in _output(result)
