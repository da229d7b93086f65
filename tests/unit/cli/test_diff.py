"""Unit tests for diff command.

Tests for the CLI diff command implementation.
"""

import json
from pathlib import Path
from unittest.mock import patch

from treesize.cli.main import app
from treesize.core.store import StoreError
from typer.testing import CliRunner, Result

runner = CliRunner()


def _output(result: Result) -> str:
    """Command output with line wrapping undone."""
    return " ".join(result.output.split())


def _grow(tracked_tree: Path) -> None:
    """Scan, add 400 bytes below a/, and scan again."""
    assert runner.invoke(app, ["scan"]).exit_code == 0
    (tracked_tree / "a" / "more.bin").write_bytes(b"x" * 400)
    assert runner.invoke(app, ["scan"]).exit_code == 0


class TestDiffCommand:
    """Tests for the diff command."""

    def test_no_changes(self, tracked_tree: Path) -> None:
        """A single scan reports that nothing changed."""
        runner.invoke(app, ["scan"])
        result = runner.invoke(app, ["diff"])

        assert result.exit_code == 0
        assert "No size changes recorded" in _output(result)

    def test_json(self, tracked_tree: Path) -> None:
        """--json prints the diffs with a summary."""
        _grow(tracked_tree)

        result = runner.invoke(app, ["diff", "--json"])

        assert result.exit_code == 0
        [payload] = json.loads(result.output)
        assert payload["summary"]["changed"] == 1
        assert payload["summary"]["growth"] == 400
        top = payload["diffs"][0]
        assert top["path"] == str(tracked_tree / "a")
        assert top["size_difference"] == 400

    def test_table(self, tracked_tree: Path) -> None:
        """The default output is a table with a summary line."""
        _grow(tracked_tree)

        result = runner.invoke(app, ["diff", "--limit", "5"])

        assert result.exit_code == 0
        assert "Size Changes" in _output(result)
        assert "1 of 8 folders changed" in _output(result)

    def test_store_error(self, tracked_tree: Path) -> None:
        """Unreadable snapshots exit with code 1."""
        with patch(
            "treesize.core.scanner.ScanService.get_diffs", side_effect=StoreError("locked")
        ):
            result = runner.invoke(app, ["diff"])

        assert result.exit_code == 1
        assert "locked" in _output(result)

    def test_single_folder_json(self, tracked_tree: Path) -> None:
        """--path limits the output to one folder's change."""
        _grow(tracked_tree)

        result = runner.invoke(app, ["diff", "--path", str(tracked_tree / "a"), "--json"])

        assert result.exit_code == 0
        [entry] = json.loads(result.output)
        assert entry["path"] == str(tracked_tree / "a")
        assert entry["previous_size"] == 100
        assert entry["current_size"] == 500

    def test_single_folder_table(self, tracked_tree: Path) -> None:
        """--path prints a one-row table."""
        _grow(tracked_tree)

        result = runner.invoke(app, ["diff", "-p", str(tracked_tree / "a")])

        assert result.exit_code == 0
        assert "Size Change" in _output(result)

    def test_single_folder_not_recorded(self, tracked_tree: Path) -> None:
        """A folder without two snapshots is reported as such."""
        runner.invoke(app, ["scan"])

        result = runner.invoke(app, ["diff", "--path", str(tracked_tree / "a")])

        assert result.exit_code == 0
        assert "No two scans recorded" in _output(result)
