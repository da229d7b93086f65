"""Unit tests for tree command."""

import json
from pathlib import Path

from treesize.cli.main import app
from treesize.core.config import load_config, save_config
from treesize.models.config import InclusionOverride
from typer.testing import CliRunner, Result

runner = CliRunner()


def _output(result: Result) -> str:
    """Command output with line wrapping undone."""
    return " ".join(result.output.split())


class TestTreeCommand:
    """Tests for the tree command."""

    def test_partition_root_json(self, tracked_tree: Path) -> None:
        """Without a path the partition root's children are listed."""
        result = runner.invoke(app, ["tree", "-P", str(tracked_tree), "--json"])

        assert result.exit_code == 0
        assert [n["name"] for n in json.loads(result.output)] == ["a", "empty", "logs"]

    def test_override_depth_shown(self, tracked_tree: Path) -> None:
        """Configured overrides are shown next to the folder."""
        config = load_config()
        config.partitions[str(tracked_tree)].inclusion_overrides.append(
            InclusionOverride(path=str(tracked_tree / "logs"), scan_depth=3)
        )
        save_config(config)

        result = runner.invoke(app, ["tree", "-P", str(tracked_tree)])

        assert result.exit_code == 0
        assert "logs depth 3" in _output(result)
        assert "empty (empty)" in _output(result)

    def test_explicit_path(self, tracked_tree: Path) -> None:
        """A path argument lists that folder."""
        result = runner.invoke(
            app, ["tree", str(tracked_tree / "a"), "-P", str(tracked_tree), "--json"]
        )
        assert [n["name"] for n in json.loads(result.output)] == ["b"]

    def test_no_subfolders(self, tracked_tree: Path) -> None:
        """An empty folder says it has no subfolders."""
        result = runner.invoke(app, ["tree", str(tracked_tree / "empty"), "-P", str(tracked_tree)])
        assert "No visible subfolders" in _output(result)

    def test_missing_partition_root(self, xdg_home: Path) -> None:
        """A partition root that does not exist is an error."""
        result = runner.invoke(app, ["tree", "-P", str(xdg_home / "gone")])

        assert result.exit_code == 1
        assert "Partition root does not exist" in _output(result)
