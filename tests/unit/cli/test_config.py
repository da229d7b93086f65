"""Unit tests for config commands.

Tests for the CLI config command group.
"""

import json
from pathlib import Path

from treesize.cli.main import app
from treesize.core.config import load_config
from treesize.models.config import ExclusionKind
from typer.testing import CliRunner, Result

runner = CliRunner()


def _output(result: Result) -> str:
    """Command output with line wrapping undone."""
    return " ".join(result.output.split())


class TestAddPartition:
    """Tests for config add-partition."""

    def test_creates_default_policy(self, xdg_home: Path) -> None:
        """A new partition gets the default policy and is saved."""
        result = runner.invoke(app, ["config", "add-partition", "/mnt/data", "-d", "2"])

        assert result.exit_code == 0
        assert "Tracking partition /mnt/data" in _output(result)
        scan_config = load_config().partitions["/mnt/data"]
        assert scan_config.default_scan_depth == 2
        assert [r.path for r in scan_config.root_folders] == ["/mnt/data"]

    def test_already_configured(self, xdg_home: Path) -> None:
        """Adding a partition twice leaves it unchanged."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])
        result = runner.invoke(app, ["config", "add-partition", "/mnt/data", "-d", "5"])

        assert "already configured" in _output(result)
        assert load_config().partitions["/mnt/data"].default_scan_depth is None


class TestEditPolicy:
    """Tests for the policy editing commands."""

    def test_add_root(self, xdg_home: Path) -> None:
        """add-root appends a root folder with its own depth."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])
        result = runner.invoke(app, ["config", "add-root", "/mnt/data", "/mnt/data/x", "-d", "3"])

        assert result.exit_code == 0
        roots = load_config().partitions["/mnt/data"].root_folders
        assert [(r.path, r.max_depth) for r in roots] == [
            ("/mnt/data", None),
            ("/mnt/data/x", 3),
        ]

    def test_add_root_duplicate(self, xdg_home: Path) -> None:
        """A root already configured (ignoring case) is not added again."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])
        result = runner.invoke(app, ["config", "add-root", "/mnt/data", "/MNT/Data"])

        assert "already configured" in _output(result)
        assert len(load_config().partitions["/mnt/data"].root_folders) == 1

    def test_exclude(self, xdg_home: Path) -> None:
        """exclude appends a rule of the requested kind."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])
        result = runner.invoke(
            app, ["config", "exclude", "/mnt/data", ".*\\.bak$", "--kind", "regex"]
        )

        assert result.exit_code == 0
        rule = load_config().partitions["/mnt/data"].exclusion_rules[-1]
        assert rule.kind == ExclusionKind.REGEX
        assert rule.pattern == ".*\\.bak$"

    def test_override_replaces_existing(self, xdg_home: Path) -> None:
        """override replaces an override for the same folder."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])
        runner.invoke(app, ["config", "override", "/mnt/data", "/mnt/data/logs", "-d", "2"])
        result = runner.invoke(
            app,
            ["config", "override", "/mnt/data", "/mnt/data/LOGS", "-d", "4", "--no-force"],
        )

        assert result.exit_code == 0
        [override] = load_config().partitions["/mnt/data"].inclusion_overrides
        assert override.scan_depth == 4
        assert not override.force_include

    def test_depth_set_and_remove(self, xdg_home: Path) -> None:
        """depth sets an override; omitting the value removes it."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])

        result = runner.invoke(app, ["config", "depth", "/mnt/data", "/mnt/data/a", "3"])
        assert "Depth override for /mnt/data/a: 3" in _output(result)
        assert len(load_config().partitions["/mnt/data"].inclusion_overrides) == 1

        result = runner.invoke(app, ["config", "depth", "/mnt/data", "/mnt/data/a"])
        assert "Removed depth override" in _output(result)
        assert load_config().partitions["/mnt/data"].inclusion_overrides == []

    def test_default_depth(self, xdg_home: Path) -> None:
        """default-depth sets or clears the partition default."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])

        result = runner.invoke(app, ["config", "default-depth", "/mnt/data", "2"])
        assert "treesize reconcile" in _output(result)
        assert load_config().partitions["/mnt/data"].default_scan_depth == 2

        result = runner.invoke(app, ["config", "default-depth", "/mnt/data"])
        assert "unlimited" in _output(result)
        assert load_config().partitions["/mnt/data"].default_scan_depth is None

    def test_unknown_partition(self, xdg_home: Path) -> None:
        """Editing a partition that is not configured fails with a hint."""
        result = runner.invoke(app, ["config", "exclude", "/nope", "tmp"])

        assert result.exit_code == 1
        assert "Partition not configured: /nope" in _output(result)
        assert "add-partition /nope" in _output(result)


class TestShow:
    """Tests for config show."""

    def test_empty(self, xdg_home: Path) -> None:
        """Without partitions show says so."""
        result = runner.invoke(app, ["config", "show"])
        assert "No partitions configured" in _output(result)

    def test_json(self, xdg_home: Path) -> None:
        """--json dumps the partition configurations."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])
        result = runner.invoke(app, ["config", "show", "/mnt/data", "--json"])

        assert result.exit_code == 0
        [payload] = json.loads(result.output)
        assert payload["partition_path"] == "/mnt/data"
        assert payload["default_scan_depth"] is None

    def test_tables(self, xdg_home: Path) -> None:
        """The default output shows the policy tables."""
        runner.invoke(app, ["config", "add-partition", "/mnt/data"])
        runner.invoke(app, ["config", "override", "/mnt/data", "/mnt/data/logs"])
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        for title in ("Root Folders", "Exclusions", "Overrides", "Default depth: unlimited"):
            assert title in _output(result)

    def test_invalid_config_file(self, xdg_home: Path) -> None:
        """A broken config file is reported."""
        config_path = xdg_home / "config" / "treesize" / "config.toml"
        config_path.parent.mkdir(parents=True)
        config_path.write_text("partitions = [")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 1
        assert "Failed to load configuration" in _output(result)
