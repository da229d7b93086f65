"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from treesize.core.config import save_config
from treesize.models.config import GlobalConfiguration, RootFolder, ScanConfiguration

# Nested mapping: a dict is a folder, bytes are file contents.
TreeSpec = dict[str, "TreeSpec | bytes"]


def build_tree(base: Path, spec: TreeSpec) -> Path:
    """Create folders and files below ``base`` from a nested mapping."""
    base.mkdir(parents=True, exist_ok=True)
    for name, content in spec.items():
        target = base / name
        if isinstance(content, dict):
            build_tree(target, content)
        else:
            target.write_bytes(content)
    return base


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[TreeSpec], Path]:
    """Factory building a directory tree under tmp_path/data."""

    def _make(spec: TreeSpec) -> Path:
        return build_tree(tmp_path / "data", spec)

    return _make


@pytest.fixture
def data_tree(make_tree: Callable[[TreeSpec], Path]) -> Path:
    """A small tree three levels deep.

    data/            top.txt (10)
      a/             a.txt (100)
        b/           b.txt (1000)
          c/         c.txt (10000)
      logs/          app.log (50)
        2026/        jan.log (500)
          01/        d1.log (5000)
      empty/
    """
    return make_tree(
        {
            "top.txt": b"x" * 10,
            "a": {
                "a.txt": b"x" * 100,
                "b": {
                    "b.txt": b"x" * 1000,
                    "c": {"c.txt": b"x" * 10000},
                },
            },
            "logs": {
                "app.log": b"x" * 50,
                "2026": {
                    "jan.log": b"x" * 500,
                    "01": {"d1.log": b"x" * 5000},
                },
            },
            "empty": {},
        }
    )


@pytest.fixture
def scan_config(tmp_path: Path) -> ScanConfiguration:
    """Partition configuration rooted at tmp_path/data with no rules."""
    root = str(tmp_path / "data")
    return ScanConfiguration(partition_path=root, root_folders=[RootFolder(path=root)])


@pytest.fixture
def scan_times() -> list[datetime]:
    """Three ascending scan timestamps one day apart."""
    start = datetime(2026, 1, 1, tzinfo=UTC)
    return [start + timedelta(days=i) for i in range(3)]


@pytest.fixture
def mock_df_output() -> str:
    """Sample df -B1 --output=source,fstype,size,avail,target output."""
    return """Filesystem     Type        1B-blocks         Avail Mounted on
/dev/nvme0n1p2 ext4     502392610816 201234567168 /
tmpfs          tmpfs      3355443200   3355443200 /run
/dev/nvme0n1p1 vfat        535805952    529530880 /boot/efi
/dev/sdb1      ext4    2000263573504 900000000000 /mnt/data
/dev/sdc1      exfat    128001818624  64000000000 /media/user/USB Stick
proc           proc                0            0 /proc
none           fuse.snapfuse       0            0 /mnt/snap"""


@pytest.fixture
def xdg_home(tmp_path: Path) -> Iterator[Path]:
    """Point the XDG config and state directories below tmp_path."""
    env = {
        "XDG_CONFIG_HOME": str(tmp_path / "config"),
        "XDG_STATE_HOME": str(tmp_path / "state"),
    }
    with patch.dict(os.environ, env):
        yield tmp_path


@pytest.fixture
def tracked_tree(xdg_home: Path, data_tree: Path) -> Path:
    """Data tree saved as the only configured partition (unbounded depth)."""
    root = str(data_tree)
    config = GlobalConfiguration(
        partitions={
            root: ScanConfiguration(partition_path=root, root_folders=[RootFolder(path=root)])
        }
    )
    save_config(config)
    return data_tree
