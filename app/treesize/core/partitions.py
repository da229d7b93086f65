"""Partition enumeration.

Lists the mounted filesystems worth tracking by parsing ``df`` output:
the root filesystem plus anything mounted under /mnt or /media. Virtual
filesystems are skipped.
"""

import logging
import os
import subprocess
from dataclasses import dataclass

from treesize.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

_DF_COMMAND = ["df", "-B1", "--output=source,fstype,size,avail,target"]

_VIRTUAL_FS_TYPES = frozenset(
    {
        "proc",
        "sysfs",
        "devpts",
        "devtmpfs",
        "tmpfs",
        "securityfs",
        "cgroup",
        "cgroup2",
        "autofs",
        "mqueue",
        "hugetlbfs",
        "debugfs",
        "tracefs",
        "fusectl",
        "overlay",
        "squashfs",
        "fuse.gvfsd-fuse",
        "fuse.snapfuse",
    }
)

_VIRTUAL_DEVICE_PREFIXES = ("none", "udev", "tmpfs")

_TRACKED_PREFIXES = ("/mnt/", "/media/")


@dataclass(frozen=True, slots=True)
class PartitionInfo:
    """A mounted partition.

    Attributes:
        path: Mount point.
        label: Display label.
        device: Backing device.
        filesystem: Filesystem type.
        total_size: Capacity in bytes.
        available_space: Free space available to unprivileged users, in bytes.
    """

    path: str
    label: str
    device: str
    filesystem: str
    total_size: int
    available_space: int

    @property
    def used_space(self) -> int:
        """Used space in bytes."""
        return self.total_size - self.available_space

    @property
    def usage_percentage(self) -> float:
        """Used space as a percentage of capacity (0 if unknown)."""
        if self.total_size <= 0:
            return 0.0
        return self.used_space / self.total_size * 100

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary for JSON output."""
        return {
            "path": self.path,
            "label": self.label,
            "device": self.device,
            "filesystem": self.filesystem,
            "total_size": self.total_size,
            "available_space": self.available_space,
            "used_space": self.used_space,
        }


def is_virtual_filesystem(fs_type: str, device: str) -> bool:
    """Check if a mount is a pseudo or in-memory filesystem."""
    return fs_type in _VIRTUAL_FS_TYPES or device.startswith(_VIRTUAL_DEVICE_PREFIXES)


def is_tracked_mount(mount_point: str) -> bool:
    """Check if a mount point is one treesize offers to track."""
    return mount_point == "/" or mount_point.startswith(_TRACKED_PREFIXES)


def partition_label(mount_point: str, device: str) -> str:
    """Build a display label for a mount point."""
    if mount_point == "/":
        return "Root Filesystem (/)"
    if mount_point.startswith(_TRACKED_PREFIXES):
        return f"{os.path.basename(mount_point)} ({mount_point})"
    return f"{os.path.basename(device)} ({mount_point})"


def parse_df_output(output: str) -> list[PartitionInfo]:
    """Parse ``df -B1 --output=source,fstype,size,avail,target`` output.

    Args:
        output: Raw command output including the header line.

    Returns:
        Tracked, non-virtual partitions sorted by mount point.
    """
    partitions: dict[str, PartitionInfo] = {}

    for line in output.strip().split("\n")[1:]:
        # The mount point is last and may contain spaces.
        parts = line.split(maxsplit=4)
        if len(parts) < 5:
            logger.debug("Skipping malformed df line: %r", line[:100])
            continue

        device, fs_type, size, avail, mount_point = parts
        if is_virtual_filesystem(fs_type, device) or not is_tracked_mount(mount_point):
            continue
        if not (size.isdigit() and avail.isdigit()):
            logger.debug("Skipping df line without sizes: %r", line[:100])
            continue

        partitions.setdefault(
            mount_point,
            PartitionInfo(
                path=mount_point,
                label=partition_label(mount_point, device),
                device=device,
                filesystem=fs_type,
                total_size=int(size),
                available_space=int(avail),
            ),
        )

    return sorted(partitions.values(), key=lambda p: p.path)


def list_partitions() -> list[PartitionInfo]:
    """List the partitions available for tracking.

    Returns:
        Tracked partitions, or an empty list if ``df`` is unavailable
        or fails.
    """
    if not command_exists("df"):
        logger.warning("df is not available, cannot list partitions")
        return []

    try:
        result = run_command(_DF_COMMAND)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Failed to run df: %s", e)
        return []

    if not result.success:
        logger.warning("df failed: %s", result.stderr.strip() or "unknown error")
        return []

    return parse_df_output(result.stdout)
