"""Folder size snapshot and diff models.

This module defines the records produced by a scan pass and the
derived size comparisons between two consecutive scans.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class FolderSizeSnapshot:
    """Size of one folder as recorded by one scan pass.

    For folders above the depth frontier, ``size_bytes`` and
    ``file_count`` cover the files directly inside the folder. For a
    frontier folder they cover its whole subtree.

    Attributes:
        path: Folder path as walked (casing and separators preserved).
        size_bytes: Summed file size in bytes.
        file_count: Number of files counted in ``size_bytes``.
        subfolder_count: Number of direct child folders.
        scan_time: Timestamp shared by every record of one scan pass.
        id: Store row id (None until persisted).
    """

    path: str
    size_bytes: int
    file_count: int
    subfolder_count: int
    scan_time: datetime
    id: int | None = None

    def __post_init__(self) -> None:
        """Validate snapshot data after initialization."""
        if not self.path:
            msg = "Snapshot path cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0 or self.file_count < 0 or self.subfolder_count < 0:
            msg = f"Snapshot counters cannot be negative: {self.path}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "path": self.path,
            "size_bytes": self.size_bytes,
            "file_count": self.file_count,
            "subfolder_count": self.subfolder_count,
            "scan_time": self.scan_time.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class FolderSizeDiff:
    """Size change of one folder between its two most recent snapshots.

    Attributes:
        path: Folder path.
        previous_size: Size in bytes at the older scan.
        current_size: Size in bytes at the newer scan.
        previous_scan: Timestamp of the older scan.
        current_scan: Timestamp of the newer scan.
    """

    path: str
    previous_size: int
    current_size: int
    previous_scan: datetime
    current_scan: datetime

    @property
    def size_difference(self) -> int:
        """Signed size delta in bytes (positive means growth)."""
        return self.current_size - self.previous_size

    @property
    def percentage_change(self) -> float:
        """Relative change in percent.

        Defined as 100 when the previous size is zero.
        """
        if self.previous_size == 0:
            return 100.0
        return self.size_difference / self.previous_size * 100

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "path": self.path,
            "previous_size": self.previous_size,
            "current_size": self.current_size,
            "size_difference": self.size_difference,
            "percentage_change": round(self.percentage_change, 2),
            "previous_scan": self.previous_scan.isoformat(),
            "current_scan": self.current_scan.isoformat(),
        }
