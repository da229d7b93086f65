"""Scan progress and outcome models.

This module defines the observable state of an in-flight scan and the
summary returned to callers once a partition scan pass ends.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ScanStatus(str, Enum):
    """Final (or current) state of a partition scan pass.

    Attributes:
        RUNNING: Batches are still being written.
        COMPLETED: Every batch was flushed.
        FAILED: The store rejected a batch; flushed data remains valid.
        CANCELLED: Cancellation was requested; flushed data is a valid subset.
        DEFERRED: Another scan of the same partition was already in flight.
        DISABLED: The partition is disabled in the configuration.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DEFERRED = "deferred"
    DISABLED = "disabled"


@dataclass(slots=True)
class ScanProgress:
    """Mutable progress counters of one partition scan.

    Attributes:
        partition: Partition being scanned.
        directories_scanned: Directories visited so far.
        current_directory: Directory most recently visited.
        start_time: When the scan pass started.
        is_scanning: True while the scan is in flight.
    """

    partition: str | None = None
    directories_scanned: int = 0
    current_directory: str = ""
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    is_scanning: bool = False

    @property
    def elapsed_seconds(self) -> float:
        """Seconds since the scan started."""
        return (datetime.now(UTC) - self.start_time).total_seconds()

    def visit(self, path: str) -> None:
        """Record a directory visit."""
        self.directories_scanned += 1
        self.current_directory = path


@dataclass(frozen=True, slots=True)
class ScanOutcome:
    """Summary of one partition scan pass.

    Attributes:
        partition: Partition that was scanned.
        status: Final scan status.
        scan_time: Timestamp shared by the records of this pass.
        records_written: Number of snapshot records flushed to the store.
        directories_scanned: Directories visited by the walker.
        error: Error message for failed scans.
    """

    partition: str
    status: ScanStatus
    scan_time: datetime | None = None
    records_written: int = 0
    directories_scanned: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Check if the scan pass completed."""
        return self.status == ScanStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result: dict[str, Any] = {
            "partition": self.partition,
            "status": self.status.value,
            "scan_time": self.scan_time.isoformat() if self.scan_time else None,
            "records_written": self.records_written,
            "directories_scanned": self.directories_scanned,
        }
        if self.error is not None:
            result["error"] = self.error
        return result
