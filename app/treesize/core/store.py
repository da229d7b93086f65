"""Per-partition snapshot storage.

This module provides the SnapshotStore class, an append-oriented store
of folder size snapshots backed by one SQLite database per partition.
A ``scans`` table tracks the status of every scan pass so that readers
can ignore passes whose batches were not all flushed.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from types import TracebackType

from treesize.core.paths import get_database_path
from treesize.models.scan import ScanStatus
from treesize.models.snapshot import FolderSizeSnapshot

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS folder_sizes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path TEXT NOT NULL,
    size_bytes INTEGER NOT NULL,
    file_count INTEGER NOT NULL,
    subfolder_count INTEGER NOT NULL,
    scan_time TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_folder_sizes_path_time
    ON folder_sizes(path, scan_time);
CREATE INDEX IF NOT EXISTS idx_folder_sizes_scan_time
    ON folder_sizes(scan_time);
CREATE TABLE IF NOT EXISTS scans (
    scan_time TEXT PRIMARY KEY,
    status TEXT NOT NULL,
    started_at TEXT NOT NULL,
    finished_at TEXT,
    records INTEGER NOT NULL DEFAULT 0
);
"""

_SNAPSHOT_COLUMNS = "f.id, f.path, f.size_bytes, f.file_count, f.subfolder_count, f.scan_time"


class StoreError(Exception):
    """Raised when the snapshot database cannot be read or written."""


@dataclass(frozen=True, slots=True)
class ScanInfo:
    """Bookkeeping row of one scan pass.

    Attributes:
        scan_time: Timestamp shared by the records of the pass.
        status: Current status of the pass.
        started_at: When the pass was registered.
        finished_at: When the pass ended (None while running).
        records: Number of records flushed.
    """

    scan_time: datetime
    status: ScanStatus
    started_at: datetime
    finished_at: datetime | None
    records: int


def format_time(value: datetime) -> str:
    """Format a timestamp for storage (fixed width, sortable)."""
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def parse_time(value: str) -> datetime:
    """Parse a stored timestamp."""
    return datetime.fromisoformat(value)


def _row_to_snapshot(row: sqlite3.Row) -> FolderSizeSnapshot:
    return FolderSizeSnapshot(
        id=row["id"],
        path=row["path"],
        size_bytes=row["size_bytes"],
        file_count=row["file_count"],
        subfolder_count=row["subfolder_count"],
        scan_time=parse_time(row["scan_time"]),
    )


class SnapshotStore:
    """Snapshot database of one partition.

    Storage location: ~/.local/state/treesize/data/<partition>.db

    The connection is opened lazily and must only be used from the
    thread that opened it. Use the store as a context manager (or call
    close()) to release the connection.

    Args:
        partition: Partition the store belongs to.
        db_path: Optional override for the database file.
    """

    def __init__(self, partition: str, db_path: Path | None = None) -> None:
        self._partition = partition
        self._db_path = db_path if db_path is not None else get_database_path(partition)
        self._conn: sqlite3.Connection | None = None

    @property
    def partition(self) -> str:
        """Partition the store belongs to."""
        return self._partition

    @property
    def db_path(self) -> Path:
        """Path to the SQLite database file."""
        return self._db_path

    def __enter__(self) -> SnapshotStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the database connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Run statements in one transaction, wrapping database errors.

        Args:
            action: Description used in error messages.

        Raises:
            StoreError: If any statement fails (the transaction is rolled back).
        """
        try:
            conn = self._connection()
            with conn:
                yield conn
        except (sqlite3.Error, OSError) as e:
            logger.error("Snapshot store %s failed to %s: %s", self._db_path, action, e)
            raise StoreError(f"Failed to {action}: {e}") from e

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self._db_path)
            conn.row_factory = sqlite3.Row
            conn.executescript(_SCHEMA)
            self._conn = conn
        return self._conn

    # -------------------------------------------------------------------------
    # Scan bookkeeping
    # -------------------------------------------------------------------------

    def begin_scan(self, scan_time: datetime) -> None:
        """Register a new scan pass as running."""
        with self._transaction("register scan") as conn:
            conn.execute(
                "INSERT INTO scans (scan_time, status, started_at) VALUES (?, ?, ?)",
                (
                    format_time(scan_time),
                    ScanStatus.RUNNING.value,
                    format_time(datetime.now(UTC)),
                ),
            )

    def finish_scan(self, scan_time: datetime, status: ScanStatus) -> None:
        """Record the final status of a scan pass."""
        with self._transaction("finish scan") as conn:
            conn.execute(
                "UPDATE scans SET status = ?, finished_at = ? WHERE scan_time = ?",
                (status.value, format_time(datetime.now(UTC)), format_time(scan_time)),
            )

    def list_scans(self, limit: int | None = None) -> list[ScanInfo]:
        """List scan passes, newest first."""
        query = "SELECT * FROM scans ORDER BY scan_time DESC"
        params: tuple[int, ...] = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._transaction("list scans") as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            ScanInfo(
                scan_time=parse_time(row["scan_time"]),
                status=ScanStatus(row["status"]),
                started_at=parse_time(row["started_at"]),
                finished_at=parse_time(row["finished_at"]) if row["finished_at"] else None,
                records=row["records"],
            )
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # Snapshot records
    # -------------------------------------------------------------------------

    def append_batch(self, records: Iterable[FolderSizeSnapshot]) -> int:
        """Append a batch of snapshot records in one transaction.

        A record whose (path, scan_time) is already stored is ignored.

        Args:
            records: Snapshots to append.

        Returns:
            Number of rows inserted.

        Raises:
            StoreError: If the batch cannot be written.
        """
        rows = [
            (r.path, r.size_bytes, r.file_count, r.subfolder_count, format_time(r.scan_time))
            for r in records
        ]
        if not rows:
            return 0

        with self._transaction("append batch") as conn:
            before = conn.total_changes
            conn.executemany(
                "INSERT OR IGNORE INTO folder_sizes "
                "(path, size_bytes, file_count, subfolder_count, scan_time) "
                "VALUES (?, ?, ?, ?, ?)",
                rows,
            )
            inserted = conn.total_changes - before
            counts: dict[str, int] = {}
            for row in rows:
                counts[row[4]] = counts.get(row[4], 0) + 1
            conn.executemany(
                "UPDATE scans SET records = records + ? WHERE scan_time = ?",
                [(count, scan_time) for scan_time, count in counts.items()],
            )
        return inserted

    def query_by_path_prefix(self, prefix: str) -> list[FolderSizeSnapshot]:
        """All records whose path starts with ``prefix`` (case-sensitive).

        Returns:
            Records ordered by scan time, then insertion order.
        """
        with self._transaction("query by prefix") as conn:
            rows = conn.execute(
                f"SELECT {_SNAPSHOT_COLUMNS} FROM folder_sizes f "
                "WHERE substr(f.path, 1, ?) = ? ORDER BY f.scan_time, f.id",
                (len(prefix), prefix),
            ).fetchall()
        return [_row_to_snapshot(row) for row in rows]

    def query_latest_two_by_path(
        self, path: str, *, completed_only: bool = True
    ) -> list[FolderSizeSnapshot]:
        """Up to two most recent records of one path, newest first."""
        join = self._completed_join(completed_only)
        with self._transaction("query latest by path") as conn:
            rows = conn.execute(
                f"SELECT {_SNAPSHOT_COLUMNS} FROM folder_sizes f {join} "
                "WHERE f.path = ? ORDER BY f.scan_time DESC LIMIT 2",
                (path,),
            ).fetchall()
        return [_row_to_snapshot(row) for row in rows]

    def query_latest_per_path(
        self, limit: int = 2, *, completed_only: bool = True
    ) -> dict[str, list[FolderSizeSnapshot]]:
        """The ``limit`` most recent records of every path, newest first.

        Returns:
            Mapping of path to its records, paths in sorted order.
        """
        join = self._completed_join(completed_only)
        with self._transaction("query latest per path") as conn:
            rows = conn.execute(
                f"SELECT * FROM ("
                f"SELECT {_SNAPSHOT_COLUMNS}, ROW_NUMBER() OVER "
                f"(PARTITION BY f.path ORDER BY f.scan_time DESC) AS rank "
                f"FROM folder_sizes f {join}"
                f") WHERE rank <= ? ORDER BY path, rank",
                (limit,),
            ).fetchall()

        result: dict[str, list[FolderSizeSnapshot]] = {}
        for row in rows:
            result.setdefault(row["path"], []).append(_row_to_snapshot(row))
        return result

    def remove_batch(self, records: Iterable[FolderSizeSnapshot]) -> int:
        """Delete records in one transaction.

        Returns:
            Number of rows deleted.
        """
        return self.apply_reconciliation(removals=records, updates=())

    def apply_reconciliation(
        self,
        removals: Iterable[FolderSizeSnapshot],
        updates: Iterable[FolderSizeSnapshot],
    ) -> int:
        """Delete and rewrite records in a single transaction.

        Records are addressed by id when known, otherwise by
        (path, scan_time). Updates rewrite size and file count only.

        Args:
            removals: Records to delete.
            updates: Records carrying new size and file count values.

        Returns:
            Number of rows deleted.

        Raises:
            StoreError: If the transaction fails (nothing is applied).
        """
        removed = 0
        with self._transaction("apply reconciliation") as conn:
            for record in removals:
                cursor = conn.execute(*self._match_statement("DELETE FROM folder_sizes", record))
                removed += cursor.rowcount
            for record in updates:
                statement, params = self._match_statement(
                    "UPDATE folder_sizes SET size_bytes = ?, file_count = ?", record
                )
                conn.execute(statement, (record.size_bytes, record.file_count, *params))
        return removed

    @staticmethod
    def _match_statement(
        prefix: str, record: FolderSizeSnapshot
    ) -> tuple[str, tuple[object, ...]]:
        if record.id is not None:
            return f"{prefix} WHERE id = ?", (record.id,)
        return f"{prefix} WHERE path = ? AND scan_time = ?", (
            record.path,
            format_time(record.scan_time),
        )

    @staticmethod
    def _completed_join(completed_only: bool) -> str:
        if not completed_only:
            return ""
        return (
            "JOIN scans s ON s.scan_time = f.scan_time "
            f"AND s.status = '{ScanStatus.COMPLETED.value}'"
        )
