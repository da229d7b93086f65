"""Scan orchestration across partitions.

This module provides the ScanService class, the entry point a scheduler
or the CLI uses to scan one or all configured partitions. It guarantees
at most one scan per partition in flight, exposes progress per
partition, supports cooperative cancellation, and ties a scan pass to
its snapshot store bookkeeping.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime
from pathlib import Path

from treesize.core.config import get_partition_config
from treesize.core.diff import DiffEngine, DiffResult
from treesize.core.paths import get_database_path
from treesize.core.policy import PolicyResolver
from treesize.core.reconcile import ReconcileResult, ReconciliationEngine
from treesize.core.store import SnapshotStore, StoreError
from treesize.core.walker import DEFAULT_BATCH_SIZE, ScanContext, TreeWalker
from treesize.models.config import GlobalConfiguration
from treesize.models.scan import ScanOutcome, ScanProgress, ScanStatus
from treesize.models.snapshot import FolderSizeDiff

logger = logging.getLogger(__name__)


class ScanService:
    """Runs scan passes and store maintenance for configured partitions.

    The service may be shared between threads. Each scan pass gets its
    own ScanContext, so only the per-partition locks, progress and
    cancellation events are shared.

    Args:
        config: Global configuration (read at the start of each pass).
        data_dir: Optional override for the snapshot database directory.
        batch_size: Records per store transaction.
    """

    def __init__(
        self,
        config: GlobalConfiguration,
        *,
        data_dir: Path | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self._config = config
        self._data_dir = data_dir
        self._batch_size = batch_size
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._cancel_events: dict[str, threading.Event] = {}
        self._progress: dict[str, ScanProgress] = {}

    @property
    def config(self) -> GlobalConfiguration:
        """Configuration the service scans with."""
        return self._config

    def _lock_for(self, partition: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(partition, threading.Lock())

    def open_store(self, partition: str) -> SnapshotStore:
        """Open the snapshot store of a partition."""
        return SnapshotStore(partition, get_database_path(partition, self._data_dir))

    def get_progress(self, partition: str) -> ScanProgress | None:
        """Progress of the latest scan pass of a partition, if any."""
        with self._registry_lock:
            return self._progress.get(partition)

    def is_scanning(self, partition: str) -> bool:
        """Check if a scan of the partition is in flight."""
        progress = self.get_progress(partition)
        return progress is not None and progress.is_scanning

    def cancel(self, partition: str | None = None) -> None:
        """Request cancellation of in-flight scans.

        Args:
            partition: Partition to cancel, or None for every partition.
        """
        with self._registry_lock:
            events = (
                list(self._cancel_events.values())
                if partition is None
                else [e for p, e in self._cancel_events.items() if p == partition]
            )
        for event in events:
            event.set()

    def _target_partitions(self, partition: str | None) -> list[str]:
        if partition is not None:
            return [partition]
        return [c.partition_path for c in self._config.enabled_partitions]

    def perform_scan(
        self,
        partition: str | None = None,
        *,
        parallel: bool = False,
        max_workers: int | None = None,
    ) -> list[ScanOutcome]:
        """Scan one partition or every enabled partition.

        Args:
            partition: Partition to scan, or None for all enabled ones.
            parallel: Scan partitions concurrently on a thread pool.
            max_workers: Thread pool size (defaults to one per partition,
                capped at the CPU count).

        Returns:
            One ScanOutcome per partition, in configuration order.
        """
        partitions = self._target_partitions(partition)
        if not partitions:
            logger.info("No enabled partitions to scan")
            return []

        if not parallel or len(partitions) == 1:
            return [self.scan_partition(p) for p in partitions]

        workers = max_workers or min(len(partitions), os.cpu_count() or 1)
        outcomes: dict[str, ScanOutcome] = {}
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_partition = {executor.submit(self.scan_partition, p): p for p in partitions}
            for future in as_completed(future_to_partition):
                outcomes[future_to_partition[future]] = future.result()

        return [outcomes[p] for p in partitions]

    def scan_partition(self, partition: str) -> ScanOutcome:
        """Run one scan pass over a partition.

        A request for a partition that is already being scanned returns
        immediately with status DEFERRED.

        Args:
            partition: Partition mount point or drive.

        Returns:
            ScanOutcome describing the pass.
        """
        lock = self._lock_for(partition)
        if not lock.acquire(blocking=False):
            logger.info("Scan of %s already in progress, deferring", partition)
            return ScanOutcome(partition=partition, status=ScanStatus.DEFERRED)

        try:
            return self._run_scan(partition)
        finally:
            lock.release()

    def _run_scan(self, partition: str) -> ScanOutcome:
        scan_config = get_partition_config(self._config, partition)
        if not scan_config.enabled:
            logger.info("Partition %s is disabled, skipping", partition)
            return ScanOutcome(partition=partition, status=ScanStatus.DISABLED)

        scan_time = datetime.now(UTC)
        progress = ScanProgress(partition=partition, start_time=scan_time, is_scanning=True)
        cancel_event = threading.Event()
        with self._registry_lock:
            self._progress[partition] = progress
            self._cancel_events[partition] = cancel_event

        context = ScanContext(
            policy=PolicyResolver(scan_config),
            scan_time=scan_time,
            progress=progress,
            cancel_event=cancel_event,
        )
        walker = TreeWalker(context)
        written = 0

        logger.info("Starting scan of %s", partition)
        try:
            with self.open_store(partition) as store:
                try:
                    store.begin_scan(scan_time)
                    for batch in walker.iter_batches(scan_config.active_roots, self._batch_size):
                        written += store.append_batch(batch)
                    status = ScanStatus.CANCELLED if context.cancelled else ScanStatus.COMPLETED
                    store.finish_scan(scan_time, status)
                except StoreError as e:
                    logger.error("Scan of %s failed after %d records: %s", partition, written, e)
                    self._mark_failed(store, scan_time)
                    return ScanOutcome(
                        partition=partition,
                        status=ScanStatus.FAILED,
                        scan_time=scan_time,
                        records_written=written,
                        directories_scanned=progress.directories_scanned,
                        error=str(e),
                    )
        finally:
            progress.is_scanning = False
            with self._registry_lock:
                self._cancel_events.pop(partition, None)

        logger.info(
            "Scan of %s %s: %d records, %d directories in %.1fs",
            partition,
            status.value,
            written,
            progress.directories_scanned,
            progress.elapsed_seconds,
        )
        return ScanOutcome(
            partition=partition,
            status=status,
            scan_time=scan_time,
            records_written=written,
            directories_scanned=progress.directories_scanned,
        )

    @staticmethod
    def _mark_failed(store: SnapshotStore, scan_time: datetime) -> None:
        try:
            store.finish_scan(scan_time, ScanStatus.FAILED)
        except StoreError as e:
            logger.warning("Could not mark scan %s as failed: %s", scan_time.isoformat(), e)

    def reconcile(
        self,
        partition: str | None = None,
        *,
        roll_up: bool = True,
    ) -> dict[str, ReconcileResult]:
        """Bring stored snapshots in line with the current policy.

        Partitions with a scan in flight are skipped.

        Args:
            partition: Partition to reconcile, or None for all enabled ones.
            roll_up: Add pruned sizes to the retained ancestors.

        Returns:
            Mapping of partition to its ReconcileResult.

        Raises:
            StoreError: If a partition store cannot be read or written.
        """
        results: dict[str, ReconcileResult] = {}
        for name in self._target_partitions(partition):
            lock = self._lock_for(name)
            if not lock.acquire(blocking=False):
                logger.warning("Scan of %s in progress, skipping reconciliation", name)
                continue
            try:
                engine = ReconciliationEngine(
                    get_partition_config(self._config, name), roll_up=roll_up
                )
                with self.open_store(name) as store:
                    results[name] = engine.reconcile(store)
            finally:
                lock.release()
        return results

    def get_diffs(self, partition: str, *, include_incomplete: bool = False) -> DiffResult:
        """Size changes between the two latest scans of a partition.

        Raises:
            StoreError: If the store cannot be read.
        """
        with self.open_store(partition) as store:
            return DiffEngine(store).get_latest_diffs(include_incomplete=include_incomplete)

    def get_path_diff(
        self, partition: str, path: str, *, include_incomplete: bool = False
    ) -> FolderSizeDiff | None:
        """Size change of one folder between its two latest snapshots.

        Raises:
            StoreError: If the store cannot be read.
        """
        with self.open_store(partition) as store:
            return DiffEngine(store).diff_path(path, include_incomplete=include_incomplete)
