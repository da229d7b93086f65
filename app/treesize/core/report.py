"""Size change reports.

Renders the diffs of a partition as a CSV file and a human-readable
text file in the reports directory. Both files of one run share the
stem ``size-diff-YYYY-MM-DD-HHMMSS``.
"""

import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from treesize.core.paths import ensure_reports_dir
from treesize.models.snapshot import FolderSizeDiff

logger = logging.getLogger(__name__)

CSV_HEADER = (
    "Path",
    "Previous Size (MB)",
    "Current Size (MB)",
    "Difference (MB)",
    "Percentage Change",
    "Previous Scan Date",
    "Current Scan Date",
)

# A change is significant above either threshold.
SIGNIFICANT_PERCENT = 5.0
SIGNIFICANT_BYTES = 100 * 1024 * 1024

_MIB = 1024.0 * 1024.0
_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True, slots=True)
class ReportFiles:
    """Paths of the files written by one report run.

    Attributes:
        csv_path: CSV report.
        text_path: Text report.
    """

    csv_path: Path
    text_path: Path


def format_bytes(size: int) -> str:
    """Format a byte count with two decimals and a binary unit.

    Example: ``format_bytes(1536)`` -> ``"1.50 KB"``.
    """
    value = float(size)
    unit = 0
    while abs(value) >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {_SIZE_UNITS[unit]}"


def format_change(diff: FolderSizeDiff) -> str:
    """Format the absolute size change and signed percentage of a diff."""
    sign = "+" if diff.size_difference >= 0 else "-"
    return f"{format_bytes(abs(diff.size_difference))} ({sign}{abs(diff.percentage_change):.2f}%)"


def is_significant(diff: FolderSizeDiff) -> bool:
    """Check if a diff exceeds the percentage or absolute size threshold."""
    return (
        abs(diff.percentage_change) > SIGNIFICANT_PERCENT
        or abs(diff.size_difference) > SIGNIFICANT_BYTES
    )


def changed_diffs(diffs: Iterable[FolderSizeDiff]) -> list[FolderSizeDiff]:
    """Non-zero diffs ordered by absolute size difference, largest first."""
    changed = [d for d in diffs if d.size_difference != 0]
    changed.sort(key=lambda d: abs(d.size_difference), reverse=True)
    return changed


def _local(value: datetime) -> str:
    return value.astimezone().strftime(_DATE_FORMAT)


def render_csv(diffs: Iterable[FolderSizeDiff]) -> str:
    """Render changed diffs as CSV text (sizes in MB, two decimals)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for diff in changed_diffs(diffs):
        writer.writerow(
            (
                diff.path,
                f"{diff.previous_size / _MIB:.2f}",
                f"{diff.current_size / _MIB:.2f}",
                f"{diff.size_difference / _MIB:.2f}",
                f"{diff.percentage_change:.2f}%",
                _local(diff.previous_scan),
                _local(diff.current_scan),
            )
        )
    return buffer.getvalue()


def render_text(
    diffs: Iterable[FolderSizeDiff],
    report_date: datetime,
    partition: str | None = None,
) -> str:
    """Render the text report.

    Sections: summary totals, significant changes, all changes.

    Args:
        diffs: Diffs of one partition.
        report_date: Date shown in the report title.
        partition: Optional partition named in the title.

    Returns:
        Report text.
    """
    all_diffs = list(diffs)
    changed = changed_diffs(all_diffs)
    significant = [d for d in changed if is_significant(d)]

    total_previous = sum(d.previous_size for d in all_diffs)
    total_current = sum(d.current_size for d in all_diffs)
    total_difference = total_current - total_previous
    if total_previous:
        total_percent = abs(total_difference / total_previous * 100)
    else:
        total_percent = 100.0 if total_difference else 0.0
    sign = "+" if total_difference >= 0 else "-"

    title = f"Disk Space Usage Report - {report_date.strftime(_DATE_FORMAT)}"
    if partition is not None:
        title += f" ({partition})"

    lines = [
        title,
        "=" * 80,
        "",
        "SUMMARY",
        "-" * 40,
        f"Total Previous Size: {format_bytes(total_previous)}",
        f"Total Current Size:  {format_bytes(total_current)}",
        f"Total Change:        {format_bytes(abs(total_difference))} ({sign}{total_percent:.2f}%)",
        f"Directories with changes: {len(changed)} out of {len(all_diffs)} scanned",
        "",
    ]

    if significant:
        lines += ["SIGNIFICANT CHANGES", "-" * 40]
        for diff in significant:
            lines += [
                f"Folder: {diff.path}",
                f"  Previous: {format_bytes(diff.previous_size)}",
                f"  Current:  {format_bytes(diff.current_size)}",
                f"  Change:   {format_change(diff)}",
                "",
            ]

    lines += ["ALL CHANGES (sorted by size difference)", "-" * 40]
    for diff in changed:
        sign = "+" if diff.size_difference >= 0 else "-"
        lines += [
            diff.path,
            f"  {format_bytes(diff.previous_size)} -> {format_bytes(diff.current_size)} "
            f"({sign}{abs(diff.percentage_change):.2f}%)",
        ]

    return "\n".join(lines) + "\n"


def generate_reports(
    diffs: Iterable[FolderSizeDiff],
    *,
    partition: str | None = None,
    reports_dir: Path | None = None,
    report_date: datetime | None = None,
) -> ReportFiles:
    """Write the CSV and text reports of a set of diffs.

    Args:
        diffs: Diffs to report.
        partition: Optional partition named in the text report.
        reports_dir: Target directory (defaults to the XDG reports dir).
        report_date: Timestamp of the run (defaults to now, local time).

    Returns:
        ReportFiles with the written paths.

    Raises:
        RuntimeError: If the reports directory cannot be created.
        OSError: If a report file cannot be written.
    """
    all_diffs = list(diffs)
    date = report_date or datetime.now()
    target = reports_dir if reports_dir is not None else ensure_reports_dir()
    target.mkdir(parents=True, exist_ok=True)

    stem = f"size-diff-{date.strftime('%Y-%m-%d-%H%M%S')}"
    csv_path = target / f"{stem}.csv"
    text_path = target / f"{stem}.txt"

    csv_path.write_text(render_csv(all_diffs), encoding="utf-8")
    logger.info("CSV report generated: %s", csv_path)
    text_path.write_text(render_text(all_diffs, date, partition), encoding="utf-8")
    logger.info("Text report generated: %s", text_path)

    return ReportFiles(csv_path=csv_path, text_path=text_path)
