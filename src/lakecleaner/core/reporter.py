"""Reporting module for compaction runs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lakecleaner.models import ObjectItem, RunReport

logger = logging.getLogger(__name__)


def format_bytes(size_bytes: int | None) -> str:
    """Format bytes into human-readable string.

    Args:
        size_bytes: Size in bytes, or None when unknown.

    Returns:
        Human-readable size string.
    """
    if size_bytes is None:
        return "-"
    if size_bytes == 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    size = float(size_bytes)
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.1f} {units[unit_index]}"


def print_run_report(report: RunReport) -> str:
    """Generate a human-readable report for a compaction run.

    Args:
        report: Run report.

    Returns:
        Formatted report string.
    """
    lines = [
        f"{'=' * 60}",
        f"Compaction Report: {report.repo}/{report.branch}",
        f"{'=' * 60}",
        f"  Status:          {report.state.value}",
        f"  Working table:   {report.table_name}",
        f"  Seed file:       {report.seed_path or '-'}",
        f"  Progress:        {report.progress:,}",
        f"  Files ingested:  {report.total_files_ingested:,}",
        f"  Duration:        {report.duration_seconds:.1f}s",
    ]

    if report.batches:
        lines.append("")
        lines.append("  Batches:")
        for batch in report.batches:
            lines.append(
                f"    - #{batch.index}: {batch.files_ingested} file(s)"
                f" + {batch.mirrored_files} mirrored"
                f" -> {batch.output_path or '(not written)'}"
            )

    if report.error:
        lines.extend(["", f"  ERROR: {report.error}"])

    lines.append("")
    report_str = "\n".join(lines)
    logger.info("\n%s", report_str)
    return report_str


def print_listing(items: list[ObjectItem]) -> str:
    """Render a listing of objects, one per line."""
    lines = [f"{format_bytes(item.size_bytes):>10}  {item.path}" for item in items]
    lines.append(f"{len(items)} object(s)")
    return "\n".join(lines)
