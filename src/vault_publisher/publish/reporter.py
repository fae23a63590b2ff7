"""Publish report formatting functions.

Provides human-readable and machine-readable output for publish runs:

- ``format_publish_report`` -- full post-publish summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by change kind.
- ``report_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import PublishChange, PublishReport

from .models import ChangeKind, EntryKind

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_publish_report(report: PublishReport) -> str:
    """Format a complete publish report as human-readable text.

    Sections are only included when they contain at least one change.

    Args:
        report: The completed publish report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    if report.success:
        header = f"Successfully published to '{report.branch}'"
    else:
        header = f"Error publishing to '{report.branch}'"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.extend(report.stats.summary_lines())
    lines.append("")

    if report.head_after and report.head_after != report.head_before:
        lines.append(f"Commit: {report.head_after}")
        lines.append("")

    for title, changes in (
        ("Added:", report.added),
        ("Updated:", report.updated),
        ("Deleted:", report.deleted),
    ):
        if changes:
            lines.append(title)
            for change in changes:
                lines.append(f"  {_describe(change)}")
            lines.append("")

    if report.error:
        lines.append(f"Error ({report.error_kind}): {report.error}")
        if report.retryable:
            lines.append("This error is retryable: run the publish again.")
        if report.failed_paths:
            lines.append("Failed:")
            for path in report.failed_paths:
                lines.append(f"  {path}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: PublishReport) -> str:
    """Format a dry-run preview grouped by change kind.

    Each proposed change is shown as ``path`` under an ``[ADD]``,
    ``[UPDATE]`` or ``[DELETE]`` heading.

    Args:
        report: A dry-run publish report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append(f"Branch: {report.branch}")
    lines.append("")

    groups: dict[ChangeKind, list[PublishChange]] = defaultdict(list)
    for change in report.changes:
        groups[change.kind].append(change)

    for kind in (ChangeKind.ADD, ChangeKind.UPDATE, ChangeKind.DELETE):
        if kind not in groups:
            continue
        lines.append(f"[{kind.value.upper()}]")
        for change in groups[kind]:
            lines.append(f"  {_describe(change)}")
        lines.append("")

    if not groups:
        lines.append("No changes needed.")
        lines.append("")

    if report.error:
        lines.append(f"Error ({report.error_kind}): {report.error}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: PublishReport) -> dict:
    """Convert a publish report to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.

    Args:
        report: The publish report.

    Returns:
        Dict with run info, counts, per-change details and any error.
    """
    data: dict = {
        "mode": report.mode,
        "state": report.state.value,
        "success": report.success,
        "dry_run": report.dry_run,
        "branch": report.branch,
        "head_before": report.head_before,
        "head_after": report.head_after,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": report.stats.model_dump(),
        "changes": [
            {
                "kind": change.kind.value,
                "path": change.path,
                "entry_kind": change.entry_kind.value,
            }
            for change in report.changes
        ],
    }
    if report.error:
        data["error"] = {
            "kind": report.error_kind,
            "message": report.error,
            "retryable": report.retryable,
            "succeeded_paths": report.succeeded_paths,
            "failed_paths": report.failed_paths,
        }
    return data


def _describe(change: PublishChange) -> str:
    if change.entry_kind == EntryKind.MEDIA:
        return f"{change.path} (media)"
    return change.path
