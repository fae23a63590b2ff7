"""MCP tool handlers for publishing the vault.

Defines two tools:

- ``publish_sync`` -- publish every note marked ``publish: true`` (and its
  media) as one commit, deleting notes no longer published.
- ``publish_file`` -- publish a single note and its media, file by file.

Both accept ``dry_run`` to preview the changes without writing.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...publish.engine import PublishEngine
from ...publish.models import PublishReport
from ...publish.reporter import (
    format_dry_run_preview,
    format_publish_report,
    report_to_json,
)
from .errors import corrective_action
from .registry import PublishContext, ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


_DRY_RUN_PROPERTY = {
    "type": "boolean",
    "default": False,
    "description": "Preview changes without applying them",
}

PUBLISH_TOOLS: list[types.Tool] = [
    types.Tool(
        name="publish_sync",
        description=(
            "Publish every vault note whose front matter has "
            "'publish: true', plus the media it embeds, to the GitHub "
            "repository as a single commit. Published files whose note "
            "is no longer published are deleted."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "dry_run": _DRY_RUN_PROPERTY,
            },
            "required": [],
        },
    ),
    types.Tool(
        name="publish_file",
        description=(
            "Publish one note and the media it embeds, one commit per "
            "changed file. Unchanged files are skipped; nothing is deleted."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Note path relative to the vault root (e.g. 'notes/today.md')",
                },
                "dry_run": _DRY_RUN_PROPERTY,
            },
            "required": ["path"],
        },
    ),
]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_publish_sync(
    context: PublishContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``publish_sync`` tool."""
    dry_run = bool(args.get("dry_run", False))
    engine = PublishEngine(context.client, context.settings, context.source)
    report = await engine.publish_all(dry_run=dry_run)
    return _report_result(report)


async def _handle_publish_file(
    context: PublishContext, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``publish_file`` tool."""
    path = args.get("path")
    if not path or not isinstance(path, str):
        raise ValueError("path is required")

    dry_run = bool(args.get("dry_run", False))
    engine = PublishEngine(context.client, context.settings, context.source)
    report = await engine.publish_file(path, dry_run=dry_run)
    return _report_result(report)


def _report_result(report: PublishReport) -> types.CallToolResult:
    if report.dry_run:
        text = format_dry_run_preview(report)
    else:
        text = format_publish_report(report)

    if not report.success:
        logger.warning(
            "Publish %s failed (%s): %s",
            report.mode,
            report.error_kind,
            report.error,
        )
        text += f"\n\nAction: {corrective_action(report.error_kind)}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=report_to_json(report),
        isError=not report.success,
    )


_HANDLERS = {
    "publish_sync": _handle_publish_sync,
    "publish_file": _handle_publish_file,
}

PUBLISH_SPECS: list[ToolSpec] = [
    ToolSpec(tool=tool, handler=_HANDLERS[tool.name])
    for tool in PUBLISH_TOOLS
]
