"""Error response builders for MCP tool handlers.

This module provides structured error responses with corrective actions
to help AI agents recover from errors without human intervention.
"""

import mcp.types as types

from ...publish.errors import PublishError


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (remote_unavailable, ref_conflict,
            partial_write, validation_error, server_error, ...)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("ref_conflict", "Branch moved", "Run publish_sync again.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


# ---------------------------------------------------------------------------
# Corrective actions per error kind
# ---------------------------------------------------------------------------

CORRECTIVE_ACTIONS: dict[str, str] = {
    "remote_unavailable": (
        "Check GITHUB_TOKEN permissions (contents: write) and network "
        "access, then retry."
    ),
    "remote_not_found": (
        "Check GITHUB_OWNER, GITHUB_REPO and the publish target_branch; "
        "the branch must already exist."
    ),
    "remote_truncated": (
        "The repository tree is too large to list in one call. Publish "
        "into a smaller repository or a dedicated branch."
    ),
    "ref_conflict": (
        "The branch moved while publishing. Run the publish again; it "
        "starts from a fresh index."
    ),
    "partial_write": (
        "Run publish_file again for the same note; files already written "
        "are skipped as unchanged."
    ),
    "cancelled": "Run the publish again when ready.",
    "invalid_input": "Check parameter values and retry.",
    "local_error": "Check the vault path and file permissions, then retry.",
}

DEFAULT_ACTION = "Retry later or check the server log."


def corrective_action(error_kind: str | None) -> str:
    """Corrective action text for a report or exception error kind."""
    return CORRECTIVE_ACTIONS.get(error_kind or "", DEFAULT_ACTION)


def translate_publish_error(error: PublishError) -> types.CallToolResult:
    """Translate a publish exception to a structured error response."""
    return build_error_response(
        error.kind, str(error), corrective_action(error.kind)
    )
