"""MCP tool handlers for publishing operations.

This package contains MCP tool implementations that wrap the publish
engine with async handlers and structured error responses.
"""

from .errors import build_error_response, translate_publish_error
from .publish import PUBLISH_SPECS, PUBLISH_TOOLS
from .registry import PublishContext, ToolRegistry, ToolSpec

ALL_SPECS: list[ToolSpec] = list(PUBLISH_SPECS)

__all__ = [
    "build_error_response",
    "translate_publish_error",
    # Registry
    "PublishContext",
    "ToolSpec",
    "ToolRegistry",
    # Spec lists
    "ALL_SPECS",
    "PUBLISH_SPECS",
    "PUBLISH_TOOLS",
]
