"""ToolSpec and ToolRegistry for MCP tool dispatch.

Key concepts:
- PublishContext: Everything a tool handler needs for one call (client,
  publish settings, vault source), built once by the server lifespan.
- ToolSpec: Immutable dataclass linking a Tool definition and an async
  handler with standardized signature (context, args) -> CallToolResult.
- ToolRegistry: Provides list_tools() and call_tool() dispatch with
  error translation.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...config_schema import PublishConfig
from ...core.client import GitHubClient
from ...publish.errors import PublishError
from ...vault import VaultSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PublishContext:
    """Shared state for tool handlers.

    Attributes:
        client: Connected GitHub client.
        settings: Publish configuration applied to every run.
        source: Vault the documents and media are read from.
    """

    client: GitHubClient
    settings: PublishConfig
    source: VaultSource


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (context, args) -> CallToolResult.
    """

    tool: types.Tool
    handler: Callable[[PublishContext, dict], Awaitable[types.CallToolResult]]


class ToolRegistry:
    """Registry of ToolSpecs keyed by tool name."""

    def __init__(self, specs: list[ToolSpec]):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec for spec in specs
        }

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        """Return number of registered tools."""
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        context: PublishContext,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Provides centralized error handling for publish errors, validation
        errors, and unexpected exceptions, translating them into structured
        CallToolResult responses with corrective actions.

        Args:
            name: Tool name to invoke.
            arguments: Tool arguments (may be None).
            context: Shared handler context.

        Returns:
            CallToolResult from the handler.

        Raises:
            ValueError: If tool name is not registered.
        """
        from .errors import build_error_response, translate_publish_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(context, args)
        except PublishError as e:
            logger.warning("Publish error in %s: %s", name, e)
            return translate_publish_error(e)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log and retry later.",
            )
