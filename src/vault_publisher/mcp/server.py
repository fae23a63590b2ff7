"""MCP server publishing a note vault to GitHub over stdio transport.

This module implements the Model Context Protocol server that lets AI
agents publish vault notes and their media into a GitHub repository.

Transport: stdio (for desktop MCP client integration)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import ensure_config
from ..core.async_utils import run_sync
from ..logger import DEFAULT_MCP_LOG_FILE, setup_logging
from ..publish.errors import PublishError
from ..version import check_version_consistency
from .lifespan import server_lifespan
from .tools import (
    ALL_SPECS,
    PublishContext,
    ToolRegistry,
    build_error_response,
)
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

# Initialize server instance
server = Server("vault-publisher")

# Global handler context (initialized in lifespan)
_context: PublishContext | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------


async def _handle_ping(
    context: PublishContext, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- test GitHub connectivity."""
    try:
        full_name = await run_sync(context.client.validate_connection)
    except PublishError as e:
        return build_error_response(
            e.kind,
            f"GitHub connection failed: {e}",
            "Check GITHUB_TOKEN, GITHUB_OWNER, GITHUB_REPO.",
        )
    return types.CallToolResult(
        content=[
            types.TextContent(
                type="text",
                text=(
                    f"Vault publisher connected to {full_name}. "
                    f"Publishing to {context.settings.target_branch}:"
                    f"{context.settings.target_dir or '/'} "
                    f"from {context.source.root}"
                ),
            )
        ]
    )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Test GitHub connectivity and show the publish target",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_context() -> PublishContext:
    """Get the global PublishContext instance.

    Raises:
        RuntimeError: If the context is not initialized
    """
    if _context is None:
        raise RuntimeError(
            "PublishContext not initialized. Server lifespan not started."
        )
    return _context


def set_context(context: PublishContext | None) -> None:
    """Set the global PublishContext instance, or None to clear."""
    global _context
    _context = context


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    """Set the global ToolRegistry instance, or None to clear."""
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available publish tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch.

    Args:
        name: The name of the tool to execute.
        arguments: Tool arguments (optional).

    Returns:
        CallToolResult with tool output content and optional isError flag.
    """
    context = get_context()
    try:
        return await get_registry().call_tool(name, arguments, context)
    except ValueError as e:
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), validates the
    GitHub connection via the lifespan manager, and serves JSON-RPC over
    stdio.

    Args:
        config_overrides: Optional dict with config values to override
            (token, owner, repo, api_url, vault, log_file)
    """
    log_file = (
        config_overrides.get("log_file") if config_overrides else None
    )

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(mode="mcp", log_file=log_file)

    is_consistent, message = check_version_consistency()
    if not is_consistent:
        logger.warning(message)
    else:
        logger.info(message)

    all_specs = [PING_SPEC] + ALL_SPECS
    registry = ToolRegistry(all_specs)
    logger.info("Registered %d tools", registry.tool_count())
    set_registry(registry)

    # set_context() is called here rather than in the lifespan: under
    # `python -m vault_publisher.mcp.server` this module is __main__, and
    # a lifespan-side import would update a second copy of it.
    async with server_lifespan(
        config_overrides=config_overrides
    ) as ctx:
        set_context(ctx["context"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="vault-publisher",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            set_context(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    """Command-line parser for the ``vault-publisher`` entry point."""
    parser = argparse.ArgumentParser(
        description="Vault Publisher - MCP server publishing note vaults to GitHub",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .vault_publisher/config.yml)
  vault-publisher

  # Publish a specific vault
  vault-publisher --vault ~/Notes

  # Override the target repository
  vault-publisher --owner my-user --repo my-site

  # GitHub Enterprise
  vault-publisher --api-url https://github.example.com/api/v3

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr. Do not pipe stdin/stdout manually.
        """,
    )

    parser.add_argument(
        "--token",
        help="Override GitHub token (takes precedence over GITHUB_TOKEN env var and config files)"
        " (visible in process list -- prefer GITHUB_TOKEN env var for security)",
    )
    parser.add_argument(
        "--owner",
        help="Override repository owner (takes precedence over GITHUB_OWNER)",
    )
    parser.add_argument(
        "--repo",
        help="Override repository name (takes precedence over GITHUB_REPO)",
    )
    parser.add_argument(
        "--api-url",
        help="Override GitHub REST API base URL (default: https://api.github.com)",
    )
    parser.add_argument(
        "--vault",
        help="Vault directory to publish from (overrides publish.vault_root)",
    )
    parser.add_argument(
        "--log-file",
        default=DEFAULT_MCP_LOG_FILE,
        help=f"Log file path (default: {DEFAULT_MCP_LOG_FILE})",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a commented starter config file if none exists, then exit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"vault-publisher version {__version__}",
    )
    return parser


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()

    if args.init_config:
        path = ensure_config()
        print(f"Config file: {path}", file=sys.stderr)
        return

    config_overrides = {
        key: value
        for key, value in (
            ("token", args.token),
            ("owner", args.owner),
            ("repo", args.repo),
            ("api_url", args.api_url),
            ("vault", args.vault),
            ("log_file", args.log_file),
        )
        if value
    }

    if config_overrides:
        override_keys = [k for k in config_overrides if k != "token"]
        print(
            f"Config overrides from CLI: {', '.join(override_keys)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides or None))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
