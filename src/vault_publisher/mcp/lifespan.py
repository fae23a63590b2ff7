"""Lifespan management for MCP server startup and shutdown."""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import UnifiedConfig, build_config
from ..core.async_utils import init_semaphore, run_sync
from ..core.client import GitHubClient
from ..file_handler import validate_directory_path
from ..vault import VaultSource
from .tools.registry import PublishContext

logger = logging.getLogger(__name__)

_CREDENTIALS_HINT = "Ensure GITHUB_TOKEN, GITHUB_OWNER, GITHUB_REPO are set."


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def _apply_logging_config(unified: UnifiedConfig) -> None:
    # LOG_LEVEL from the environment already applied in setup_logging()
    if unified.logging.level and not os.getenv("LOG_LEVEL"):
        level = logging.getLevelName(unified.logging.level.upper())
        if isinstance(level, int):
            logging.getLogger().setLevel(level)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values and publish settings)
    - Merge connection sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Resolve the vault directory (CLI --vault > publish.vault_root)
    - Create GitHubClient and validate repository access
    - Fail fast if GitHub is unreachable

    Args:
        config_overrides: Optional dict with config values from CLI
            (token, owner, repo, api_url, vault)

    Yields:
        Dict with 'context' key containing the ``PublishContext``

    Raises:
        RuntimeError: If configuration is invalid or the connection fails.
    """
    logger.info("MCP server starting...")
    _stderr_print("Vault Publisher starting...")

    overrides = config_overrides or {}
    try:
        # 1. Load .env early (before YAML, so ${VAR} interpolation can use .env values)
        load_dotenv()

        # 2. Load YAML config if present
        yaml_fallbacks: dict[str, Any] | None = None
        unified = UnifiedConfig()
        config_files = discover_config_files()
        sources = []

        if config_files:
            unified = build_config(load_hierarchical_config())
            yaml_fallbacks = {
                k: v
                for k, v in unified.github.model_dump().items()
                if v is not None
            }
            sources.append(f"config file: {config_files[0]}")
            _apply_logging_config(unified)

        # 3. Single call to load_config with all sources merged
        config = load_config(
            token=overrides.get("token"),
            owner=overrides.get("owner"),
            repo=overrides.get("repo"),
            api_url=overrides.get("api_url"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )

        settings = unified.publish
        if overrides.get("vault"):
            settings = settings.model_copy(
                update={"vault_root": overrides["vault"]}
            )
        vault_root = validate_directory_path(settings.vault_root)

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        _stderr_print(f"  Repository: {config.owner}/{config.repo}")
        _stderr_print(
            f"  Target: {settings.target_branch}:{settings.target_dir or '/'}"
        )
        _stderr_print(f"  Vault: {vault_root}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print(f"  {_CREDENTIALS_HINT}")
        raise RuntimeError(
            f"Configuration error: {e}. {_CREDENTIALS_HINT}"
        ) from e

    # Validate GitHub connection
    logger.info("Validating GitHub connection...")
    _stderr_print("  Validating GitHub connection...")
    try:
        client = GitHubClient(config)
        full_name = await run_sync(client.validate_connection)
        logger.info("Connected to repository %s", full_name)
        _stderr_print(f"  Connected to repository {full_name}")
        init_semaphore(config.max_parallel_requests)
        _stderr_print(
            f"  Parallel uploads: {config.max_parallel_requests}"
        )
        _stderr_print(
            "Server ready. Waiting for MCP client connection..."
        )
    except Exception as e:
        logger.error("Failed to connect to GitHub: %s", e)
        _stderr_print("ERROR: GitHub connection failed.")
        _stderr_print(f"  {e}")
        _stderr_print(f"  {_CREDENTIALS_HINT}")
        raise RuntimeError(
            f"GitHub connection failed: {e}. {_CREDENTIALS_HINT}"
        ) from e

    context = PublishContext(
        client=client,
        settings=settings,
        source=VaultSource(vault_root, settings.media_folder),
    )
    yield {"context": context}

    logger.info("MCP server shutting down")
    _stderr_print("Vault Publisher shutting down.")
