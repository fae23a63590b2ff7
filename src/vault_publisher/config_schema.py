"""Unified configuration schema for vault_publisher.

Defines Pydantic models for the unified config structure with dedicated
sections for the GitHub connection, publish targets and logging.

Usage:
    from vault_publisher.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    settings = unified.publish
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    token: str | None = Field(
        default=None, description="Personal access token"
    )
    owner: str | None = Field(
        default=None, description="Repository owner (user or org)"
    )
    repo: str | None = Field(default=None, description="Repository name")
    api_url: str | None = Field(
        default=None, description="REST API base URL"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    max_parallel_requests: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Maximum concurrent blob uploads (1-100)",
    )

    model_config = {"frozen": True}


class PublishConfig(BaseModel):
    """Where and how to publish.

    One instance is built per run and passed to every publish component.

    Attributes:
        target_branch: Branch receiving the published commit.
        target_dir: Directory in the repository holding published files.
        media_folder: Folder (inside the vault and inside ``target_dir``)
            holding linked media.
        vault_root: Local directory holding the notes.
        commit_message: Message of the batch publish commit.
    """

    target_branch: str = Field(default="main", min_length=1)
    target_dir: str = Field(default="content")
    media_folder: str = Field(default="Attachments", min_length=1)
    vault_root: str = Field(default=".")
    commit_message: str = Field(
        default="Update published content", min_length=1
    )

    model_config = {"frozen": True}

    @field_validator("target_dir", "media_folder")
    @classmethod
    def _normalise_tree_path(cls, value: str) -> str:
        value = value.strip().strip("/")
        if ".." in value.split("/"):
            raise ValueError(f"'{value}' must not contain '..' segments")
        return value

    @field_validator("target_branch")
    @classmethod
    def _strip_heads_prefix(cls, value: str) -> str:
        return value.strip().removeprefix("refs/heads/")

    def remote_path(self, path: str) -> str:
        """Join *path* (relative to ``target_dir``) onto the target root."""
        if not self.target_dir:
            return path
        return f"{self.target_dir}/{path}"

    def media_path(self, filename: str) -> str:
        """Path, relative to ``target_dir``, of a media file."""
        return f"{self.media_folder}/{filename}"


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Applied at startup unless the LOG_LEVEL env var is set.
    """

    level: str | None = Field(default=None, description="Log level")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully: anything absent gets defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)

