"""Connection configuration for the GitHub publish target.

Reads GitHub connection settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    GITHUB_TOKEN: Personal access token with contents:write (required)
    GITHUB_OWNER: Repository owner, user or organisation (required)
    GITHUB_REPO: Repository name (required)
    GITHUB_API_URL: REST API base URL (optional, default: https://api.github.com)
    PUBLISH_DEBUG: Enable debug logging (optional, default: false)
    PUBLISH_MAX_PARALLEL_REQUESTS: Max concurrent blob uploads (optional, default: 5)
"""

import logging
import os
import re
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass
class Config:
    token: str
    owner: str
    repo: str
    api_url: str = DEFAULT_API_URL
    debug: bool = False
    max_parallel_requests: int = 5


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the API URL is malformed, the token is empty, or
            owner/repo are not valid GitHub names.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    if not config.token.strip():
        raise ValueError(
            "GitHub token cannot be empty. Set GITHUB_TOKEN environment variable."
        )

    for label, value in (("owner", config.owner), ("repo", config.repo)):
        if not _NAME_PATTERN.match(value):
            raise ValueError(
                f"Invalid GitHub {label} '{value}': use letters, digits, '-', '_' or '.'"
            )

    if not (1 <= config.max_parallel_requests <= 100):
        raise ValueError(
            f"Invalid max_parallel_requests {config.max_parallel_requests}: must be between 1 and 100"
        )


def load_config(
    token: str | None = None,
    owner: str | None = None,
    repo: str | None = None,
    api_url: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        token: Override access token.
        owner: Override repository owner.
        repo: Override repository name.
        api_url: Override REST API base URL.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML config ``github``
            section. Used when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If required config (token, owner, repo) is missing
            after checking all sources, or a value is invalid.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > error ---

    final_token = token or os.getenv("GITHUB_TOKEN") or fb.get("token")
    if not final_token:
        raise ValueError(
            "GitHub token not found. Set GITHUB_TOKEN environment variable, "
            "pass --token CLI argument, or add 'token' to config.yml."
        )

    final_owner = owner or os.getenv("GITHUB_OWNER") or fb.get("owner")
    if not final_owner:
        raise ValueError(
            "GitHub owner not found. Set GITHUB_OWNER environment variable, "
            "pass --owner CLI argument, or add 'owner' to config.yml."
        )

    final_repo = repo or os.getenv("GITHUB_REPO") or fb.get("repo")
    if not final_repo:
        raise ValueError(
            "GitHub repository not found. Set GITHUB_REPO environment variable, "
            "pass --repo CLI argument, or add 'repo' to config.yml."
        )

    final_api_url = (
        api_url
        or os.getenv("GITHUB_API_URL")
        or fb.get("api_url")
        or DEFAULT_API_URL
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("PUBLISH_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Numeric fields: env > YAML > default ---

    max_parallel_raw = os.getenv("PUBLISH_MAX_PARALLEL_REQUESTS")
    if max_parallel_raw is not None:
        try:
            final_max_parallel = int(max_parallel_raw)
        except ValueError:
            raise ValueError(
                f"Invalid PUBLISH_MAX_PARALLEL_REQUESTS '{max_parallel_raw}': must be a number between 1 and 100"
            ) from None
    elif "max_parallel_requests" in fb:
        final_max_parallel = int(fb["max_parallel_requests"])
    else:
        final_max_parallel = 5

    config = Config(
        token=final_token.strip(),
        owner=final_owner.strip(),
        repo=final_repo.strip(),
        api_url=final_api_url,
        debug=final_debug,
        max_parallel_requests=final_max_parallel,
    )

    validate_config(config)

    return config
