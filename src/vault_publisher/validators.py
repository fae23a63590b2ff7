"""
Input validation for remote tree paths and blob content.

Checks run before any request is sent so malformed input never reaches
the remote store.
"""

# GitHub rejects blobs above 100 MiB
MAX_BLOB_SIZE = 100 * 1024 * 1024


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Remote path")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_remote_path(path: str) -> tuple[bool, str]:
    """
    Validate a path inside the remote tree.

    Args:
        path: Slash-separated path, relative to the repository root

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot start or end with '/'
        - Cannot contain '..' or '.' segments
        - Cannot have empty path segments (e.g., 'a//b')
    """
    if not path or not path.strip():
        return (
            False,
            format_validation_error("Remote path", "cannot be empty"),
        )

    if path.startswith("/") or path.endswith("/"):
        return (
            False,
            format_validation_error(
                "Remote path", "cannot start or end with '/'"
            ),
        )

    segments = path.split("/")
    if any(segment in (".", "..") for segment in segments):
        return (
            False,
            format_validation_error(
                "Remote path", "cannot contain '.' or '..' segments"
            ),
        )

    if "" in segments:
        return (
            False,
            format_validation_error(
                "Remote path", "cannot have empty path segments"
            ),
        )

    return (True, "")


def validate_blob_size(
    data: bytes, max_size: int = MAX_BLOB_SIZE
) -> tuple[bool, str]:
    """
    Validate blob content size.

    Empty content is valid; only the upper bound is enforced.

    Args:
        data: Raw blob content
        max_size: Maximum size in bytes (default: 100 MiB)

    Returns:
        Tuple of (is_valid, error_message).
    """
    if len(data) > max_size:
        return (
            False,
            format_validation_error(
                "Content", f"exceeds maximum size of {max_size} bytes"
            ),
        )

    return (True, "")
