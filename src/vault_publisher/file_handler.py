"""File handler module: vault path validation and encoding-aware decoding.

Documents are handled as raw bytes end to end (their identity is computed
over the exact bytes that get published); decoding only happens where
text is needed, e.g. to read front matter or find media embeds.
"""

from pathlib import Path

from charset_normalizer import from_bytes

# =============================================================================
# Path Validation
# =============================================================================


def validate_directory_path(path_str: str) -> Path:
    """Validate and resolve a vault directory path.

    Args:
        path_str: Path string to an existing directory. ``~`` is expanded.

    Returns:
        Resolved Path object pointing to the directory.

    Raises:
        ValueError: If the path doesn't exist or is not a directory.
    """
    resolved = Path(path_str).expanduser().resolve()
    if not resolved.exists():
        raise ValueError(f"Directory not found: {path_str}")
    if not resolved.is_dir():
        raise ValueError(f"Path is not a directory: {path_str}")
    return resolved


def resolve_inside(root: Path, relative: str) -> Path:
    """Resolve *relative* under *root*, refusing paths that escape it.

    Raises:
        ValueError: If the resolved path is outside *root*.
    """
    candidate = (root / relative).resolve()
    if not candidate.is_relative_to(root.resolve()):
        raise ValueError(
            f"Path is outside the vault: {relative} not under {root}"
        )
    return candidate


# =============================================================================
# Decoding
# =============================================================================


def decode_bytes(raw: bytes) -> tuple[str, str]:
    """Decode raw bytes with automatic encoding detection.

    Uses charset-normalizer to detect the encoding and defaults to UTF-8
    for empty input or when detection fails.

    Args:
        raw: Bytes to decode.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")

    encoding = result.encoding
    # ascii is a strict subset of utf-8
    if encoding == "ascii":
        encoding = "utf-8"
    return (str(result), encoding)
