"""Version checking: detect a runtime that no longer matches its source tree."""

import tomllib
from pathlib import Path

PYPROJECT_PATH = Path(__file__).parent.parent.parent / "pyproject.toml"


def check_version_consistency(
    pyproject_path: Path = PYPROJECT_PATH,
) -> tuple[bool, str]:
    """Check if the runtime version matches the version in pyproject.toml.

    Returns:
        Tuple of (is_consistent, message) where:
        - is_consistent: True if versions match, False otherwise
        - message: Descriptive message about version status

    An installed (non-editable) copy has no pyproject.toml beside it; that
    is reported as inconsistent with an explanatory message rather than
    raised.
    """
    from . import __version__ as runtime_version

    if not pyproject_path.exists():
        return (
            False,
            "Cannot find pyproject.toml for version comparison",
        )

    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        return False, f"Failed to read version from pyproject.toml: {e}"

    source_version = data.get("project", {}).get("version", "unknown")
    if runtime_version != source_version:
        return False, (
            f"Version mismatch detected! "
            f"Runtime: {runtime_version}, Source: {source_version}. "
            f"Reinstall with: pip install -e ."
        )

    return True, f"Version verified: {runtime_version}"
