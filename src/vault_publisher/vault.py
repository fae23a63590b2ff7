"""Note vault adapter: the local side of a publish run.

``VaultSource`` reads a directory of Markdown notes and provides the
collaborators the publish engine needs:

- ``select_publishable()`` -- notes whose front matter opts in with
  ``publish: true``.
- ``extract_media_references(text)`` -- ``![[name.ext]]`` media embeds.
- ``resolve_media_bytes(name)`` -- a media file from the attachments
  folder, falling back to the vault root.
- ``read_document(path)`` -- one note's raw bytes.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml

from .file_handler import decode_bytes, resolve_inside

logger = logging.getLogger(__name__)

MEDIA_EXTENSIONS = (
    "png",
    "jpg",
    "jpeg",
    "gif",
    "mp3",
    "wav",
    "mp4",
    "pdf",
    "ogg",
    "m4a",
)

_MEDIA_EMBED_PATTERN = re.compile(
    r"!\[\[([^\]]+\.(?:" + "|".join(MEDIA_EXTENSIONS) + r"))\]\]"
)
_FRONT_MATTER_PATTERN = re.compile(r"\A---\r?\n(.*?)\r?\n---", re.DOTALL)


def parse_front_matter(text: str) -> dict:
    """Return the YAML front matter of a note as a dict.

    Notes without front matter, or with front matter that is not a YAML
    mapping, yield an empty dict.
    """
    match = _FRONT_MATTER_PATTERN.match(text)
    if not match:
        return {}
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        logger.warning("Ignoring malformed front matter: %s", exc)
        return {}
    return data if isinstance(data, dict) else {}


def is_publishable(text: str) -> bool:
    """True if the note's front matter sets ``publish`` to true."""
    value = parse_front_matter(text).get("publish")
    return value is True or value == "true"


class VaultSource:
    """Read publishable notes and their media from a vault directory.

    Args:
        root: Vault root directory.
        media_folder: Attachments folder, relative to *root*.
    """

    def __init__(self, root: Path, media_folder: str = "Attachments") -> None:
        self.root = root
        self.media_folder = media_folder

    def iter_documents(self) -> list[str]:
        """Every Markdown note under the root, hidden directories skipped.

        Returns:
            Sorted list of relative paths (POSIX-style forward slashes).
        """
        if not self.root.is_dir():
            return []

        documents: list[str] = []
        for path in sorted(self.root.rglob("*.md")):
            relative = path.relative_to(self.root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if path.is_file():
                documents.append(relative.as_posix())
        return documents

    def select_publishable(self) -> dict[str, bytes]:
        """Map each publishable note's path to its raw bytes."""
        selected: dict[str, bytes] = {}
        for relative in self.iter_documents():
            data = (self.root / relative).read_bytes()
            text, _ = decode_bytes(data)
            if is_publishable(text):
                selected[relative] = data
        logger.info(
            "Selected %d publishable notes in %s", len(selected), self.root
        )
        return selected

    def extract_media_references(self, text: str) -> list[str]:
        """Media names embedded in *text*, in order, without duplicates."""
        names: list[str] = []
        for match in _MEDIA_EMBED_PATTERN.finditer(text):
            name = match.group(1)
            if name not in names:
                names.append(name)
        return names

    def resolve_media_bytes(self, name: str) -> bytes | None:
        """Bytes of media file *name*, or ``None`` if it is not in the vault.

        The attachments folder is searched first, then the vault root.
        """
        for candidate in (f"{self.media_folder}/{name}", name):
            try:
                path = resolve_inside(self.root, candidate)
            except ValueError:
                logger.warning("Media reference %s escapes the vault", name)
                return None
            if path.is_file():
                return path.read_bytes()
        return None

    def read_document(self, path: str) -> bytes:
        """Raw bytes of the note at *path* (relative to the root).

        Raises:
            FileNotFoundError: If the note does not exist.
            ValueError: If *path* points outside the vault.
        """
        resolved = resolve_inside(self.root, path)
        if not resolved.is_file():
            raise FileNotFoundError(f"Note not found: {path}")
        return resolved.read_bytes()
