"""Local snapshot builder: the desired state of the remote target.

Combines the publishable documents with every media file they embed into
a single list of ``DesiredEntry`` objects.  The three inputs are supplied
by the host:

- ``select_publishable()`` -> mapping of document path to raw bytes,
  already filtered to publish-eligible documents.
- ``extract_media_references(text)`` -> logical media names embedded in
  a document.
- ``resolve_media_bytes(name)`` -> bytes of that media file, or ``None``.

An unresolved media reference is dropped with a warning; a dangling embed
must never block publishing the document that contains it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from pathlib import PurePosixPath

from ..config_schema import PublishConfig
from ..file_handler import decode_bytes
from .models import DesiredEntry, EntryKind

logger = logging.getLogger(__name__)

DocumentSelector = Callable[[], Mapping[str, bytes]]
MediaExtractor = Callable[[str], list[str]]
MediaResolver = Callable[[str], bytes | None]


class LocalSnapshotBuilder:
    """Build the desired set of files for one publish run.

    Args:
        settings: Per-run publish configuration.
        select_publishable: Returns publish-eligible documents.
        extract_media_references: Finds media names in document text.
        resolve_media_bytes: Reads a media file by logical name.
    """

    def __init__(
        self,
        settings: PublishConfig,
        select_publishable: DocumentSelector,
        extract_media_references: MediaExtractor,
        resolve_media_bytes: MediaResolver,
    ) -> None:
        self.settings = settings
        self._select = select_publishable
        self._extract = extract_media_references
        self._resolve = resolve_media_bytes

    def build(self) -> list[DesiredEntry]:
        """Return every document and its media, sorted by path.

        Media referenced by several documents is included once.
        """
        documents = self._select()
        desired: dict[str, DesiredEntry] = {}
        references: list[str] = []

        for path in sorted(documents):
            data = documents[path]
            desired[path] = DesiredEntry(
                path=path, data=data, kind=EntryKind.DOCUMENT
            )
            references.extend(self.media_references(data))

        for entry in self._resolve_media(references):
            desired[entry.path] = entry

        logger.info(
            "Snapshot: %d documents, %d media files",
            len(documents),
            len(desired) - len(documents),
        )
        return sorted(desired.values(), key=lambda e: e.path)

    def build_single(
        self, path: str, data: bytes
    ) -> tuple[DesiredEntry, list[DesiredEntry]]:
        """Return one document and the media it embeds."""
        document = DesiredEntry(path=path, data=data, kind=EntryKind.DOCUMENT)
        media = list(self._resolve_media(self.media_references(data)))
        return document, media

    def media_references(self, data: bytes) -> list[str]:
        """Logical media names embedded in a document's content."""
        text, _ = decode_bytes(data)
        return self._extract(text)

    def _resolve_media(self, names: Iterable[str]) -> Iterator[DesiredEntry]:
        seen: set[str] = set()
        for name in names:
            media_path = self.settings.media_path(PurePosixPath(name).name)
            if media_path in seen:
                continue

            data = self._resolve(name)
            if data is None:
                logger.warning(
                    "Skipping media file %s - not found in vault", name
                )
                continue
            seen.add(media_path)
            yield DesiredEntry(path=media_path, data=data, kind=EntryKind.MEDIA)
