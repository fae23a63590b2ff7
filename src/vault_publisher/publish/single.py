"""Single-item publisher: write one document and its media file by file.

Each file goes through the per-file contents API with its own commit.
Unlike the batch path this is not atomic: a run can leave some files
written and others not, which is reported as ``PartialWrite``.

No deletions happen here.  Only the batch path owns removal.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from ..config_schema import PublishConfig
from .batch import raise_if_cancelled
from .errors import PartialWrite, PublishError
from .identity import content_identity
from .models import (
    ChangeKind,
    DesiredEntry,
    EntryKind,
    PublishChange,
    PublishStats,
)

if TYPE_CHECKING:
    import threading

    from ..core.client import GitHubClient

logger = logging.getLogger(__name__)


class SingleItemPublisher:
    """Publish one document plus its embedded media, one file at a time.

    Args:
        client: Remote store client.
        settings: Publish configuration (branch, target directory).
    """

    def __init__(self, client: GitHubClient, settings: PublishConfig) -> None:
        self.client = client
        self.settings = settings
        self.changes: list[PublishChange] = []
        self.succeeded: list[str] = []

    def plan(self, entry: DesiredEntry) -> PublishChange | None:
        """Return the change writing *entry* would make, or ``None``."""
        remote_path = self.settings.remote_path(entry.path)
        existing = self.client.get_file_content(
            remote_path, ref=self.settings.target_branch
        )
        if existing is None:
            return PublishChange(
                kind=ChangeKind.ADD, path=entry.path, entry_kind=entry.kind
            )
        if existing.sha == content_identity(entry.data):
            return None
        return PublishChange(
            kind=ChangeKind.UPDATE, path=entry.path, entry_kind=entry.kind
        )

    def write(self, entry: DesiredEntry) -> PublishChange | None:
        """Write *entry* unless the remote copy is identical.

        Returns:
            The change made, or ``None`` when the file was unchanged.

        Raises:
            PublishError: If reading or writing the remote file fails.
        """
        remote_path = self.settings.remote_path(entry.path)
        existing = self.client.get_file_content(
            remote_path, ref=self.settings.target_branch
        )

        if existing is not None and existing.sha == content_identity(
            entry.data
        ):
            logger.debug("%s hasn't changed, skipping", remote_path)
            return None

        kind = ChangeKind.ADD if existing is None else ChangeKind.UPDATE
        self.client.put_file_content(
            remote_path,
            entry.data,
            branch=self.settings.target_branch,
            message=_commit_message(entry, kind),
            sha=existing.sha if existing is not None else None,
        )
        logger.info("%s %s", kind.value.capitalize(), remote_path)
        return PublishChange(kind=kind, path=entry.path, entry_kind=entry.kind)

    def publish(
        self,
        document: DesiredEntry,
        media: list[DesiredEntry],
        cancel_event: threading.Event | None = None,
    ) -> tuple[list[PublishChange], list[str]]:
        """Write *document*, then every file in *media*.

        A failure on the document aborts before any media is written and
        the original error propagates.  Media failures do not stop the
        remaining media writes; once all have been attempted they are
        raised together as ``PartialWrite``.  *cancel_event* is checked
        before every write.

        Returns:
            ``(changes, succeeded)``; ``succeeded`` lists every path
            written or confirmed unchanged.  ``self.changes`` and
            ``self.succeeded`` hold the progress so far, also after a
            failure.

        Raises:
            PublishError: If the document write fails.
            PublishCancelled: If *cancel_event* is set between writes.
            PartialWrite: If any media write fails.
        """
        self.changes = []
        self.succeeded = []
        succeeded = self.succeeded

        raise_if_cancelled(cancel_event, "put_file_content")
        change = self.write(document)
        if change is not None:
            self.changes.append(change)
        succeeded.append(document.path)

        failed: list[str] = []
        causes: dict[str, str] = {}
        for entry in media:
            raise_if_cancelled(cancel_event, "put_file_content")
            try:
                change = self.write(entry)
            except (PublishError, ValueError, OSError) as exc:
                logger.error("Failed to publish media %s: %s", entry.path, exc)
                failed.append(entry.path)
                causes[entry.path] = str(exc)
                continue
            if change is not None:
                self.changes.append(change)
            succeeded.append(entry.path)

        if failed:
            raise PartialWrite(
                f"{len(failed)} of {len(media)} media files failed to publish",
                succeeded=succeeded,
                failed=failed,
                causes=causes,
            )
        return list(self.changes), succeeded


def stats_for(changes: list[PublishChange]) -> PublishStats:
    """Count *changes* per category."""
    counts = {
        "documents_added": 0,
        "documents_updated": 0,
        "media_added": 0,
        "media_updated": 0,
    }
    for change in changes:
        group = (
            "documents" if change.entry_kind == EntryKind.DOCUMENT else "media"
        )
        suffix = "added" if change.kind == ChangeKind.ADD else "updated"
        counts[f"{group}_{suffix}"] += 1
    return PublishStats(**counts)


def _commit_message(entry: DesiredEntry, kind: ChangeKind) -> str:
    verb = "Add" if kind == ChangeKind.ADD else "Update"
    if entry.kind == EntryKind.MEDIA:
        return f"{verb} media {PurePosixPath(entry.path).name}"
    return f"{verb} {entry.path}"
