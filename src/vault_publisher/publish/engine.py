"""Publish engine: drive one run through the publish state machine.

``PublishEngine`` ties the snapshot builder, remote index, reconciliation
and the two publishers into complete runs:

- ``publish_all`` -- the whole vault as one atomic commit:
  Snapshotting -> Diffing -> Uploading -> Committing -> Done.
- ``publish_file`` -- one document and its media, written file by file:
  Snapshotting -> Uploading -> Done (Snapshotting -> Diffing -> Done for
  a dry run).

Any step may move the run to Failed instead.  The engine is the result
boundary of the pipeline: publish errors never escape it, they are
returned as a ``PublishReport`` in state ``FAILED`` carrying the error
kind, whether a retry may succeed, and for partial writes which paths
made it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, Protocol

from ..config_schema import PublishConfig
from ..core.async_utils import run_sync
from .batch import BatchPublisher, raise_if_cancelled
from .errors import PartialWrite, PublishError
from .models import (
    DesiredEntry,
    PublishChange,
    PublishReport,
    PublishState,
    PublishStats,
)
from .reconcile import reconcile
from .remote_index import load_remote_index
from .single import SingleItemPublisher, stats_for
from .snapshot import LocalSnapshotBuilder

if TYPE_CHECKING:
    from ..core.client import GitHubClient

logger = logging.getLogger(__name__)


class PublishSource(Protocol):
    """Host collaborators supplying the local side of a run."""

    def select_publishable(self) -> Mapping[str, bytes]: ...

    def extract_media_references(self, text: str) -> list[str]: ...

    def resolve_media_bytes(self, name: str) -> bytes | None: ...

    def read_document(self, path: str) -> bytes: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PublishEngine:
    """Run full-vault and single-file publishes against one branch.

    Args:
        client: Remote store client.
        settings: Immutable per-run publish configuration.
        source: Host collaborators for documents and media.
        cancel_event: Optional event; when set, the run stops at the next
            step boundary with a ``cancelled`` failure.
    """

    def __init__(
        self,
        client: GitHubClient,
        settings: PublishConfig,
        source: PublishSource,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.source = source
        self.cancel_event = cancel_event
        self.snapshot = LocalSnapshotBuilder(
            settings,
            source.select_publishable,
            source.extract_media_references,
            source.resolve_media_bytes,
        )
        self._state = PublishState.IDLE

    @property
    def state(self) -> PublishState:
        """Current state of the run in progress (or the last one)."""
        return self._state

    def _advance(self, state: PublishState) -> None:
        logger.info(
            "Publish state: %s -> %s",
            self._state.value,
            state.value,
            extra={"state": state.value},
        )
        self._state = state

    def _start(self, mode: str, dry_run: bool) -> str:
        self._state = PublishState.IDLE
        logger.info(
            "Starting %s publish to %s%s",
            mode,
            self.settings.target_branch,
            " (dry run)" if dry_run else "",
            extra={"mode": mode},
        )
        return _now()

    # ------------------------------------------------------------------
    # Full publish
    # ------------------------------------------------------------------

    async def publish_all(self, dry_run: bool = False) -> PublishReport:
        """Publish every publishable document and its media.

        The remote target directory is made to match the vault exactly:
        new and changed files are written, files no longer published are
        deleted, all in a single commit.  Nothing is written when the
        changeset is empty or *dry_run* is set.

        Returns:
            A ``PublishReport`` in state ``DONE`` or ``FAILED``.
        """
        started_at = self._start("sync", dry_run)
        head_before: str | None = None
        changes: list[PublishChange] = []
        stats = PublishStats()

        try:
            raise_if_cancelled(self.cancel_event, "snapshot")
            self._advance(PublishState.SNAPSHOTTING)
            desired = await run_sync(self.snapshot.build)
            index = await run_sync(
                load_remote_index, self.client, self.settings.target_branch
            )
            head_before = index.head_commit

            raise_if_cancelled(self.cancel_event, "reconcile")
            self._advance(PublishState.DIFFING)
            ops, stats = reconcile(desired, index.entries, self.settings)
            changes = [PublishChange.from_op(op) for op in ops]

            if dry_run or not ops:
                if not ops:
                    logger.info("Remote is already up to date")
                self._advance(PublishState.DONE)
                return self._report(
                    "sync",
                    dry_run,
                    started_at,
                    stats=stats,
                    changes=changes,
                    head_before=head_before,
                    head_after=head_before,
                )

            publisher = BatchPublisher(
                self.client, self.settings, self.cancel_event
            )
            self._advance(PublishState.UPLOADING)
            blob_refs = await publisher.upload_blobs(ops)

            self._advance(PublishState.COMMITTING)
            head_after = await publisher.commit(ops, blob_refs, index)
        except (PublishError, OSError, ValueError) as exc:
            return self._failed(
                "sync",
                dry_run,
                started_at,
                exc,
                stats=stats,
                changes=changes,
                head_before=head_before,
            )

        self._advance(PublishState.DONE)
        return self._report(
            "sync",
            dry_run,
            started_at,
            stats=stats,
            changes=changes,
            head_before=head_before,
            head_after=head_after,
        )

    # ------------------------------------------------------------------
    # Single-file publish
    # ------------------------------------------------------------------

    async def publish_file(
        self, path: str, dry_run: bool = False
    ) -> PublishReport:
        """Publish one document and the media it embeds.

        Each file is written with its own commit and skipped when the
        remote copy is identical.  Nothing is deleted.

        Args:
            path: Document path relative to the vault root.
            dry_run: Only report what would be written.

        Returns:
            A ``PublishReport`` in state ``DONE`` or ``FAILED``; a
            ``partial_write`` failure lists succeeded and failed paths.
        """
        started_at = self._start("file", dry_run)
        publisher = SingleItemPublisher(self.client, self.settings)

        try:
            raise_if_cancelled(self.cancel_event, "snapshot")
            self._advance(PublishState.SNAPSHOTTING)
            path = PurePosixPath(path).as_posix()
            data = await run_sync(self.source.read_document, path)
            document, media = self.snapshot.build_single(path, data)

            raise_if_cancelled(self.cancel_event, "reconcile")
            self._advance(PublishState.DIFFING)
            planned = await run_sync(
                self._plan, publisher, [document, *media]
            )

            if dry_run or not planned:
                if not planned:
                    logger.info("Remote is already up to date")
                self._advance(PublishState.DONE)
                return self._report(
                    "file",
                    dry_run,
                    started_at,
                    stats=stats_for(planned),
                    changes=planned,
                )

            raise_if_cancelled(self.cancel_event, "put_file_content")
            self._advance(PublishState.UPLOADING)
            changes, succeeded = await run_sync(
                publisher.publish, document, media, self.cancel_event
            )
        except PartialWrite as exc:
            changes = publisher.changes
            return self._failed(
                "file",
                dry_run,
                started_at,
                exc,
                stats=stats_for(changes),
                changes=changes,
                succeeded_paths=exc.succeeded,
                failed_paths=exc.failed,
            )
        except (PublishError, OSError, ValueError) as exc:
            changes = publisher.changes
            return self._failed(
                "file",
                dry_run,
                started_at,
                exc,
                stats=stats_for(changes),
                changes=changes,
                succeeded_paths=publisher.succeeded,
            )

        self._advance(PublishState.DONE)
        return self._report(
            "file",
            dry_run,
            started_at,
            stats=stats_for(changes),
            changes=changes,
            succeeded_paths=succeeded,
        )

    @staticmethod
    def _plan(
        publisher: SingleItemPublisher, entries: list[DesiredEntry]
    ) -> list[PublishChange]:
        planned = (publisher.plan(entry) for entry in entries)
        return [change for change in planned if change is not None]

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def _report(
        self, mode: str, dry_run: bool, started_at: str, **fields: Any
    ) -> PublishReport:
        return PublishReport(
            mode=mode,
            dry_run=dry_run,
            state=self._state,
            branch=self.settings.target_branch,
            started_at=started_at,
            completed_at=_now(),
            **fields,
        )

    def _failed(
        self,
        mode: str,
        dry_run: bool,
        started_at: str,
        exc: Exception,
        **fields: Any,
    ) -> PublishReport:
        if isinstance(exc, PublishError):
            error_kind = exc.kind
            retryable = exc.retryable
        elif isinstance(exc, ValueError):
            error_kind = "invalid_input"
            retryable = False
        else:
            error_kind = "local_error"
            retryable = False

        logger.error(
            "Publish failed while %s: %s",
            self._state.value,
            exc,
            extra={
                "mode": mode,
                "error_kind": error_kind,
                "operation": getattr(exc, "operation", None),
                "path": getattr(exc, "path", None),
            },
        )
        self._advance(PublishState.FAILED)
        return self._report(
            mode,
            dry_run,
            started_at,
            error=str(exc),
            error_kind=error_kind,
            retryable=retryable,
            **fields,
        )
