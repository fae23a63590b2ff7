"""Batch publisher: apply a whole changeset as one commit.

Sequence (strict): upload blobs -> create tree -> create commit ->
fast-forward the branch.  Blob uploads are independent and run
concurrently under the shared upload semaphore; everything after them is
sequential.

Any failure before ``update_ref`` leaves the branch untouched.  Blobs
uploaded before the failure stay in the store unreferenced, which the
store tolerates.  If ``update_ref`` itself fails the new commit exists but
nothing points at it; the run must be retried from a fresh index.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from ..config_schema import PublishConfig
from ..core.async_utils import gather_limited, run_sync, run_sync_limited
from .errors import PublishCancelled, PublishError
from .models import BLOB_MODE, ChangesetOp, RemoteIndex

if TYPE_CHECKING:
    from ..core.client import GitHubClient

logger = logging.getLogger(__name__)


def raise_if_cancelled(
    cancel_event: threading.Event | None, next_step: str
) -> None:
    """Raise ``PublishCancelled`` if the caller asked to stop."""
    if cancel_event is not None and cancel_event.is_set():
        raise PublishCancelled(
            f"Publish cancelled before {next_step}", operation=next_step
        )


class BatchPublisher:
    """Apply a changeset on top of a branch head as a single commit.

    Args:
        client: Remote store client.
        settings: Publish configuration (branch, commit message).
        cancel_event: Optional event checked between steps.
    """

    def __init__(
        self,
        client: GitHubClient,
        settings: PublishConfig,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.cancel_event = cancel_event

    async def apply(
        self, changeset: list[ChangesetOp], index: RemoteIndex
    ) -> str:
        """Upload, commit and fast-forward; return the new branch head.

        An empty changeset makes no remote call and returns the current
        head.
        """
        if not changeset:
            return index.head_commit
        blob_refs = await self.upload_blobs(changeset)
        return await self.commit(changeset, blob_refs, index)

    async def upload_blobs(
        self, changeset: list[ChangesetOp]
    ) -> dict[str, str]:
        """Create one blob per add/update op.

        Returns:
            Mapping of remote path to the new blob's object reference.
        """
        raise_if_cancelled(self.cancel_event, "create_blob")
        writes = [op for op in changeset if op.is_write]
        refs = await gather_limited(
            [
                run_sync_limited(self.client.create_blob, op.data)
                for op in writes
            ]
        )
        logger.info("Uploaded %d blobs", len(refs))
        return {op.remote_path: ref for op, ref in zip(writes, refs)}

    def tree_entries(
        self, changeset: list[ChangesetOp], blob_refs: dict[str, str]
    ) -> list[dict[str, Any]]:
        """Tree description: writes map to blob refs, deletes to ``None``."""
        return [
            {
                "path": op.remote_path,
                "mode": BLOB_MODE,
                "type": "blob",
                "sha": blob_refs[op.remote_path] if op.is_write else None,
            }
            for op in changeset
        ]

    async def commit(
        self,
        changeset: list[ChangesetOp],
        blob_refs: dict[str, str],
        index: RemoteIndex,
    ) -> str:
        """Create tree and commit, then move the branch (never forced)."""
        entries = self.tree_entries(changeset, blob_refs)

        raise_if_cancelled(self.cancel_event, "create_tree")
        tree_sha = await run_sync(
            self.client.create_tree, index.base_tree, entries
        )

        raise_if_cancelled(self.cancel_event, "create_commit")
        commit_sha = await run_sync(
            self.client.create_commit,
            tree_sha,
            [index.head_commit],
            self.settings.commit_message,
        )

        raise_if_cancelled(self.cancel_event, "update_ref")
        try:
            await run_sync(
                self.client.update_ref, index.branch, commit_sha, False
            )
        except PublishError:
            logger.error(
                "Commit %s was created but %s was not moved to it",
                commit_sha,
                index.branch,
            )
            raise

        logger.info(
            "Branch %s moved %s -> %s",
            index.branch,
            index.head_commit[:12],
            commit_sha[:12],
        )
        return commit_sha
