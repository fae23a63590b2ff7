"""Remote tree index: one recursive listing of the branch head.

The index is a point-in-time snapshot.  It is loaded once per run and
never re-validated; a concurrent push to the same branch is caught later
by the non-forced reference update, not here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import RemoteTruncated, RemoteUnavailable
from .models import RemoteEntry, RemoteIndex

if TYPE_CHECKING:
    from ..core.client import GitHubClient

logger = logging.getLogger(__name__)


def load_remote_index(client: GitHubClient, branch: str) -> RemoteIndex:
    """Resolve *branch* and index every blob in its head tree.

    Args:
        client: Remote store client.
        branch: Branch to read.

    Returns:
        A ``RemoteIndex`` keyed by full remote path.  Only blobs are
        indexed; tree and submodule entries are dropped.

    Raises:
        RemoteUnavailable: If the branch or its head commit cannot be
            resolved (``RemoteNotFound`` when the branch is absent).
        RemoteTruncated: If the store reports the listing as truncated.
            A partial index would turn every unlisted path into a
            spurious deletion, so the run must stop here.
    """
    head_commit = client.resolve_branch_head(branch)
    base_tree = client.get_commit_tree(head_commit)
    if not head_commit or not base_tree:
        raise RemoteUnavailable(
            f"Could not resolve head of branch '{branch}'",
            operation="resolve_branch_head",
            path=branch,
        )

    listing = client.list_tree_recursive(base_tree)
    if listing.truncated:
        raise RemoteTruncated(
            f"Tree listing for '{branch}' is truncated; refusing to "
            "publish against a partial index",
            operation="list_tree",
            path=base_tree,
        )

    entries = {
        item.path: RemoteEntry(
            path=item.path, identity=item.sha, object_ref=item.sha
        )
        for item in listing.items
        if item.type == "blob"
    }
    logger.info(
        "Indexed %d remote blobs on %s at %s",
        len(entries),
        branch,
        head_commit[:12],
    )
    return RemoteIndex(
        branch=branch,
        head_commit=head_commit,
        base_tree=base_tree,
        entries=entries,
    )
