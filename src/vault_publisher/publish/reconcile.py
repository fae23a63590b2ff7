"""Reconciliation: diff the desired state against the remote index.

Produces the minimal changeset that moves the remote target directory to
the desired state, plus per-category counters.  Pure: no I/O.

Rules
-----
1. A desired entry absent remotely is an ADD; present with a different
   content identity it is an UPDATE; present with the same identity it
   produces nothing.
2. A remote blob under the target directory is a DELETE unless its path
   is desired, or it is a media path still referenced by the desired set.
3. Remote blobs outside the target directory are never touched.

Writes come first in path order, then deletions in path order, so
identical inputs always yield an identical changeset.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from pathlib import PurePosixPath

from ..config_schema import PublishConfig
from .identity import content_identity
from .models import (
    ChangeKind,
    ChangesetOp,
    DesiredEntry,
    EntryKind,
    PublishStats,
    RemoteEntry,
)

logger = logging.getLogger(__name__)

_COUNTER_SUFFIX = {
    ChangeKind.ADD: "added",
    ChangeKind.UPDATE: "updated",
    ChangeKind.DELETE: "deleted",
}


def reconcile(
    desired: Iterable[DesiredEntry],
    remote: Mapping[str, RemoteEntry],
    settings: PublishConfig,
) -> tuple[list[ChangesetOp], PublishStats]:
    """Compute the changeset turning *remote* into *desired*.

    Args:
        desired: Desired entries, paths relative to ``target_dir``.  When
            two entries share a path the later one wins.
        remote: Remote index keyed by full remote path.
        settings: Publish configuration (target directory, media folder).

    Returns:
        ``(changeset, stats)``.
    """
    by_path = {entry.path: entry for entry in desired}
    entries = [by_path[path] for path in sorted(by_path)]

    ops: list[ChangesetOp] = []
    counts: Counter[str] = Counter()

    desired_remote_paths: set[str] = set()
    for entry in entries:
        remote_path = settings.remote_path(entry.path)
        desired_remote_paths.add(remote_path)
        identity = content_identity(entry.data)

        existing = remote.get(remote_path)
        if existing is None:
            kind = ChangeKind.ADD
        elif existing.identity != identity:
            kind = ChangeKind.UPDATE
        else:
            logger.debug("%s hasn't changed, skipping", entry.path)
            continue

        ops.append(
            ChangesetOp(
                kind=kind,
                path=entry.path,
                remote_path=remote_path,
                entry_kind=entry.kind,
                data=entry.data,
                identity=identity,
            )
        )
        counts[_counter_name(entry.kind, kind)] += 1

    referenced_media = referenced_media_paths(entries, settings)
    prefix = f"{settings.target_dir}/" if settings.target_dir else ""

    for remote_path in sorted(remote):
        if not remote_path.startswith(prefix):
            continue
        if remote_path in desired_remote_paths:
            continue

        relative = remote_path[len(prefix) :]
        entry_kind = classify_path(relative, settings)
        if entry_kind == EntryKind.MEDIA and remote_path in referenced_media:
            continue

        ops.append(
            ChangesetOp(
                kind=ChangeKind.DELETE,
                path=relative,
                remote_path=remote_path,
                entry_kind=entry_kind,
            )
        )
        counts[_counter_name(entry_kind, ChangeKind.DELETE)] += 1

    stats = PublishStats(**counts)
    logger.info(
        "Changeset: %d operations (%s)",
        len(ops),
        "; ".join(stats.summary_lines()),
    )
    return ops, stats


def referenced_media_paths(
    desired: Iterable[DesiredEntry], settings: PublishConfig
) -> set[str]:
    """Full remote paths of every media file in the desired set."""
    return {
        settings.remote_path(
            settings.media_path(PurePosixPath(entry.path).name)
        )
        for entry in desired
        if entry.kind == EntryKind.MEDIA
    }


def classify_path(relative: str, settings: PublishConfig) -> EntryKind:
    """Classify a path relative to ``target_dir`` as document or media.

    Only paths directly below ``target_dir/media_folder/`` count as
    media; a same-named folder deeper in the tree is a document folder.
    """
    if relative.startswith(f"{settings.media_folder}/"):
        return EntryKind.MEDIA
    return EntryKind.DOCUMENT


def _counter_name(entry_kind: EntryKind, kind: ChangeKind) -> str:
    group = "documents" if entry_kind == EntryKind.DOCUMENT else "media"
    return f"{group}_{_COUNTER_SUFFIX[kind]}"
