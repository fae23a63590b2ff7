"""Vault-to-repository publish engine.

Public API for publishing a note vault (documents plus embedded media)
into a directory of a GitHub repository.

Architecture
------------
Change detection is **content-addressed**: every local file is hashed
with the same function the remote store uses for blob IDs, so unchanged
files are recognised from one recursive tree listing without
downloading anything.

Modules:

- ``identity``     -- ``content_identity``: git blob object IDs.
- ``remote_index`` -- ``load_remote_index``: one listing of the branch head.
- ``snapshot``     -- ``LocalSnapshotBuilder``: documents plus their media.
- ``reconcile``    -- ``reconcile``: minimal add/update/delete changeset.
- ``batch``        -- ``BatchPublisher``: blobs -> tree -> commit -> ref.
- ``single``       -- ``SingleItemPublisher``: per-file contents writes.
- ``engine``       -- ``PublishEngine``: runs the publish state machine.
- ``models``       -- Pydantic data contracts.
- ``errors``       -- ``PublishError`` hierarchy.
- ``reporter``     -- Human-readable and JSON report formatting.

Usage example
-------------
::

    import asyncio
    from pathlib import Path
    from vault_publisher.config_schema import PublishConfig
    from vault_publisher.publish import (
        PublishEngine,
        format_dry_run_preview,
        format_publish_report,
    )
    from vault_publisher.vault import VaultSource

    settings = PublishConfig(target_dir="content", vault_root="~/Notes")
    source = VaultSource(Path("~/Notes").expanduser(), settings.media_folder)
    engine = PublishEngine(github_client, settings, source)

    # Dry-run first to preview changes
    preview = asyncio.run(engine.publish_all(dry_run=True))
    print(format_dry_run_preview(preview))

    report = asyncio.run(engine.publish_all())
    print(format_publish_report(report))
"""

from .engine import PublishEngine, PublishSource
from .errors import (
    PartialWrite,
    PublishCancelled,
    PublishError,
    RefConflict,
    RemoteNotFound,
    RemoteTruncated,
    RemoteUnavailable,
)
from .identity import content_identity
from .models import (
    ChangeKind,
    ChangesetOp,
    DesiredEntry,
    EntryKind,
    PublishChange,
    PublishReport,
    PublishState,
    PublishStats,
    RemoteEntry,
    RemoteIndex,
)
from .reconcile import reconcile
from .reporter import (
    format_dry_run_preview,
    format_publish_report,
    report_to_json,
)

__all__ = [
    "ChangeKind",
    "ChangesetOp",
    "DesiredEntry",
    "EntryKind",
    "PartialWrite",
    "PublishCancelled",
    "PublishChange",
    "PublishEngine",
    "PublishError",
    "PublishReport",
    "PublishSource",
    "PublishState",
    "PublishStats",
    "RefConflict",
    "RemoteEntry",
    "RemoteIndex",
    "RemoteNotFound",
    "RemoteTruncated",
    "RemoteUnavailable",
    "content_identity",
    "format_dry_run_preview",
    "format_publish_report",
    "reconcile",
    "report_to_json",
]
