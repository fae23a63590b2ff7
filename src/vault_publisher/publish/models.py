"""Pydantic models for the publish engine.

Defines the data contracts shared by all publish modules:

- ``EntryKind``: Document or media.
- ``DesiredEntry``: One file of the local desired state.
- ``RemoteEntry`` / ``RemoteIndex``: Point-in-time view of the remote tree.
- ``ChangeKind`` / ``ChangesetOp``: One add, update or delete.
- ``PublishStats``: Per-category counters for a run.
- ``PublishState``: Run state machine.
- ``PublishChange`` / ``PublishReport``: Outcome of a run.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

# Regular (non-executable) file mode in a git tree
BLOB_MODE = "100644"


class EntryKind(str, Enum):
    """Category of a published file."""

    DOCUMENT = "document"
    MEDIA = "media"


class DesiredEntry(BaseModel):
    """A file that should exist in the remote tree after publishing.

    Attributes:
        path: Slash-separated path relative to the target directory.
        data: Raw file content.
        kind: Document or media.
    """

    path: str
    data: bytes
    kind: EntryKind

    model_config = {"frozen": True}


class RemoteEntry(BaseModel):
    """A blob present in the remote tree.

    Attributes:
        path: Full path within the remote tree (``target_dir/...``).
        identity: Content identity (git blob ID) of the blob.
        object_ref: Handle the store uses to reference this blob.
    """

    path: str
    identity: str
    object_ref: str

    model_config = {"frozen": True}


class RemoteIndex(BaseModel):
    """Snapshot of a branch head and every blob in its tree.

    Attributes:
        branch: Branch name the index was loaded from.
        head_commit: Commit the branch pointed at when loaded.
        base_tree: Root tree of ``head_commit``.
        entries: Mapping of full remote path to ``RemoteEntry``.
    """

    branch: str
    head_commit: str
    base_tree: str
    entries: dict[str, RemoteEntry] = {}

    model_config = {"frozen": True}


class ChangeKind(str, Enum):
    """Kind of change applied to one remote path."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class ChangesetOp(BaseModel):
    """One operation of a changeset.

    Attributes:
        kind: Add, update or delete.
        path: Path relative to the target directory.
        remote_path: Full path within the remote tree.
        entry_kind: Whether the path is a document or media file.
        data: New content for add/update, ``None`` for delete.
        identity: Content identity of ``data``, ``None`` for delete.
    """

    kind: ChangeKind
    path: str
    remote_path: str
    entry_kind: EntryKind
    data: bytes | None = None
    identity: str | None = None

    model_config = {"frozen": True}

    @property
    def is_write(self) -> bool:
        """True for operations that upload content."""
        return self.kind != ChangeKind.DELETE


class PublishStats(BaseModel):
    """Per-category counters accumulated while building a changeset."""

    documents_added: int = 0
    documents_updated: int = 0
    documents_deleted: int = 0
    media_added: int = 0
    media_updated: int = 0
    media_deleted: int = 0

    model_config = {"frozen": True}

    @property
    def total(self) -> int:
        """Total number of changed paths."""
        return (
            self.documents_added
            + self.documents_updated
            + self.documents_deleted
            + self.media_added
            + self.media_updated
            + self.media_deleted
        )

    def summary_lines(self) -> list[str]:
        """Two-line pages/media summary."""
        return [
            f"Pages: {self.documents_added} added, "
            f"{self.documents_updated} updated, "
            f"{self.documents_deleted} deleted",
            f"Media: {self.media_added} added, "
            f"{self.media_updated} updated, "
            f"{self.media_deleted} deleted",
        ]


class PublishState(str, Enum):
    """States of a publish run.

    ``IDLE -> SNAPSHOTTING -> DIFFING -> UPLOADING -> (COMMITTING ->) DONE``,
    with any step able to move to ``FAILED`` instead of advancing.
    """

    IDLE = "idle"
    SNAPSHOTTING = "snapshotting"
    DIFFING = "diffing"
    UPLOADING = "uploading"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (PublishState.DONE, PublishState.FAILED)


class PublishChange(BaseModel):
    """A change as shown in reports (no content)."""

    kind: ChangeKind
    path: str
    entry_kind: EntryKind

    model_config = {"frozen": True}

    @classmethod
    def from_op(cls, op: ChangesetOp) -> PublishChange:
        return cls(kind=op.kind, path=op.path, entry_kind=op.entry_kind)


class PublishReport(BaseModel):
    """Outcome of one publish run.

    Attributes:
        mode: ``"sync"`` for a full publish, ``"file"`` for a single file.
        dry_run: Whether remote writes were skipped.
        state: Terminal state reached (``DONE`` or ``FAILED``).
        branch: Target branch.
        stats: Per-category counters.
        changes: Changes computed (and applied unless dry-run or failed).
        head_before: Branch head when the run started, if resolved.
        head_after: Branch head after the run, if a commit was made.
        error: Error message when ``state`` is ``FAILED``.
        error_kind: Error category (see ``PublishError.kind``).
        retryable: Whether re-running from a fresh index may succeed.
        succeeded_paths: Paths written before a partial failure.
        failed_paths: Paths whose write failed.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run ended.
    """

    mode: str
    dry_run: bool = False
    state: PublishState
    branch: str
    stats: PublishStats = PublishStats()
    changes: list[PublishChange] = []
    head_before: str | None = None
    head_after: str | None = None
    error: str | None = None
    error_kind: str | None = None
    retryable: bool = False
    succeeded_paths: list[str] = []
    failed_paths: list[str] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def success(self) -> bool:
        return self.state == PublishState.DONE

    @property
    def added(self) -> list[PublishChange]:
        """Changes where kind is ADD."""
        return [c for c in self.changes if c.kind == ChangeKind.ADD]

    @property
    def updated(self) -> list[PublishChange]:
        """Changes where kind is UPDATE."""
        return [c for c in self.changes if c.kind == ChangeKind.UPDATE]

    @property
    def deleted(self) -> list[PublishChange]:
        """Changes where kind is DELETE."""
        return [c for c in self.changes if c.kind == ChangeKind.DELETE]

    def summary(self) -> str:
        """Format a short human-readable summary of the run."""
        header = f"Publish ({self.mode}) to '{self.branch}': {self.state.value}"
        if self.dry_run:
            header += " (dry run)"
        lines = [header, *self.stats.summary_lines()]
        if self.error:
            lines.append(f"Error: {self.error}")
        return "\n".join(lines)
