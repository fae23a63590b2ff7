"""Exception taxonomy for publish runs.

Every remote-call failure surfaces as a ``PublishError`` subclass carrying
the operation and path it happened on, so callers can log and retry.

- ``RemoteUnavailable`` -- network, auth or server failure; no mutation
  is attempted after it.
- ``RemoteNotFound`` -- the branch, commit or path does not exist.
- ``RemoteTruncated`` -- the recursive tree listing is incomplete.
- ``RefConflict`` -- a non-forced update was rejected because the branch
  moved; retry from a fresh index load.
- ``PartialWrite`` -- some per-file writes of a single-item publish
  succeeded and others failed.
- ``PublishCancelled`` -- the caller cancelled the run at a step boundary.
"""

from __future__ import annotations


class PublishError(Exception):
    """Base class for all publish failures.

    Args:
        message: Human-readable description.
        operation: Remote operation that failed (e.g. ``"create_blob"``).
        path: Remote path or ref the operation targeted, if any.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.path = path

    @property
    def kind(self) -> str:
        """Short snake_case error category used in reports."""
        return _KIND_NAMES.get(type(self), "publish_error")

    def __str__(self) -> str:
        message = super().__str__()
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.path:
            context.append(f"path={self.path}")
        if context:
            return f"{message} ({', '.join(context)})"
        return message


class RemoteUnavailable(PublishError):
    """The remote store could not be reached or refused the request."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, operation=operation, path=path)
        self.status_code = status_code


class RemoteNotFound(RemoteUnavailable):
    """The requested branch, object or path does not exist remotely."""


class RemoteTruncated(PublishError):
    """The remote listing was truncated; operating on it is unsafe."""


class RefConflict(PublishError):
    """A non-forced write was rejected because the remote moved."""

    retryable = True


class PublishCancelled(PublishError):
    """The run was cancelled by the caller between two steps."""


class PartialWrite(PublishError):
    """Some per-file writes succeeded before others failed.

    Attributes:
        succeeded: Paths written (or confirmed unchanged) successfully.
        failed: Paths whose write failed.
        causes: Error message per failed path.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        succeeded: list[str],
        failed: list[str],
        causes: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, operation="put_file_content")
        self.succeeded = list(succeeded)
        self.failed = list(failed)
        self.causes = dict(causes or {})


_KIND_NAMES: dict[type, str] = {
    PublishError: "publish_error",
    RemoteUnavailable: "remote_unavailable",
    RemoteNotFound: "remote_not_found",
    RemoteTruncated: "remote_truncated",
    RefConflict: "ref_conflict",
    PublishCancelled: "cancelled",
    PartialWrite: "partial_write",
}
