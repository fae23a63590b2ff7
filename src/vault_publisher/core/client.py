import base64
import logging
import threading
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

from ..config import Config
from ..publish.errors import (
    RefConflict,
    RemoteNotFound,
    RemoteUnavailable,
)
from ..publish.models import BLOB_MODE
from ..validators import validate_blob_size, validate_remote_path

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


@dataclass(frozen=True)
class TreeItem:
    path: str
    type: str
    sha: str
    mode: str = BLOB_MODE


@dataclass(frozen=True)
class TreeListing:
    sha: str
    items: list[TreeItem]
    truncated: bool = False


@dataclass(frozen=True)
class FileContent:
    """A file read through the contents API.

    ``data`` is ``None`` when the store omits inline content (files above
    1 MB); ``sha`` is always present.
    """

    path: str
    sha: str
    data: bytes | None = None


class GitHubClient:
    """Minimal GitHub REST binding for publishing into a repository tree.

    Every failure is raised as a ``PublishError`` subclass carrying the
    operation name and the path or ref involved.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.repo_url = self._get_repo_url()

    @property
    def session(self) -> requests.Session:
        """Session for the current thread."""
        return self._get_session()

    def _get_repo_url(self) -> str:
        return (
            f"{self.config.api_url.rstrip('/')}"
            f"/repos/{self.config.owner}/{self.config.repo}"
        )

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": "vault-publisher",
            }
        )
        return session

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        operation: str,
        path: str | None = None,
        conflict_statuses: tuple[int, ...] = (),
        **kwargs: Any,
    ) -> Any:
        """
        Send a request to the repository API and return the decoded JSON body.
        """
        url = f"{self.repo_url}{endpoint}"
        logger.debug("%s %s (%s)", method, url, operation)
        try:
            response = self._get_session().request(
                method, url, timeout=(10, 60), **kwargs
            )
        except requests.RequestException as exc:
            raise RemoteUnavailable(
                f"Request to GitHub failed: {exc}",
                operation=operation,
                path=path,
            ) from exc

        status = response.status_code
        if status in conflict_statuses:
            raise RefConflict(
                self._error_message(response),
                operation=operation,
                path=path,
            )
        if status == 404:
            raise RemoteNotFound(
                self._error_message(response),
                operation=operation,
                path=path,
                status_code=status,
            )
        if status >= 400:
            raise RemoteUnavailable(
                self._error_message(response),
                operation=operation,
                path=path,
                status_code=status,
            )

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            detail = response.json().get("message", "")
        except ValueError:
            detail = response.text
        if not detail:
            return f"GitHub API returned {response.status_code}"
        return f"GitHub API returned {response.status_code}: {detail}"

    @staticmethod
    def _check_path(path: str) -> None:
        is_valid, error_msg = validate_remote_path(path)
        if not is_valid:
            raise ValueError(f"Invalid remote path: {error_msg}")

    # Connection

    def validate_connection(self) -> str:
        """
        Validate access by fetching repository metadata.
        Returns the repository's full name if successful.
        """
        data = self._request("GET", "", operation="get_repository")
        return str(data.get("full_name", ""))

    # Git data API

    def resolve_branch_head(self, branch: str) -> str:
        """
        Resolve the commit a branch points at.

        Raises:
            RemoteNotFound: If the branch does not exist
            RemoteUnavailable: On network, auth or server failure
        """
        data = self._request(
            "GET",
            f"/git/ref/heads/{quote(branch, safe='/')}",
            operation="resolve_branch_head",
            path=branch,
        )
        return data["object"]["sha"]

    def get_commit_tree(self, commit_sha: str) -> str:
        """
        Return the root tree SHA of a commit.
        """
        data = self._request(
            "GET",
            f"/git/commits/{commit_sha}",
            operation="get_commit",
            path=commit_sha,
        )
        return data["tree"]["sha"]

    def list_tree_recursive(self, tree_sha: str) -> TreeListing:
        """
        List every entry of a tree and its subtrees in one call.

        The returned listing's ``truncated`` flag mirrors the store's own
        signal; callers decide whether a partial listing is acceptable.
        """
        data = self._request(
            "GET",
            f"/git/trees/{tree_sha}",
            operation="list_tree",
            path=tree_sha,
            params={"recursive": "1"},
        )
        items = [
            TreeItem(
                path=item["path"],
                type=item["type"],
                sha=item["sha"],
                mode=item.get("mode", BLOB_MODE),
            )
            for item in data.get("tree", [])
        ]
        return TreeListing(
            sha=data.get("sha", tree_sha),
            items=items,
            truncated=bool(data.get("truncated", False)),
        )

    def create_blob(self, content: bytes) -> str:
        """
        Upload content as a blob and return its SHA.

        Raises:
            ValueError: If content exceeds the maximum blob size
        """
        is_valid, error_msg = validate_blob_size(content)
        if not is_valid:
            raise ValueError(f"Invalid blob: {error_msg}")

        data = self._request(
            "POST",
            "/git/blobs",
            operation="create_blob",
            json={
                "content": base64.b64encode(content).decode("ascii"),
                "encoding": "base64",
            },
        )
        return data["sha"]

    def create_tree(
        self, base_tree: str, entries: list[dict[str, Any]]
    ) -> str:
        """
        Create a tree layered on top of *base_tree*.

        Args:
            base_tree: SHA of the tree to modify
            entries: Dicts with keys path, mode, type, sha. A ``sha`` of
                ``None`` removes the path from the tree.

        Returns:
            SHA of the new tree
        """
        for entry in entries:
            self._check_path(entry["path"])

        data = self._request(
            "POST",
            "/git/trees",
            operation="create_tree",
            path=base_tree,
            json={"base_tree": base_tree, "tree": entries},
        )
        return data["sha"]

    def create_commit(
        self, tree_sha: str, parents: list[str], message: str
    ) -> str:
        """
        Create a commit object and return its SHA.
        """
        data = self._request(
            "POST",
            "/git/commits",
            operation="create_commit",
            path=tree_sha,
            json={"message": message, "tree": tree_sha, "parents": parents},
        )
        return data["sha"]

    def update_ref(
        self, branch: str, commit_sha: str, force: bool = False
    ) -> str:
        """
        Move a branch to *commit_sha*.

        With ``force=False`` the store only accepts a fast-forward.

        Raises:
            RefConflict: If the update is not a fast-forward
        """
        data = self._request(
            "PATCH",
            f"/git/refs/heads/{quote(branch, safe='/')}",
            operation="update_ref",
            path=branch,
            conflict_statuses=(409, 422),
            json={"sha": commit_sha, "force": force},
        )
        return data["object"]["sha"]

    # Contents API

    def get_file_content(self, path: str, ref: str) -> FileContent | None:
        """
        Read one file at *ref*.

        Returns:
            FileContent, or None if the path does not exist or is a
            directory
        """
        self._check_path(path)
        try:
            data = self._request(
                "GET",
                f"/contents/{quote(path, safe='/')}",
                operation="get_file_content",
                path=path,
                params={"ref": ref},
            )
        except RemoteNotFound:
            return None

        if isinstance(data, list) or data.get("type") != "file":
            logger.debug("Path %s is not a file", path)
            return None

        raw = None
        if data.get("encoding") == "base64" and data.get("content"):
            raw = base64.b64decode(data["content"])
        return FileContent(path=path, sha=data["sha"], data=raw)

    def put_file_content(
        self,
        path: str,
        content: bytes,
        branch: str,
        message: str,
        sha: str | None = None,
    ) -> str:
        """
        Create or update one file with its own commit.

        Args:
            path: File path in the repository
            content: New file content
            branch: Branch to commit to
            message: Commit message
            sha: Blob SHA of the file being replaced; required for updates

        Returns:
            Blob SHA of the written file

        Raises:
            RefConflict: If *sha* no longer matches the file on the branch
        """
        self._check_path(path)
        is_valid, error_msg = validate_blob_size(content)
        if not is_valid:
            raise ValueError(f"Invalid blob: {error_msg}")

        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }
        if sha is not None:
            payload["sha"] = sha

        data = self._request(
            "PUT",
            f"/contents/{quote(path, safe='/')}",
            operation="put_file_content",
            path=path,
            conflict_statuses=(409, 422),
            json=payload,
        )
        return data["content"]["sha"]
