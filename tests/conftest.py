"""Shared pytest fixtures for vault-publisher tests."""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from typing import Any

import pytest
from dotenv import load_dotenv

from vault_publisher.config import Config
from vault_publisher.config_schema import PublishConfig
from vault_publisher.core.client import FileContent, TreeItem, TreeListing
from vault_publisher.publish.errors import (
    RefConflict,
    RemoteNotFound,
    RemoteUnavailable,
)
from vault_publisher.publish.identity import content_identity

load_dotenv()


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live GitHub repository",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live GitHub repository"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------------
# In-memory remote store
# ---------------------------------------------------------------------------


def _object_id(kind: str, payload: Any) -> str:
    return hashlib.sha1(f"{kind}:{payload!r}".encode()).hexdigest()


class FakeGitHubClient:
    """Minimal GitHubClient replacement backed by in-memory git objects.

    Trees are stored flat (full path -> blob SHA).  Blob SHAs are real git
    blob IDs so they line up with ``content_identity``.

    Faults are injected with ``fail(operation, error, path=None)``; hooks
    registered with ``before(operation, fn)`` run ahead of an operation
    (e.g. to simulate a concurrent push).
    """

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.trees: dict[str, dict[str, str]] = {}
        self.commits: dict[str, dict[str, Any]] = {}
        self.refs: dict[str, str] = {}
        self.calls: list[str] = []
        self.truncated = False
        self._failures: dict[tuple[str, str | None], Exception] = {}
        self._hooks: dict[str, Callable[[], None]] = {}

    # -- test helpers ---------------------------------------------------

    def seed(self, files: dict[str, bytes], branch: str = "main") -> str:
        """Create a commit holding exactly *files* and point *branch* at it."""
        tree = {path: self._store_blob(data) for path, data in files.items()}
        tree_sha = self._store_tree(tree)
        parents = [self.refs[branch]] if branch in self.refs else []
        commit_sha = self._store_commit(tree_sha, parents, "seed")
        self.refs[branch] = commit_sha
        return commit_sha

    def push(self, files: dict[str, bytes], branch: str = "main") -> str:
        """Simulate an outside push adding *files* on top of *branch*."""
        tree = dict(self.files_tree(branch))
        tree.update({p: self._store_blob(d) for p, d in files.items()})
        commit_sha = self._store_commit(
            self._store_tree(tree), [self.refs[branch]], "outside push"
        )
        self.refs[branch] = commit_sha
        return commit_sha

    def files(self, branch: str = "main") -> dict[str, bytes]:
        """Content of every file on *branch*."""
        return {
            path: self.blobs[sha]
            for path, sha in self.files_tree(branch).items()
        }

    def files_tree(self, branch: str = "main") -> dict[str, str]:
        commit = self.commits[self.refs[branch]]
        return self.trees[commit["tree"]]

    def fail(
        self, operation: str, error: Exception, path: str | None = None
    ) -> None:
        self._failures[(operation, path)] = error

    def before(self, operation: str, hook: Callable[[], None]) -> None:
        self._hooks[operation] = hook

    def count(self, operation: str) -> int:
        return self.calls.count(operation)

    def _enter(self, operation: str, path: str | None = None) -> None:
        self.calls.append(operation)
        hook = self._hooks.pop(operation, None)
        if hook is not None:
            hook()
        for key in ((operation, path), (operation, None)):
            if key in self._failures:
                raise self._failures[key]

    def _store_blob(self, data: bytes) -> str:
        sha = content_identity(data)
        self.blobs[sha] = data
        return sha

    def _store_tree(self, tree: dict[str, str]) -> str:
        sha = _object_id("tree", sorted(tree.items()))
        self.trees[sha] = dict(tree)
        return sha

    def _store_commit(
        self, tree_sha: str, parents: list[str], message: str
    ) -> str:
        sha = _object_id("commit", (tree_sha, tuple(parents), message))
        self.commits[sha] = {
            "tree": tree_sha,
            "parents": list(parents),
            "message": message,
        }
        return sha

    def _is_ancestor(self, ancestor: str, commit: str) -> bool:
        pending = [commit]
        while pending:
            sha = pending.pop()
            if sha == ancestor:
                return True
            pending.extend(self.commits[sha]["parents"])
        return False

    # -- GitHubClient surface -------------------------------------------

    def validate_connection(self) -> str:
        self._enter("get_repository")
        return "octo/site"

    def resolve_branch_head(self, branch: str) -> str:
        self._enter("resolve_branch_head", branch)
        if branch not in self.refs:
            raise RemoteNotFound(
                "GitHub API returned 404: Not Found",
                operation="resolve_branch_head",
                path=branch,
                status_code=404,
            )
        return self.refs[branch]

    def get_commit_tree(self, commit_sha: str) -> str:
        self._enter("get_commit", commit_sha)
        return self.commits[commit_sha]["tree"]

    def list_tree_recursive(self, tree_sha: str) -> TreeListing:
        self._enter("list_tree", tree_sha)
        tree = self.trees[tree_sha]
        directories = {
            path.rsplit("/", 1)[0] for path in tree if "/" in path
        }
        items = [
            TreeItem(path=d, type="tree", sha=_object_id("dir", d), mode="040000")
            for d in sorted(directories)
        ]
        items += [
            TreeItem(path=path, type="blob", sha=sha)
            for path, sha in sorted(tree.items())
        ]
        return TreeListing(sha=tree_sha, items=items, truncated=self.truncated)

    def create_blob(self, content: bytes) -> str:
        self._enter("create_blob")
        return self._store_blob(content)

    def create_tree(self, base_tree: str, entries: list[dict]) -> str:
        self._enter("create_tree", base_tree)
        tree = dict(self.trees[base_tree])
        for entry in entries:
            if entry["sha"] is None:
                tree.pop(entry["path"], None)
            else:
                if entry["sha"] not in self.blobs:
                    raise RemoteUnavailable(
                        "GitHub API returned 422: tree.sha is not a valid blob",
                        operation="create_tree",
                        path=entry["path"],
                        status_code=422,
                    )
                tree[entry["path"]] = entry["sha"]
        return self._store_tree(tree)

    def create_commit(
        self, tree_sha: str, parents: list[str], message: str
    ) -> str:
        self._enter("create_commit", tree_sha)
        return self._store_commit(tree_sha, parents, message)

    def update_ref(
        self, branch: str, commit_sha: str, force: bool = False
    ) -> str:
        self._enter("update_ref", branch)
        current = self.refs.get(branch)
        if (
            not force
            and current is not None
            and not self._is_ancestor(current, commit_sha)
        ):
            raise RefConflict(
                "GitHub API returned 422: Update is not a fast forward",
                operation="update_ref",
                path=branch,
            )
        self.refs[branch] = commit_sha
        return commit_sha

    def get_file_content(self, path: str, ref: str) -> FileContent | None:
        self._enter("get_file_content", path)
        sha = self.files_tree(ref).get(path)
        if sha is None:
            return None
        return FileContent(path=path, sha=sha, data=self.blobs[sha])

    def put_file_content(
        self,
        path: str,
        content: bytes,
        branch: str,
        message: str,
        sha: str | None = None,
    ) -> str:
        self._enter("put_file_content", path)
        tree = dict(self.files_tree(branch))
        if tree.get(path) != sha:
            raise RefConflict(
                f"GitHub API returned 409: {path} does not match {sha}",
                operation="put_file_content",
                path=path,
            )
        tree[path] = self._store_blob(content)
        commit_sha = self._store_commit(
            self._store_tree(tree), [self.refs[branch]], message
        )
        self.refs[branch] = commit_sha
        return tree[path]


class MemorySource:
    """Host collaborators over in-memory documents and media."""

    def __init__(
        self,
        documents: dict[str, bytes] | None = None,
        media: dict[str, bytes] | None = None,
        unpublished: dict[str, bytes] | None = None,
    ) -> None:
        self.documents = dict(documents or {})
        self.media = dict(media or {})
        self.unpublished = dict(unpublished or {})

    def select_publishable(self) -> dict[str, bytes]:
        return dict(self.documents)

    def extract_media_references(self, text: str) -> list[str]:
        names: list[str] = []
        for chunk in text.split("![[")[1:]:
            name = chunk.split("]]", 1)[0]
            if name not in names:
                names.append(name)
        return names

    def resolve_media_bytes(self, name: str) -> bytes | None:
        return self.media.get(name)

    def read_document(self, path: str) -> bytes:
        if path in self.documents:
            return self.documents[path]
        if path in self.unpublished:
            return self.unpublished[path]
        raise FileNotFoundError(f"Note not found: {path}")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        token="ghp_testtoken",
        owner="octo",
        repo="site",
    )


@pytest.fixture
def settings():
    """Default publish settings: main branch, content/ target."""
    return PublishConfig()


@pytest.fixture
def fake_client():
    """Empty in-memory remote store."""
    return FakeGitHubClient()


@pytest.fixture
def make_vault(tmp_path):
    """Factory writing a dict of relative path -> bytes/str into a vault."""

    def _make(files: dict[str, bytes | str]):
        root = tmp_path / "vault"
        root.mkdir(exist_ok=True)
        for rel, content in files.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                content = content.encode("utf-8")
            target.write_bytes(content)
        return root

    return _make


@pytest.fixture
def make_source():
    """Factory for in-memory host collaborators."""
    return MemorySource
