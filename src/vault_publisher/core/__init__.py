"""GitHub REST client and async helpers."""

from .async_utils import run_sync
from .client import FileContent, GitHubClient, TreeItem, TreeListing

__all__ = [
    "FileContent",
    "GitHubClient",
    "TreeItem",
    "TreeListing",
    "run_sync",
]
