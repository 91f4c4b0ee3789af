"""GitHub transport and async helpers shared by the sync session and server."""

from .async_utils import run_sync
from .client import GitHubAPIError, GitHubClient

__all__ = ["GitHubAPIError", "GitHubClient", "run_sync"]
