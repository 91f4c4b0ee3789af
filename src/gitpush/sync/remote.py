"""Remote snapshot fetcher.

Reads the branch tip and its recursive tree, keeping only blobs. Failures
never propagate: they come back as ``RemoteUnreachable`` so the session
can keep showing local changes while push and pull stay disabled.
"""

from __future__ import annotations

import logging

from gitpush.core.async_utils import run_sync
from gitpush.core.client import GitHubClient
from gitpush.sync.models import RemoteSnapshot, RemoteUnreachable

logger = logging.getLogger(__name__)


async def fetch_remote_snapshot(
    client: GitHubClient, owner: str, repo: str, branch: str
) -> RemoteSnapshot | RemoteUnreachable:
    """Fetch ``repo_path -> blob sha`` for every blob at the tip of *branch*.

    Returns:
        A ``RemoteSnapshot`` on success, otherwise ``RemoteUnreachable``
        carrying the error message.
    """
    try:
        commit = await run_sync(client.get_branch_tip, owner, repo, branch)
        tree = await run_sync(client.get_tree, owner, repo, commit, True)
    except Exception as exc:
        logger.error(
            "Failed to fetch remote tree for %s/%s@%s: %s",
            owner,
            repo,
            branch,
            exc,
        )
        return RemoteUnreachable(str(exc) or "Unknown error")

    if tree.get("truncated"):
        logger.warning(
            "Tree listing for %s/%s@%s was truncated; some remote files are not tracked",
            owner,
            repo,
            branch,
        )

    hashes = {
        item["path"]: item["sha"]
        for item in tree["tree"]
        if item["type"] == "blob"
    }
    logger.info(
        "Fetched %d remote blobs from %s/%s@%s",
        len(hashes),
        owner,
        repo,
        branch,
    )
    return RemoteSnapshot(branch=branch, commit=commit, hashes=hashes)
