"""Conflict resolution: turn a conflict into a forced push or pull.

Choosing ``local`` yields a forced push (a forced delete-push when the
local file is gone); choosing ``remote`` yields a forced pull (a forced
local delete when the remote file is gone). Resolutions live only in the
session's current ``Classification`` and are discarded by the next
reconciliation pass.
"""

from __future__ import annotations

import logging

from gitpush.sync.models import (
    Classification,
    ConflictItem,
    PullItem,
    PullStatus,
    PushItem,
    PushStatus,
    ResolutionSide,
)

logger = logging.getLogger(__name__)


def resolve_conflict(
    conflict: ConflictItem, side: ResolutionSide | str
) -> PushItem | PullItem:
    """Return the forced work item for *conflict* resolved toward *side*.

    Raises:
        ValueError: If *side* is not ``"local"`` or ``"remote"``.
    """
    side = ResolutionSide(side)

    if side is ResolutionSide.LOCAL:
        status = (
            PushStatus.MODIFIED_FORCE
            if conflict.local_hash is not None
            else PushStatus.DELETED_FORCE
        )
        return PushItem(
            repo_path=conflict.repo_path,
            local_path=conflict.local_path,
            hash=conflict.local_hash,
            remote_hash=conflict.remote_hash,
            status=status,
            forced=True,
        )

    status = (
        PullStatus.MODIFIED_REMOTE_FORCE
        if conflict.remote_hash is not None
        else PullStatus.DELETED_REMOTELY_FORCE
    )
    return PullItem(
        repo_path=conflict.repo_path,
        local_path=conflict.local_path,
        hash=conflict.remote_hash,
        status=status,
        forced=True,
    )


def apply_resolution(
    classification: Classification,
    repo_path: str,
    side: ResolutionSide | str,
) -> Classification:
    """Return a copy of *classification* with one conflict resolved.

    Raises:
        ValueError: If *side* is invalid.
        KeyError: If *repo_path* is not a current conflict.
    """
    side = ResolutionSide(side)
    conflict = next(
        (c for c in classification.conflicts if c.repo_path == repo_path),
        None,
    )
    if conflict is None:
        raise KeyError(repo_path)

    item = resolve_conflict(conflict, side)
    remaining = [
        c for c in classification.conflicts if c.repo_path != repo_path
    ]
    logger.info("Resolved conflict on %s: keep %s", repo_path, side.value)

    if isinstance(item, PushItem):
        return classification.model_copy(
            update={
                "conflicts": remaining,
                "push": [*classification.push, item],
            }
        )
    return classification.model_copy(
        update={
            "conflicts": remaining,
            "pull": [*classification.pull, item],
        }
    )
