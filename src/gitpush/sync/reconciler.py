"""Three-way reconciliation of local, remote, and last-synced hashes.

Each repo path is classified from three hashes:

- ``L``: hash of the local file, or ``None`` when absent.
- ``R``: hash of the remote blob, or ``None`` when absent.
- ``S``: hash recorded in the sync state, or ``None`` when never synced.

The side that still matches ``S`` is the side that has not changed since
the last agreement, so the other side's change is propagated. When
neither side matches ``S`` both diverged and the path is a conflict.

``classify()`` is a total function over the union of local paths and
remote paths inside the content prefix: every path lands in exactly one
bucket.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, MutableMapping

from gitpush.sync.models import (
    Classification,
    ConflictItem,
    LocalEntry,
    Outcome,
    PullItem,
    PullStatus,
    PushItem,
    PushStatus,
)
from gitpush.sync.scanner import join_repo_path

logger = logging.getLogger(__name__)


def in_prefix(repo_path: str, prefix: str) -> bool:
    """True when *repo_path* lies inside the folder *prefix*.

    Matching is on directory boundaries, so prefix ``docs`` does not
    claim ``docs-old/a.md``. An empty prefix matches everything.
    """
    prefix = prefix.strip("/")
    if not prefix:
        return True
    return repo_path == prefix or repo_path.startswith(prefix + "/")


def local_path_for(repo_path: str, prefix: str, root: str) -> str:
    """Map a repo path back to its vault-relative location under *root*."""
    prefix = prefix.strip("/")
    relative = repo_path
    if prefix and in_prefix(repo_path, prefix):
        relative = repo_path[len(prefix) :].lstrip("/")
    return join_repo_path(root, relative)


def classify_path(
    local_hash: str | None,
    remote_hash: str | None,
    synced_hash: str | None,
) -> tuple[Outcome, PushStatus | PullStatus | None]:
    """Classify one path from its local, remote, and synced hashes.

    Returns:
        ``(outcome, status)`` where *status* is a ``PushStatus`` for push
        outcomes, a ``PullStatus`` for pull outcomes, else ``None``.
    """
    if local_hash == remote_hash:
        return Outcome.UNCHANGED, None

    if local_hash is not None and remote_hash is None:
        if synced_hash is None:
            return Outcome.PUSH, PushStatus.NEW
        return Outcome.PULL, PullStatus.DELETED_REMOTELY

    if local_hash is None and remote_hash is not None:
        if synced_hash is None:
            return Outcome.PULL, PullStatus.NEW_REMOTE
        if synced_hash == remote_hash:
            return Outcome.PUSH, PushStatus.DELETED
        return Outcome.CONFLICT, None

    # Both present and different
    if local_hash == synced_hash:
        return Outcome.PULL, PullStatus.MODIFIED_REMOTE
    if remote_hash == synced_hash:
        return Outcome.PUSH, PushStatus.MODIFIED
    return Outcome.CONFLICT, None


def classify(
    local_entries: Iterable[LocalEntry],
    remote_hashes: dict[str, str],
    synced: MutableMapping[str, str],
    prefix: str = "",
    root: str = "",
    heal: bool = True,
    seen: Collection[str] = (),
) -> Classification:
    """Classify every path of one sync root.

    Args:
        local_entries: Result of the local scan.
        remote_hashes: Remote snapshot ``repo_path -> hash``; paths outside
            *prefix* are ignored.
        synced: The ``lastSyncedState`` mapping. Mutated in place when
            *heal* is true.
        prefix: Repository folder the root maps to.
        root: Vault-relative folder of the root, used to locate files that
            exist only remotely.
        heal: Record already-identical paths and prune paths absent on
            both sides. Only safe against a fresh snapshot.
        seen: Paths present on either side in the previous pass over the
            same root. Only these are pruned; the sync state is shared by
            every root in the vault, so other keys are left alone.

    Returns:
        A ``Classification`` with each list sorted by repo path.
    """
    local_map = {entry.repo_path: entry for entry in local_entries}
    remote_map = {
        path: sha
        for path, sha in remote_hashes.items()
        if in_prefix(path, prefix)
    }

    push: list[PushItem] = []
    pull: list[PullItem] = []
    conflicts: list[ConflictItem] = []
    unchanged: list[str] = []
    healed: list[str] = []

    for path in sorted(set(local_map) | set(remote_map)):
        local = local_map.get(path)
        local_hash = local.hash if local else None
        remote_hash = remote_map.get(path)
        synced_hash = synced.get(path)
        local_path = (
            local.local_path if local else local_path_for(path, prefix, root)
        )

        outcome, status = classify_path(local_hash, remote_hash, synced_hash)

        if outcome is Outcome.UNCHANGED:
            unchanged.append(path)
            if synced_hash != local_hash:
                healed.append(path)
                if heal:
                    synced[path] = local_hash
        elif outcome is Outcome.PUSH:
            push.append(
                PushItem(
                    repo_path=path,
                    local_path=local_path,
                    hash=local_hash,
                    remote_hash=remote_hash,
                    status=status,
                )
            )
        elif outcome is Outcome.PULL:
            pull.append(
                PullItem(
                    repo_path=path,
                    local_path=local_path,
                    hash=remote_hash,
                    status=status,
                )
            )
        else:
            conflicts.append(
                ConflictItem(
                    repo_path=path,
                    local_path=local_path,
                    local_hash=local_hash,
                    remote_hash=remote_hash,
                )
            )

    pruned = sorted(
        path
        for path in synced
        if path in seen
        and in_prefix(path, prefix)
        and path not in local_map
        and path not in remote_map
    )
    if heal:
        for path in pruned:
            del synced[path]
    else:
        healed = []
        pruned = []

    if healed or pruned:
        logger.info(
            "Sync state healed %d and pruned %d paths", len(healed), len(pruned)
        )
    logger.debug(
        "Classified: %d push, %d pull, %d conflicts, %d unchanged",
        len(push),
        len(pull),
        len(conflicts),
        len(unchanged),
    )

    return Classification(
        push=push,
        pull=pull,
        conflicts=conflicts,
        unchanged=unchanged,
        healed=healed,
        pruned=pruned,
    )
