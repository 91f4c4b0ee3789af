"""Data contracts shared across the sync modules.

- ``LocalEntry``: one scanned local file.
- ``RemoteSnapshot`` / ``RemoteUnreachable``: result of a tree fetch.
- ``PushItem``, ``PullItem``, ``ConflictItem``: classified work items.
- ``Classification``: the outcome of one reconciliation pass.
- ``SyncResult`` / ``SyncReport``: outcome of a push or pull batch.
- ``SessionView``: read-only snapshot of a session for rendering.

Pydantic models are frozen; ``RemoteSnapshot`` is a mutable dataclass
because executors update it in place as items succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel

from gitpush.config_schema import RepoConfig


class Outcome(str, Enum):
    """Reconciliation bucket for a single path."""

    UNCHANGED = "unchanged"
    PUSH = "push"
    PULL = "pull"
    CONFLICT = "conflict"


class PushStatus(str, Enum):
    NEW = "new"
    MODIFIED = "modified"
    DELETED = "deleted"
    MODIFIED_FORCE = "modified (force)"
    DELETED_FORCE = "deleted (force)"

    @property
    def is_deletion(self) -> bool:
        return self in (PushStatus.DELETED, PushStatus.DELETED_FORCE)


class PullStatus(str, Enum):
    NEW_REMOTE = "new-remote"
    MODIFIED_REMOTE = "modified-remote"
    DELETED_REMOTELY = "deleted-remotely"
    MODIFIED_REMOTE_FORCE = "modified-remote (force)"
    DELETED_REMOTELY_FORCE = "deleted-remotely (force)"

    @property
    def is_deletion(self) -> bool:
        return self in (
            PullStatus.DELETED_REMOTELY,
            PullStatus.DELETED_REMOTELY_FORCE,
        )


class ResolutionSide(str, Enum):
    """Which side wins when a conflict is resolved by the user."""

    LOCAL = "local"
    REMOTE = "remote"


# ---------------------------------------------------------------------------
# Scan and fetch results
# ---------------------------------------------------------------------------


class LocalEntry(BaseModel):
    """A file found by the local scanner.

    Attributes:
        repo_path: Path of the file inside the remote repository.
        local_path: Path relative to the vault root (the storage handle).
        hash: Git blob SHA of the file bytes at scan time.
    """

    repo_path: str
    local_path: str
    hash: str

    model_config = {"frozen": True}


@dataclass
class RemoteSnapshot:
    """Blob hashes reachable from one branch tip at fetch time."""

    branch: str
    commit: str
    hashes: dict[str, str] = field(default_factory=dict)

    def get(self, repo_path: str) -> str | None:
        return self.hashes.get(repo_path)

    def set(self, repo_path: str, sha: str) -> None:
        self.hashes[repo_path] = sha

    def remove(self, repo_path: str) -> None:
        self.hashes.pop(repo_path, None)


@dataclass(frozen=True)
class RemoteUnreachable:
    """The remote tree could not be fetched; *message* is shown verbatim."""

    message: str


# ---------------------------------------------------------------------------
# Classified items
# ---------------------------------------------------------------------------


class PushItem(BaseModel):
    """A path to upload to, or delete from, the remote repository.

    Attributes:
        repo_path: Path inside the repository.
        local_path: Vault-relative path (``None`` for deletions of files
            that no longer exist locally).
        hash: Local content hash (``None`` for deletions).
        remote_hash: Last observed remote hash, used as the delete
            precondition.
        status: Kind of change.
        forced: ``True`` when produced by conflict resolution.
    """

    repo_path: str
    local_path: str | None = None
    hash: str | None = None
    remote_hash: str | None = None
    status: PushStatus
    forced: bool = False

    model_config = {"frozen": True}


class PullItem(BaseModel):
    """A path to download from, or delete locally to match, the remote."""

    repo_path: str
    local_path: str | None = None
    hash: str | None = None
    status: PullStatus
    forced: bool = False

    model_config = {"frozen": True}


class ConflictItem(BaseModel):
    """A path changed independently on both sides since the last sync."""

    repo_path: str
    local_path: str | None = None
    local_hash: str | None = None
    remote_hash: str | None = None

    model_config = {"frozen": True}


class Classification(BaseModel):
    """Result of one reconciliation pass.

    ``healed`` lists paths whose sync state was recorded because both
    sides already matched; ``pruned`` lists sync-state paths dropped
    because the file is gone on both sides.
    """

    push: list[PushItem] = []
    pull: list[PullItem] = []
    conflicts: list[ConflictItem] = []
    unchanged: list[str] = []
    healed: list[str] = []
    pruned: list[str] = []

    model_config = {"frozen": True}

    @property
    def is_clean(self) -> bool:
        return not (self.push or self.pull or self.conflicts)


# ---------------------------------------------------------------------------
# Execution results
# ---------------------------------------------------------------------------


class SyncResult(BaseModel):
    """Outcome of applying one push or pull item.

    Attributes:
        repo_path: Path inside the repository.
        action: Status string of the applied item, or ``"attachment"``.
        success: Whether the item was applied.
        error: Error message when the item failed or was skipped.
    """

    repo_path: str
    action: str
    success: bool
    error: str | None = None

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one push or pull batch.

    Attributes:
        operation: ``"push"`` or ``"pull"``.
        branch: Branch the batch targeted.
        results: Per-item results, in execution order.
        error: Message of the failure that stopped the batch.
        failed_path: Repo path of the item that failed.
        started_at: ISO 8601 timestamp when the batch started.
        completed_at: ISO 8601 timestamp when the batch stopped.
    """

    operation: str
    branch: str
    results: list[SyncResult] = []
    error: str | None = None
    failed_path: str | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def applied(self) -> list[SyncResult]:
        return [r for r in self.results if r.success]

    @property
    def skipped(self) -> list[SyncResult]:
        return [r for r in self.results if not r.success]


class SessionView(BaseModel):
    """Immutable snapshot of a sync session, consumed by the renderer."""

    repo_config: RepoConfig | None = None
    root_path: str | None = None
    branch: str = "main"
    is_refreshing: bool = False
    remote_error: str | None = None
    has_snapshot: bool = False
    push: list[PushItem] = []
    pull: list[PullItem] = []
    conflicts: list[ConflictItem] = []

    model_config = {"frozen": True}

    @property
    def can_push(self) -> bool:
        return bool(self.push) and not self.conflicts and self.remote_ok

    @property
    def can_pull(self) -> bool:
        return bool(self.pull) and not self.conflicts and self.remote_ok

    @property
    def remote_ok(self) -> bool:
        return self.has_snapshot and self.remote_error is None
