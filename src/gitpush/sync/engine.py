"""Sync session: the long-lived state of one vault and its active root.

The ``SyncSession`` ties together config discovery, scanner, remote
fetcher, reconciler, resolver, and executors. A refresh pass:

1. Finds the ``.gitpush.json`` governing the active path. A different
   config than last time clears every derived result; no config resets
   the session and makes no remote calls.
2. Scans the local root.
3. Fetches the remote tree when asked to, when the config changed, or
   when neither a snapshot nor a fetch error is held.
4. Classifies every path, healing the sync state only while the
   snapshot is trusted (no fetch error outstanding).

Passes go through a ``RefreshCoordinator``; push and pull are explicit
calls that refuse to run while the session is blocked.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from gitpush.config import Config
from gitpush.config_loader import find_repo_config
from gitpush.config_schema import RepoConfig
from gitpush.core.async_utils import run_sync
from gitpush.core.client import GitHubClient
from gitpush.storage import LocalStorage
from gitpush.sync.coordinator import RefreshCoordinator
from gitpush.sync.executor import PullExecutor, PushExecutor
from gitpush.sync.models import (
    Classification,
    LocalEntry,
    PullItem,
    PushItem,
    RemoteSnapshot,
    RemoteUnreachable,
    ResolutionSide,
    SessionView,
    SyncReport,
)
from gitpush.sync.reconciler import classify, in_prefix
from gitpush.sync.remote import fetch_remote_snapshot
from gitpush.sync.resolver import apply_resolution
from gitpush.sync.scanner import LocalScanner, load_ignore_matcher
from gitpush.sync.state import SyncStateStore

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


class SyncBlockedError(Exception):
    """Push or pull was requested while the session cannot run it."""


@dataclass(frozen=True)
class RefreshRequest:
    fetch_remote: bool = False
    active_path: str | None = None


class SyncSession:
    """Hold per-root sync state and run refresh, push, and pull.

    Args:
        config: Runtime configuration.
        client: GitHub client.
        storage: Vault storage.
        state_store: Persistence for the settings blob.
        active_path: Vault-relative path whose enclosing config is used.
    """

    def __init__(
        self,
        config: Config,
        client: GitHubClient,
        storage: LocalStorage,
        state_store: SyncStateStore,
        active_path: str | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.storage = storage
        self.state_store = state_store
        self.scanner = LocalScanner(storage, excluded=self._excluded_dirs())
        self.blob = state_store.load()
        self.active_path = active_path

        self.repo_config: RepoConfig | None = None
        self.root_path: str | None = None
        self.local_entries: list[LocalEntry] = []
        self.snapshot: RemoteSnapshot | None = None
        self.remote_error: str | None = None
        self.classification = Classification()
        self.last_report: SyncReport | None = None
        # repo paths present on either side in the last pass over this root
        self.seen_paths: set[str] = set()

        self._batch_lock = asyncio.Lock()
        self.coordinator = RefreshCoordinator(self._run_pass)

    def _excluded_dirs(self) -> tuple[str, ...]:
        excluded = [".git"]
        state_path = self.config.state_path().resolve()
        if state_path.is_relative_to(self.storage.root):
            excluded.append(self.storage.relative(state_path))
        return tuple(excluded)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_refreshing(self) -> bool:
        return self.coordinator.is_running

    def resolve_branch(self, explicit: str | None = None) -> str:
        """Pick the branch: argument, repo config, last used, ``main``."""
        if explicit:
            return explicit
        if self.repo_config is not None and self.repo_config.branch:
            return self.repo_config.branch
        return self.blob.get("lastBranch") or DEFAULT_BRANCH

    def view(self) -> SessionView:
        """Return an immutable snapshot of the session for rendering."""
        return SessionView(
            repo_config=self.repo_config,
            root_path=self.root_path,
            branch=self.resolve_branch(),
            is_refreshing=self.is_refreshing,
            remote_error=self.remote_error,
            has_snapshot=self.snapshot is not None,
            push=self.classification.push,
            pull=self.classification.pull,
            conflicts=self.classification.conflicts,
        )

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(
        self, fetch_remote: bool = False, active_path: str | None = None
    ) -> bool:
        """Request a reconciliation pass.

        Returns ``False`` when a pass was already running and this
        request was queued behind it.

        Raises:
            ValueError: If *active_path* is absolute or outside the vault.
        """
        if active_path:
            self.storage.resolve(active_path)
        return await self.coordinator.request(
            RefreshRequest(fetch_remote=fetch_remote, active_path=active_path)
        )

    def _reset(self) -> None:
        self.repo_config = None
        self.root_path = None
        self.local_entries = []
        self.snapshot = None
        self.remote_error = None
        self.classification = Classification()
        self.seen_paths = set()

    async def _run_pass(self, req: RefreshRequest) -> None:
        async with self._batch_lock:
            await self._reconcile(req)

    async def _reconcile(self, req: RefreshRequest) -> None:
        active_path = (
            self.active_path if req.active_path is None else req.active_path
        )
        try:
            found = await run_sync(find_repo_config, self.storage, active_path)
        except ValueError as exc:
            logger.warning("Ignoring active path %r: %s", active_path, exc)
            if req.active_path is None:
                self.active_path = None
            self._reset()
            return
        self.active_path = active_path

        if found is None:
            if self.repo_config is not None:
                logger.info("No repository configuration for %s", self.active_path)
            self._reset()
            return

        root, repo_config = found
        changed = root != self.root_path or repo_config != self.repo_config
        if changed:
            self._reset()
            self.root_path = root
            self.repo_config = repo_config
            logger.info(
                "Sync root '%s' -> %s/%s",
                root,
                repo_config.repo,
                repo_config.content_prefix,
            )

        ignore = await run_sync(load_ignore_matcher, self.storage, root)
        self.local_entries = await self.scanner.scan(
            root, repo_config.content_prefix, ignore
        )

        if (
            req.fetch_remote
            or changed
            or (self.snapshot is None and self.remote_error is None)
        ):
            result = await self._fetch_remote(repo_config)
            if isinstance(result, RemoteUnreachable):
                self.remote_error = result.message
            else:
                self.snapshot = result
                self.remote_error = None

        if self.snapshot is None:
            self.classification = Classification()
            return

        self.classification = classify(
            self.local_entries,
            self.snapshot.hashes,
            self.state_store.synced(self.blob),
            prefix=repo_config.content_prefix,
            root=root,
            heal=self.remote_error is None,
            seen=self.seen_paths,
        )
        self.seen_paths = {e.repo_path for e in self.local_entries} | {
            path
            for path in self.snapshot.hashes
            if in_prefix(path, repo_config.content_prefix)
        }
        if self.classification.healed or self.classification.pruned:
            self.state_store.save(self.blob)

    async def _fetch_remote(
        self, repo_config: RepoConfig
    ) -> RemoteSnapshot | RemoteUnreachable:
        if not self.config.token:
            logger.warning("No GitHub token configured; remote not fetched")
            return RemoteUnreachable("No GitHub token configured")
        return await fetch_remote_snapshot(
            self.client,
            repo_config.owner,
            repo_config.name,
            self.resolve_branch(),
        )

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def resolve(
        self, repo_path: str, side: ResolutionSide | str
    ) -> PushItem | PullItem:
        """Resolve the conflict on *repo_path* toward *side*.

        The forced item is held until the next reconciliation pass.

        Raises:
            ValueError: If *side* is invalid.
            KeyError: If *repo_path* is not a current conflict.
        """
        self.classification = apply_resolution(
            self.classification, repo_path, side
        )
        for item in [*self.classification.push, *self.classification.pull]:
            if item.repo_path == repo_path and item.forced:
                return item
        raise KeyError(repo_path)  # pragma: no cover

    async def push(
        self, message: str | None = None, branch: str | None = None
    ) -> SyncReport:
        """Apply the current push set, then refresh against the remote.

        Raises:
            SyncBlockedError: If the session is not in a pushable state.
        """
        items = list(self.classification.push)
        self._check_ready("push", bool(items))
        executor = PushExecutor(
            self.client,
            self.storage,
            self.state_store,
            self.blob,
            self.snapshot,
            self.repo_config,
            self.root_path,
            self.config.image_extensions,
        )
        return await self._run_batch(
            executor,
            items,
            self.resolve_branch(branch),
            message or self.config.default_commit_message,
        )

    async def pull(self, branch: str | None = None) -> SyncReport:
        """Apply the current pull set, then refresh against the remote.

        Raises:
            SyncBlockedError: If the session is not in a pullable state.
        """
        items = list(self.classification.pull)
        self._check_ready("pull", bool(items))
        executor = PullExecutor(
            self.client,
            self.storage,
            self.state_store,
            self.blob,
            self.snapshot,
            self.repo_config,
            self.root_path,
            self.config.image_extensions,
        )
        return await self._run_batch(
            executor, items, self.resolve_branch(branch)
        )

    async def _run_batch(
        self,
        executor: PushExecutor | PullExecutor,
        items: list,
        branch: str,
        message: str | None = None,
    ) -> SyncReport:
        async with self._batch_lock:
            report = await executor.run(items, branch, message)
        self.last_report = report
        await self.refresh(fetch_remote=True)
        return report

    def _check_ready(self, operation: str, has_items: bool) -> None:
        if self.repo_config is None:
            raise SyncBlockedError("No repository configuration found")
        if self.is_refreshing or self._batch_lock.locked():
            raise SyncBlockedError("A refresh or sync is already in progress")
        if self.classification.conflicts:
            raise SyncBlockedError(
                f"Resolve {len(self.classification.conflicts)} conflict(s) "
                f"before {operation}"
            )
        if self.remote_error is not None:
            raise SyncBlockedError(f"Remote unavailable: {self.remote_error}")
        if self.snapshot is None:
            raise SyncBlockedError("Remote state unknown; refresh first")
        if not has_items:
            raise SyncBlockedError(f"Nothing to {operation}")
