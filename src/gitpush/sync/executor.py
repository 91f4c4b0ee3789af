"""Push and pull executors.

Both executors apply a batch of classified items strictly in order:

1. Each item is applied through the GitHub client or local storage.
2. On success the sync state (and the in-memory remote snapshot) is
   updated and the state blob is saved immediately.
3. The first exception stops the batch. Items already applied keep their
   sync-state updates; the report names the failing path. A failed image
   upload is reported under the image path, after the document that
   referenced it.

After the batch, complete or not, the branch used is stored as
``lastBranch``.
"""

from __future__ import annotations

import logging
import posixpath
from datetime import datetime, timezone

from gitpush.config_schema import DEFAULT_IMAGE_EXTENSIONS, RepoConfig
from gitpush.core.async_utils import run_sync
from gitpush.core.client import GitHubClient
from gitpush.storage import LocalStorage
from gitpush.sync.attachments import (
    extract_attachment_refs,
    is_image,
    resolve_attachment,
)
from gitpush.sync.hashing import git_blob_hash
from gitpush.sync.models import (
    Outcome,
    PullItem,
    PushItem,
    RemoteSnapshot,
    SyncReport,
    SyncResult,
)
from gitpush.sync.reconciler import classify_path
from gitpush.sync.scanner import join_repo_path
from gitpush.sync.state import SyncStateStore

logger = logging.getLogger(__name__)


class AttachmentError(Exception):
    """An image referenced by a pushed document could not be uploaded.

    ``repo_path`` is the image's target path in the repository.
    """

    def __init__(self, repo_path: str, cause: Exception):
        super().__init__(str(cause) or type(cause).__name__)
        self.repo_path = repo_path


class _BatchExecutor:
    """Shared batch loop for push and pull.

    Args:
        client: GitHub client.
        storage: Vault storage.
        state_store: Persistence for *blob*.
        blob: Loaded settings blob; mutated in place.
        snapshot: Remote snapshot the batch was classified against;
            mutated in place.
        repo_config: Config of the sync root.
        root: Vault-relative folder of the sync root.
    """

    operation = ""

    def __init__(
        self,
        client: GitHubClient,
        storage: LocalStorage,
        state_store: SyncStateStore,
        blob: dict,
        snapshot: RemoteSnapshot,
        repo_config: RepoConfig,
        root: str,
        image_extensions: tuple[str, ...] = DEFAULT_IMAGE_EXTENSIONS,
    ) -> None:
        self.client = client
        self.storage = storage
        self.state_store = state_store
        self.blob = blob
        self.snapshot = snapshot
        self.repo_config = repo_config
        self.root = root
        self.image_extensions = image_extensions

    async def run(
        self,
        items: list[PushItem] | list[PullItem],
        branch: str,
        message: str | None = None,
    ) -> SyncReport:
        """Apply *items* in order and return a report."""
        started_at = datetime.now(timezone.utc).isoformat()
        results: list[SyncResult] = []
        error: str | None = None
        failed_path: str | None = None

        logger.info(
            "Starting %s of %d items on %s@%s",
            self.operation,
            len(items),
            self.repo_config.repo,
            branch,
        )

        for item in items:
            try:
                await self._apply(item, branch, message, results)
            except Exception as exc:
                error = str(exc) or type(exc).__name__
                if isinstance(exc, AttachmentError):
                    failed_path, action = exc.repo_path, "attachment"
                else:
                    failed_path, action = item.repo_path, item.status.value
                logger.error(
                    "%s failed at %s: %s",
                    self.operation.capitalize(),
                    failed_path,
                    error,
                )
                results.append(
                    SyncResult(
                        repo_path=failed_path,
                        action=action,
                        success=False,
                        error=error,
                    )
                )
                break

        self.blob["lastBranch"] = branch
        self._save()

        return SyncReport(
            operation=self.operation,
            branch=branch,
            results=results,
            error=error,
            failed_path=failed_path,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    async def _apply(
        self,
        item,
        branch: str,
        message: str | None,
        results: list[SyncResult],
    ) -> None:
        """Apply one item, appending a result for everything it changed."""
        raise NotImplementedError

    def _save(self) -> None:
        self.state_store.save(self.blob)


class PushExecutor(_BatchExecutor):
    """Upload, update, or delete remote files to match the vault."""

    operation = "push"

    async def run(
        self,
        items: list[PushItem],
        branch: str,
        message: str | None = None,
    ) -> SyncReport:
        self._candidates: list[str] | None = None
        return await super().run(items, branch, message)

    async def _apply(
        self,
        item: PushItem,
        branch: str,
        message: str | None,
        results: list[SyncResult],
    ) -> None:
        owner, name = self.repo_config.owner, self.repo_config.name

        if item.status.is_deletion:
            await run_sync(
                self.client.delete_file,
                owner,
                name,
                item.repo_path,
                f"Delete {item.repo_path}",
                item.remote_hash or self.snapshot.get(item.repo_path),
                branch,
            )
            self.state_store.forget(self.blob, item.repo_path)
            self.snapshot.remove(item.repo_path)
            self._save()
            logger.info("Deleted remote %s", item.repo_path)
            results.append(
                SyncResult(
                    repo_path=item.repo_path,
                    action=item.status.value,
                    success=True,
                )
            )
            return

        content = await run_sync(self.storage.read_bytes, item.local_path)
        sha = await run_sync(
            self.client.create_or_update_file,
            owner,
            name,
            item.repo_path,
            message or f"Update {item.repo_path}",
            content,
            branch,
            self.snapshot.get(item.repo_path),
        )
        self.snapshot.set(item.repo_path, sha)
        self.state_store.record(self.blob, item.repo_path, sha)
        self._save()
        logger.info("Pushed %s (%s)", item.repo_path, item.status.value)

        results.append(
            SyncResult(
                repo_path=item.repo_path,
                action=item.status.value,
                success=True,
            )
        )
        if item.local_path.lower().endswith(".md"):
            await self._push_attachments(item, branch, results)

    async def _push_attachments(
        self, item: PushItem, branch: str, results: list[SyncResult]
    ) -> None:
        """Upload images referenced by a pushed document.

        Each image is classified on its own against the snapshot and the
        sync state: uploaded when it needs a push, healed when already
        identical, skipped with a warning otherwise.

        Raises:
            AttachmentError: If the document or an image cannot be read,
                or an upload fails. The document itself stays recorded.
        """
        try:
            text = await run_sync(self.storage.read_text, item.local_path)
            refs = extract_attachment_refs(text)
            if refs and self._candidates is None:
                self._candidates = await run_sync(
                    lambda: list(self.storage.list_files())
                )
        except Exception as exc:
            raise AttachmentError(item.repo_path, exc) from exc

        for ref in refs:
            local = resolve_attachment(
                ref, item.local_path, self.storage, self._candidates
            )
            if local is None or not is_image(local, self.image_extensions):
                continue

            target = join_repo_path(
                self.repo_config.attachment_prefix, posixpath.basename(local)
            )
            try:
                await self._push_attachment(item, local, target, branch, results)
            except Exception as exc:
                raise AttachmentError(target, exc) from exc

    async def _push_attachment(
        self,
        item: PushItem,
        local: str,
        target: str,
        branch: str,
        results: list[SyncResult],
    ) -> None:
        data = await run_sync(self.storage.read_bytes, local)
        local_hash = git_blob_hash(data)
        remote_hash = self.snapshot.get(target)
        synced_hash = self.state_store.get_hash(self.blob, target)

        outcome, _ = classify_path(local_hash, remote_hash, synced_hash)

        if outcome is Outcome.UNCHANGED:
            if synced_hash != local_hash:
                self.state_store.record(self.blob, target, local_hash)
                self._save()
            return

        if outcome is not Outcome.PUSH:
            logger.warning(
                "Skipping attachment %s referenced by %s: remote copy is %s",
                target,
                item.repo_path,
                "conflicting" if outcome is Outcome.CONFLICT else "newer",
            )
            results.append(
                SyncResult(
                    repo_path=target,
                    action="attachment",
                    success=False,
                    error=f"attachment needs {outcome.value}; not uploaded",
                )
            )
            return

        sha = await run_sync(
            self.client.create_or_update_file,
            self.repo_config.owner,
            self.repo_config.name,
            target,
            f"Upload image {posixpath.basename(local)}",
            data,
            branch,
            remote_hash,
        )
        self.snapshot.set(target, sha)
        self.state_store.record(self.blob, target, sha)
        self._save()
        logger.info("Uploaded attachment %s", target)
        results.append(
            SyncResult(repo_path=target, action="attachment", success=True)
        )


class PullExecutor(_BatchExecutor):
    """Write, overwrite, or delete vault files to match the remote."""

    operation = "pull"

    async def _apply(
        self,
        item: PullItem,
        branch: str,
        message: str | None,
        results: list[SyncResult],
    ) -> None:
        if item.status.is_deletion:
            if item.local_path and await run_sync(
                self.storage.exists, item.local_path
            ):
                await run_sync(self.storage.delete, item.local_path)
            self.state_store.forget(self.blob, item.repo_path)
            self.snapshot.remove(item.repo_path)
            self._save()
            logger.info("Removed local %s", item.local_path)
            results.append(
                SyncResult(
                    repo_path=item.repo_path,
                    action=item.status.value,
                    success=True,
                )
            )
            return

        content = await run_sync(
            self.client.get_file_content,
            self.repo_config.owner,
            self.repo_config.name,
            item.repo_path,
            branch,
        )
        folder = posixpath.dirname(item.local_path)
        if folder and not await run_sync(self.storage.exists, folder):
            await run_sync(self.storage.create_folder, folder)
        await run_sync(self.storage.write_bytes, item.local_path, content)

        sha = git_blob_hash(content)
        self.snapshot.set(item.repo_path, sha)
        self.state_store.record(self.blob, item.repo_path, sha)
        self._save()
        logger.info("Pulled %s (%s)", item.repo_path, item.status.value)
        results.append(
            SyncResult(
                repo_path=item.repo_path,
                action=item.status.value,
                success=True,
            )
        )
