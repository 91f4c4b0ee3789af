"""Local scanner: hash every file under a sync root.

Each file below the root becomes a ``LocalEntry`` whose ``repo_path`` is
the root-relative path placed under the repository content prefix.

Excluded from the scan:

1. Any file named ``.gitpush.json`` (the per-root config).
2. Paths matched by the root's ``.gitignore`` (``pathspec`` gitwildmatch).

A file that cannot be read is logged and skipped; the scan continues.
"""

from __future__ import annotations

import logging
from posixpath import basename

from pathspec import PathSpec

from gitpush.config_schema import REPO_CONFIG_FILENAME
from gitpush.core.async_utils import run_sync
from gitpush.storage import LocalStorage
from gitpush.sync.hashing import git_blob_hash
from gitpush.sync.models import LocalEntry

logger = logging.getLogger(__name__)


def join_repo_path(prefix: str, relative: str) -> str:
    """Join *prefix* and *relative* into a repo path without stray slashes."""
    parts = [p for p in (prefix.strip("/"), relative.strip("/")) if p]
    return "/".join(parts)


class IgnoreMatcher:
    """Match root-relative paths against gitignore-style patterns."""

    def __init__(self, patterns: list[str]) -> None:
        self.spec = PathSpec.from_lines("gitwildmatch", patterns)

    def is_ignored(self, rel_path: str) -> bool:
        return self.spec.match_file(rel_path)


def load_ignore_matcher(
    storage: LocalStorage, root: str
) -> IgnoreMatcher | None:
    """Build an ``IgnoreMatcher`` from ``<root>/.gitignore``.

    Returns ``None`` when the file is missing or unreadable.
    """
    path = f"{root}/.gitignore" if root else ".gitignore"
    if not storage.exists(path):
        return None
    try:
        return IgnoreMatcher(storage.read_text(path).splitlines())
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None


class LocalScanner:
    """Produce ``LocalEntry`` items for one sync root.

    Args:
        storage: Vault storage.
        excluded: Vault-relative folders never scanned (the state
            directory, ``.git``).
    """

    def __init__(
        self, storage: LocalStorage, excluded: tuple[str, ...] = (".git",)
    ) -> None:
        self.storage = storage
        self.excluded = tuple(e.strip("/") for e in excluded if e.strip("/"))

    def is_excluded(self, local_path: str) -> bool:
        return any(
            local_path == ex or local_path.startswith(ex + "/")
            for ex in self.excluded
        )

    async def scan(
        self,
        root: str,
        content_prefix: str = "",
        ignore: IgnoreMatcher | None = None,
    ) -> list[LocalEntry]:
        """Hash every eligible file below *root*.

        Args:
            root: Vault-relative folder holding the repo config.
            content_prefix: Repository folder the root maps to.
            ignore: Optional matcher for root-relative paths.

        Returns:
            Entries in traversal order.
        """
        files = await run_sync(lambda: list(self.storage.list_files(root)))
        entries: list[LocalEntry] = []
        for local_path in files:
            relative = local_path[len(root) :].lstrip("/") if root else local_path
            if self.is_excluded(local_path):
                continue
            if basename(relative) == REPO_CONFIG_FILENAME:
                continue
            if ignore is not None and ignore.is_ignored(relative):
                continue

            try:
                data = await run_sync(self.storage.read_bytes, local_path)
            except OSError as exc:
                logger.warning("Error reading %s: %s", local_path, exc)
                continue

            entries.append(
                LocalEntry(
                    repo_path=join_repo_path(content_prefix, relative),
                    local_path=local_path,
                    hash=git_blob_hash(data),
                )
            )

        logger.debug("Scanned %d files under '%s'", len(entries), root)
        return entries
