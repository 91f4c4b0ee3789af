"""Sync state persistence layer.

Manages the JSON settings blob kept in the state directory
(``.gitpush/settings.json`` by default)::

    {
      "authToken": "...",
      "lastBranch": "main",
      "lastSyncedState": {"notes/a.md": "<blob sha>", ...}
    }

``lastSyncedState`` maps each repo path to the hash last known to be
identical on both sides. A missing key means "never confirmed synced",
not "deleted".

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Dict-based state** -- the blob is a plain ``dict`` so executors can
  mutate it item by item and persist after each success.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

STATE_FILENAME = "settings.json"

SYNCED_KEY = "lastSyncedState"


def default_state() -> dict:
    return {
        "authToken": "",
        "lastBranch": "main",
        SYNCED_KEY: {},
    }


class SyncStateStore:
    """Load, save, and query the persisted settings blob.

    Args:
        state_dir: Directory where the blob is stored.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = Path(state_dir)

    @property
    def path(self) -> Path:
        return self._state_dir / STATE_FILENAME

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> dict:
        """Load the blob, filling in defaults for missing keys.

        A corrupt file is logged and replaced by defaults in memory; it is
        overwritten on the next save.
        """
        state = default_state()
        if not self.path.exists():
            return state
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read sync state %s: %s", self.path, exc)
            return state
        if isinstance(data, dict):
            state.update(data)
        if not isinstance(state.get(SYNCED_KEY), dict):
            state[SYNCED_KEY] = {}
        return state

    def save(self, state: dict) -> None:
        """Persist the blob atomically, creating the state dir if needed."""
        self._state_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ------------------------------------------------------------------
    # Entry helpers
    # ------------------------------------------------------------------

    @staticmethod
    def synced(state: dict) -> dict[str, str]:
        """Return the live ``lastSyncedState`` mapping of *state*."""
        return state.setdefault(SYNCED_KEY, {})

    def get_hash(self, state: dict, repo_path: str) -> str | None:
        return self.synced(state).get(repo_path)

    def record(self, state: dict, repo_path: str, sha: str) -> None:
        """Record that *repo_path* is identical on both sides at *sha*."""
        self.synced(state)[repo_path] = sha

    def forget(self, state: dict, repo_path: str) -> None:
        """Drop *repo_path* from the synced mapping. No-op if absent."""
        self.synced(state).pop(repo_path, None)

    def synced_paths(self, state: dict, prefix: str = "") -> list[str]:
        """Return recorded repo paths inside *prefix*, sorted."""
        prefix = prefix.strip("/")
        return sorted(
            p
            for p in self.synced(state)
            if not prefix or p == prefix or p.startswith(prefix + "/")
        )
