"""Shared pytest fixtures for gitpush tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gitpush.config import Config
from gitpush.core.client import GitHubAPIError
from gitpush.storage import LocalStorage
from gitpush.sync.hashing import git_blob_hash
from gitpush.sync.state import SyncStateStore


class FakeGitHubClient:
    """In-memory stand-in for ``GitHubClient``.

    Holds one file map per branch and enforces the same SHA preconditions
    as the contents API. ``fail_on`` maps ``(method, repo_path)`` to an
    exception raised instead of performing the call.
    """

    def __init__(self, files: dict[str, bytes] | None = None, branch: str = "main"):
        self.branches: dict[str, dict[str, bytes]] = {branch: dict(files or {})}
        self.commits = 0
        self.calls: list[tuple] = []
        self.fail_on: dict[tuple[str, str], Exception] = {}
        self.unreachable: Exception | None = None

    # -- helpers -------------------------------------------------------

    def hashes(self, branch: str = "main") -> dict[str, str]:
        return {p: git_blob_hash(d) for p, d in self.branches[branch].items()}

    def _maybe_fail(self, method: str, repo_path: str) -> None:
        exc = self.fail_on.get((method, repo_path))
        if exc is not None:
            raise exc

    def _files(self, branch: str) -> dict[str, bytes]:
        if branch not in self.branches:
            raise GitHubAPIError(404, "Not Found")
        return self.branches[branch]

    # -- client API ----------------------------------------------------

    def validate_connection(self) -> str:
        return "octocat"

    def get_branch_tip(self, owner, repo, branch):
        self.calls.append(("get_branch_tip", owner, repo, branch))
        if self.unreachable is not None:
            raise self.unreachable
        self._files(branch)
        return f"commit-{branch}-{self.commits}"

    def get_tree(self, owner, repo, commit, recursive=True):
        self.calls.append(("get_tree", commit))
        branch = commit.split("-")[1]
        tree = [
            {"path": p, "type": "blob", "sha": git_blob_hash(d)}
            for p, d in sorted(self._files(branch).items())
        ]
        dirs = sorted({p.rsplit("/", 1)[0] for p in self._files(branch) if "/" in p})
        tree.extend({"path": d, "type": "tree", "sha": "t" * 40} for d in dirs)
        return {"tree": tree, "truncated": False}

    def get_file_content(self, owner, repo, repo_path, ref):
        self.calls.append(("get_file_content", repo_path, ref))
        self._maybe_fail("get", repo_path)
        files = self._files(ref)
        if repo_path not in files:
            raise GitHubAPIError(404, "Not Found")
        return files[repo_path]

    def create_or_update_file(
        self, owner, repo, repo_path, message, content, branch, expected_hash=None
    ):
        self.calls.append(("put", repo_path, message, branch, expected_hash))
        self._maybe_fail("put", repo_path)
        files = self._files(branch)
        if repo_path in files:
            current = git_blob_hash(files[repo_path])
            if expected_hash is None:
                raise GitHubAPIError(422, 'Invalid request. "sha" wasn\'t supplied.')
            if expected_hash != current:
                raise GitHubAPIError(409, f"{repo_path} does not match {expected_hash}")
        files[repo_path] = content
        self.commits += 1
        return git_blob_hash(content)

    def delete_file(self, owner, repo, repo_path, message, expected_hash, branch):
        self.calls.append(("delete", repo_path, message, branch, expected_hash))
        self._maybe_fail("delete", repo_path)
        files = self._files(branch)
        if repo_path not in files:
            raise GitHubAPIError(404, "Not Found")
        if git_blob_hash(files[repo_path]) != expected_hash:
            raise GitHubAPIError(409, f"{repo_path} does not match {expected_hash}")
        del files[repo_path]
        self.commits += 1


@pytest.fixture
def make_github():
    """Factory for in-memory GitHub repositories seeded with files."""
    return FakeGitHubClient


@pytest.fixture
def fake_github(make_github):
    """Empty in-memory GitHub repository on branch ``main``."""
    return make_github()


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def storage(vault: Path) -> LocalStorage:
    return LocalStorage(vault)


@pytest.fixture
def state_store(vault: Path) -> SyncStateStore:
    return SyncStateStore(vault / ".gitpush")


@pytest.fixture
def config(vault: Path) -> Config:
    return Config(token="ghp_test", vault_root=str(vault))


@pytest.fixture
def write_file(vault: Path):
    """Factory writing a file below the vault, creating parent folders."""

    def _write(rel_path: str, content: str | bytes) -> Path:
        path = vault / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode() if isinstance(content, str) else content
        path.write_bytes(data)
        return path

    return _write


@pytest.fixture
def repo_config_file(write_file):
    """Factory writing a ``.gitpush.json`` into a vault folder."""

    def _write(folder: str = "", **fields) -> Path:
        fields.setdefault("repo", "octo/notes")
        rel = f"{folder}/.gitpush.json" if folder else ".gitpush.json"
        return write_file(rel, json.dumps(fields))

    return _write
