"""Tests for gitpush.mcp.lifespan -- server startup/shutdown lifecycle.

Tests the server_lifespan() async context manager which:
- Loads config (CLI overrides > env > YAML > stored token)
- Creates the GitHub client and checks the token without failing startup
- Builds the sync session and runs a first remote refresh
- Starts and stops the change watcher
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from gitpush.mcp.lifespan import server_lifespan
from gitpush.sync.engine import SyncSession


@pytest.fixture(autouse=True)
def _quiet(monkeypatch, tmp_path):
    for name in ("GITPUSH_TOKEN", "GITHUB_TOKEN", "GITPUSH_VAULT", "GITPUSH_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    with (
        patch("gitpush.mcp.lifespan._stderr_print"),
        patch("gitpush.mcp.lifespan.load_dotenv"),
    ):
        yield


class TestServerLifespan:
    async def test_startup_builds_refreshed_session(
        self, vault, make_github, repo_config_file
    ):
        repo_config_file()
        client = make_github({"a.md": b"remote"})

        with patch("gitpush.mcp.lifespan.GitHubClient", return_value=client):
            async with server_lifespan(
                {"vault": str(vault), "token": "ghp_cli", "no_watch": True}
            ) as ctx:
                session = ctx["session"]
                assert isinstance(session, SyncSession)
                assert ctx["client"] is client
                assert session.config.token == "ghp_cli"
                assert session.repo_config.repo == "octo/notes"
                assert [i.repo_path for i in session.classification.pull] == ["a.md"]

    async def test_stored_token_used(self, vault, fake_github):
        state = vault / ".gitpush" / "settings.json"
        state.parent.mkdir()
        state.write_text(json.dumps({"authToken": "ghp_stored"}))

        with patch("gitpush.mcp.lifespan.GitHubClient", return_value=fake_github):
            async with server_lifespan({"vault": str(vault), "no_watch": True}) as ctx:
                assert ctx["session"].config.token == "ghp_stored"

    async def test_failed_token_check_is_not_fatal(self, vault, caplog):
        client = MagicMock()
        client.validate_connection.side_effect = RuntimeError("Bad credentials")

        with patch("gitpush.mcp.lifespan.GitHubClient", return_value=client):
            async with server_lifespan(
                {"vault": str(vault), "token": "bad", "no_watch": True}
            ) as ctx:
                assert ctx["session"].repo_config is None
        assert "GitHub token check failed" in caplog.text

    async def test_config_error_raises_runtime_error(self, tmp_path):
        with pytest.raises(RuntimeError, match="Vault directory not found"):
            async with server_lifespan({"vault": str(tmp_path / "missing")}):
                pass

    async def test_watcher_started_and_stopped(self, vault, fake_github):
        watcher = MagicMock()
        with (
            patch("gitpush.mcp.lifespan.GitHubClient", return_value=fake_github),
            patch("gitpush.mcp.lifespan.ChangeWatcher", return_value=watcher),
        ):
            async with server_lifespan({"vault": str(vault)}):
                watcher.start.assert_called_once()
                watcher.stop.assert_not_called()
        watcher.stop.assert_called_once()
