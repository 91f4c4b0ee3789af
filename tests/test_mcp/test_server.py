"""Tests for the MCP server module: CLI parsing, accessors, dispatch."""

from unittest.mock import MagicMock

import mcp.types as types
import pytest

from gitpush.mcp import server
from gitpush.mcp.tools import ALL_SPECS, ToolRegistry


@pytest.fixture
def registered():
    server.set_registry(ToolRegistry(ALL_SPECS, read_only=True))
    server.set_session(MagicMock())
    yield
    server.set_registry(None)
    server.set_session(None)


class TestBuildParser:
    def test_defaults(self):
        args = server.build_parser().parse_args([])
        assert args.active_path == ""
        assert not args.read_only
        assert not args.no_watch

    def test_options(self):
        args = server.build_parser().parse_args(
            ["--vault", "/v", "--active-path", "notes/a.md", "--read-only", "--no-watch"]
        )
        assert args.vault == "/v"
        assert args.active_path == "notes/a.md"
        assert args.read_only and args.no_watch


class TestAccessors:
    def test_uninitialized(self):
        with pytest.raises(RuntimeError, match="SyncSession not initialized"):
            server.get_session()
        with pytest.raises(RuntimeError, match="ToolRegistry not initialized"):
            server.get_registry()


class TestHandlers:
    async def test_list_tools_respects_read_only(self, registered):
        tools = await server.handle_list_tools()
        assert [t.name for t in tools] == ["gitpush_status", "gitpush_refresh"]

    async def test_filtered_tool_is_unknown(self, registered):
        result = await server.handle_call_tool("gitpush_push", {})
        content = result.content[0]
        assert isinstance(content, types.TextContent)
        assert result.isError
        assert content.text.startswith("Error (unknown_tool): Unknown tool: gitpush_push")


class TestLoggingSettings:
    def test_none_without_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GITPUSH_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert server._logging_settings() is None

    def test_reads_logging_section(self, tmp_path, monkeypatch):
        cfg = tmp_path / "config.yml"
        cfg.write_text("logging:\n  level: DEBUG\n  file: /tmp/gp.log\n")
        monkeypatch.setenv("GITPUSH_CONFIG", str(cfg))
        settings = server._logging_settings()
        assert settings.level == "DEBUG"
        assert settings.file == "/tmp/gp.log"

    def test_broken_config_ignored(self, tmp_path, monkeypatch, capsys):
        cfg = tmp_path / "config.yml"
        cfg.write_text("logging: [unclosed\n")
        monkeypatch.setenv("GITPUSH_CONFIG", str(cfg))
        assert server._logging_settings() is None
        assert "ignoring logging config" in capsys.readouterr().err
