"""ToolSpec and ToolRegistry for read-only tool filtering.

This module provides a centralized registry for MCP tools that can hide
every tool that writes to GitHub or the vault, so operators can expose
status and refresh only.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, a read-only
  flag, and an async handler with standardized signature
  (session, args) -> CallToolResult.
- ToolRegistry: Filters specs at construction time, then provides
  list_tools() and call_tool() dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...core.client import GitHubAPIError
from ...sync.engine import SyncBlockedError, SyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable specification for a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (session, args) -> CallToolResult.
        read_only: True when the tool never writes to GitHub or the vault.
    """

    tool: types.Tool
    handler: Callable[[SyncSession, dict], Awaitable[types.CallToolResult]]
    read_only: bool = False


class ToolRegistry:
    """Registry of ToolSpecs, optionally restricted to read-only tools."""

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if not read_only or spec.read_only:
                self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        """Return number of registered tools."""
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        session: SyncSession,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Provides centralized error handling for GitHub errors, blocked
        sync operations, validation errors, and unexpected exceptions,
        translating them into structured CallToolResult responses with
        corrective actions.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        from .errors import build_error_response, translate_github_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(session, args)
        except GitHubAPIError as e:
            logger.warning("GitHub error in %s: %s", name, e)
            return translate_github_error(e)
        except SyncBlockedError as e:
            return build_error_response(
                "sync_blocked",
                str(e),
                "Call gitpush_status to see pending changes and conflicts.",
            )
        except KeyError as e:
            return build_error_response(
                "not_found",
                f"No conflict for path {e.args[0] if e.args else ''!r}",
                "Call gitpush_status to list current conflicts.",
            )
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Check the server log, then retry.",
            )
