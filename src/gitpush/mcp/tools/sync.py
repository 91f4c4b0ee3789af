"""MCP tool handlers for vault/GitHub sync.

Defines five tools:

- ``gitpush_status`` -- show the current classification.
- ``gitpush_refresh`` -- rescan the vault, optionally refetching GitHub.
- ``gitpush_resolve`` -- keep the local or remote side of a conflict.
- ``gitpush_push`` -- apply the push set.
- ``gitpush_pull`` -- apply the pull set.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...sync.engine import SyncSession
from ...sync.reporter import (
    format_status,
    format_sync_report,
    render_panel,
    report_to_json,
    view_to_json,
)
from .registry import ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


_STATUS_TOOL = types.Tool(
    name="gitpush_status",
    description=(
        "Show the sync status of the active folder: repository, branch, "
        "files to push, files to pull, and conflicts."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "panel": {
                "type": "boolean",
                "default": False,
                "description": "Return the full panel description as structured content",
            },
        },
        "required": [],
    },
)

_REFRESH_TOOL = types.Tool(
    name="gitpush_refresh",
    description=(
        "Rescan local files and recompute changes. Refetches the GitHub "
        "tree unless fetch_remote is false. Discards conflict resolutions "
        "that were not pushed or pulled."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "fetch_remote": {
                "type": "boolean",
                "default": True,
                "description": "Fetch the remote tree from GitHub",
            },
            "active_path": {
                "type": "string",
                "description": (
                    "Vault-relative path of a file or folder; the nearest "
                    ".gitpush.json above it selects the repository"
                ),
            },
        },
        "required": [],
    },
)

_RESOLVE_TOOL = types.Tool(
    name="gitpush_resolve",
    description=(
        "Resolve a conflict by keeping one side. 'local' queues a forced "
        "push, 'remote' queues a forced pull. Applies until the next refresh."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Repository path of the conflicting file",
            },
            "side": {
                "type": "string",
                "enum": ["local", "remote"],
                "description": "Which version to keep",
            },
        },
        "required": ["path", "side"],
    },
)

_PUSH_TOOL = types.Tool(
    name="gitpush_push",
    description=(
        "Upload local changes (and referenced images) to GitHub, one "
        "commit per file. Stops at the first failure."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,
        openWorldHint=True,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "message": {
                "type": "string",
                "description": "Commit message (default from config)",
            },
            "branch": {
                "type": "string",
                "description": "Target branch (default: repo config, then last used, then main)",
            },
        },
        "required": [],
    },
)

_PULL_TOOL = types.Tool(
    name="gitpush_pull",
    description=(
        "Download remote changes into the vault, overwriting or deleting "
        "local files. Stops at the first failure."
    ),
    annotations=types.ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,
        openWorldHint=True,
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "branch": {
                "type": "string",
                "description": "Source branch (default: repo config, then last used, then main)",
            },
        },
        "required": [],
    },
)


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


def _status_result(session: SyncSession, panel: bool = False) -> types.CallToolResult:
    view = session.view()
    structured = render_panel(view) if panel else view_to_json(view)
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=format_status(view))],
        structuredContent=structured,
    )


async def _handle_status(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``gitpush_status`` tool."""
    return _status_result(session, bool(args.get("panel", False)))


async def _handle_refresh(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``gitpush_refresh`` tool."""
    ran = await session.refresh(
        fetch_remote=bool(args.get("fetch_remote", True)),
        active_path=args.get("active_path"),
    )
    if not ran:
        logger.info("Refresh queued behind a running pass")
    return _status_result(session)


async def _handle_resolve(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``gitpush_resolve`` tool."""
    path = args.get("path")
    side = args.get("side")
    if not path or not side:
        raise ValueError("Both 'path' and 'side' are required")
    item = session.resolve(path, side)
    text = f"Resolved {path}: {item.status.value}\n\n{format_status(session.view())}"
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=view_to_json(session.view()),
    )


async def _handle_push(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``gitpush_push`` tool."""
    report = await session.push(
        message=args.get("message"), branch=args.get("branch")
    )
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_sync_report(report))
        ],
        structuredContent=report_to_json(report),
        isError=not report.success,
    )


async def _handle_pull(
    session: SyncSession, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``gitpush_pull`` tool."""
    report = await session.pull(branch=args.get("branch"))
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_sync_report(report))
        ],
        structuredContent=report_to_json(report),
        isError=not report.success,
    )


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(tool=_STATUS_TOOL, handler=_handle_status, read_only=True),
    ToolSpec(tool=_REFRESH_TOOL, handler=_handle_refresh, read_only=True),
    ToolSpec(tool=_RESOLVE_TOOL, handler=_handle_resolve),
    ToolSpec(tool=_PUSH_TOOL, handler=_handle_push),
    ToolSpec(tool=_PULL_TOOL, handler=_handle_pull),
]

SYNC_TOOLS: list[types.Tool] = [spec.tool for spec in SYNC_SPECS]
