"""MCP tool handlers for gitpush operations.

This package contains MCP tool implementations that wrap the sync session
with async handlers and structured error responses.
"""

from .errors import build_error_response, translate_github_error
from .registry import ToolRegistry, ToolSpec
from .sync import SYNC_SPECS, SYNC_TOOLS

ALL_SPECS: list[ToolSpec] = list(SYNC_SPECS)

__all__ = [
    "build_error_response",
    "translate_github_error",
    "ToolSpec",
    "ToolRegistry",
    "ALL_SPECS",
    "SYNC_SPECS",
    "SYNC_TOOLS",
]
