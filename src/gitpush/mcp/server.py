"""MCP server for gitpush using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents inspect and drive the sync between a local vault and GitHub.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import os
import sys

import mcp.server.stdio
import mcp.types as types
import yaml
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import discover_config_files, load_hierarchical_config
from ..config_schema import LoggingConfig, build_config
from ..logger import setup_logging
from ..sync.engine import SyncSession
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response

logger = logging.getLogger(__name__)

# Initialize server instance
server = Server("gitpush")

# Global session instance (initialized in main)
_session: SyncSession | None = None

# Global registry instance (initialized in main)
_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_session() -> SyncSession:
    """Get the global SyncSession instance.

    Raises:
        RuntimeError: If the session is not initialized
    """
    if _session is None:
        raise RuntimeError(
            "SyncSession not initialized. Server lifespan not started."
        )
    return _session


def set_session(session: SyncSession | None) -> None:
    """Set the global SyncSession instance, or None to clear."""
    global _session
    _session = session


def get_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _registry


def set_registry(registry: ToolRegistry | None) -> None:
    """Set the global ToolRegistry instance, or None to clear."""
    global _registry
    _registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List all registered tools."""
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    session = get_session()
    try:
        return await get_registry().call_tool(name, arguments, session)
    except ValueError as e:
        # Unknown or filtered-out tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def _logging_settings() -> LoggingConfig | None:
    """Return the YAML logging section, or None without a config file."""
    if not discover_config_files():
        return None
    try:
        return build_config(load_hierarchical_config()).logging
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"WARNING: ignoring logging config: {e}", file=sys.stderr)
        return None


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Sets up logging for MCP mode (file only, never stdout), builds the
    sync session via the lifespan manager, and serves JSON-RPC on stdio.

    Args:
        config_overrides: Optional dict with values from CLI (token,
            api_url, vault, active_path, log_file, read_only, no_watch)
    """
    overrides = config_overrides or {}

    log_file = overrides.get("log_file")
    settings = _logging_settings()
    if settings is not None:
        # LOG_LEVEL from the environment still wins
        os.environ.setdefault("LOG_LEVEL", settings.level)
        log_file = log_file or settings.file

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=log_file,
    )

    registry = ToolRegistry(ALL_SPECS, read_only=overrides.get("read_only", False))
    logger.info(
        "Registered %d tools (of %d total)",
        registry.tool_count(),
        len(ALL_SPECS),
    )
    set_registry(registry)

    # set_session() is called here rather than in the lifespan so that
    # running as __main__ does not update a second copy of this module.
    async with server_lifespan(config_overrides=overrides) as ctx:
        set_session(ctx["session"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="gitpush",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(read_stream, write_stream, init_options)
        finally:
            set_session(None)
            set_registry(None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitpush-mcp",
        description="gitpush - sync a local folder with a GitHub repository over MCP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the current directory (token from GITPUSH_TOKEN or .env)
  gitpush-mcp

  # Serve a vault and pick the repo config above a given note
  gitpush-mcp --vault ~/notes --active-path projects/site/index.md

  # Status and refresh only
  gitpush-mcp --read-only

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )
    parser.add_argument(
        "--vault",
        help="Directory to synchronise (default: GITPUSH_VAULT or current directory)",
    )
    parser.add_argument(
        "--active-path",
        default="",
        help="Vault-relative file or folder selecting the .gitpush.json to use (default: vault root)",
    )
    parser.add_argument(
        "--token",
        help="GitHub token (visible in process list -- prefer GITPUSH_TOKEN env var)",
    )
    parser.add_argument(
        "--api-url",
        help="GitHub REST API base URL (default: https://api.github.com)",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: LOG_FILE or /tmp/gitpush.log)",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Expose only the status and refresh tools",
    )
    parser.add_argument(
        "--no-watch",
        action="store_true",
        help="Do not watch the vault for changes",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gitpush version {__version__}",
    )
    return parser


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args()

    config_overrides = {
        key: value
        for key, value in {
            "vault": args.vault,
            "active_path": args.active_path,
            "token": args.token,
            "api_url": args.api_url,
            "log_file": args.log_file,
            "read_only": args.read_only,
            "no_watch": args.no_watch,
            "debug": args.debug,
        }.items()
        if value
    }

    if config_overrides:
        shown = [k for k in config_overrides if k != "token"]
        print(
            f"Config overrides from CLI: {', '.join(shown)}",
            file=sys.stderr,
        )

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # Error already printed to stderr by lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
