"""Lifespan management for MCP server startup and shutdown."""

import asyncio
import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config
from ..core.async_utils import run_sync
from ..core.client import GitHubClient
from ..storage import LocalStorage
from ..sync.engine import SyncSession
from ..sync.state import SyncStateStore
from ..sync.watcher import ChangeWatcher

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Read the stored token from the settings blob in the state directory
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > stored > defaults
    - Create GitHubClient and check the token (a failure is reported, not fatal)
    - Create the SyncSession, run a first refresh, start the change watcher

    On shutdown:
    - Stop the change watcher

    Args:
        config_overrides: Optional dict with values from CLI (token, api_url,
            vault, active_path, no_watch, debug)

    Yields:
        Dict with 'session' and 'client' keys

    Raises:
        RuntimeError: If configuration is invalid.
    """
    logger.info("MCP server starting...")
    _stderr_print("gitpush MCP server starting...")
    overrides = config_overrides or {}

    try:
        # 1. Load .env early (before YAML, so ${VAR} interpolation can use .env values)
        load_dotenv()

        # 2. Load YAML config if present
        yaml_fallbacks: dict[str, Any] = {"github": {}, "sync": {}}
        config_files = discover_config_files()
        sources = []

        if config_files:
            unified = build_config(load_hierarchical_config())
            yaml_fallbacks = {
                "github": unified.github.model_dump(exclude_none=True),
                "sync": unified.sync.model_dump(exclude_none=True),
            }
            sources.append(f"config file: {config_files[0]}")

        # 3. Stored token from the settings blob
        vault = overrides.get("vault") or os.getenv("GITPUSH_VAULT") or "."
        state_dir = yaml_fallbacks["sync"].get("state_dir", ".gitpush")
        state_store = SyncStateStore(Path(vault).resolve() / state_dir)
        stored_token = state_store.load().get("authToken") or None

        # 4. Single call to load_config with all sources merged
        config = load_config(
            token=overrides.get("token"),
            api_url=overrides.get("api_url"),
            vault=overrides.get("vault"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
            stored_token=stored_token,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        _stderr_print(f"  Vault: {Path(config.vault_root).resolve()}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    client = GitHubClient(config)
    if config.token:
        try:
            login = await run_sync(client.validate_connection)
            logger.info("Authenticated to GitHub as %s", login)
            _stderr_print(f"  Authenticated to GitHub as {login}")
        except Exception as e:
            # Offline use stays possible: local changes are still listed
            logger.warning("GitHub token check failed: %s", e)
            _stderr_print(f"  WARNING: GitHub token check failed: {e}")
    else:
        _stderr_print("  WARNING: No GitHub token configured (set GITPUSH_TOKEN)")

    storage = LocalStorage(config.vault_root)
    session = SyncSession(
        config,
        client,
        storage,
        SyncStateStore(config.state_path()),
        active_path=overrides.get("active_path") or "",
    )
    await session.refresh(fetch_remote=True)

    watcher = None
    if not overrides.get("no_watch"):
        watcher = ChangeWatcher(
            storage.root,
            session,
            asyncio.get_running_loop(),
            delay=config.debounce_seconds,
            state_dir=config.state_dir,
        )
        watcher.start()

    _stderr_print("Server ready. Waiting for MCP client connection...")

    try:
        yield {"session": session, "client": client}
    finally:
        if watcher is not None:
            watcher.stop()
        logger.info("MCP server shutting down")
        _stderr_print("gitpush MCP server shutting down.")
