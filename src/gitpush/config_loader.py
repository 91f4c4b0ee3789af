"""
Configuration file discovery and loading for gitpush.

Two kinds of configuration live on disk:

* Application config (YAML): GitHub connection and sync behaviour.
  Convention-based discovery, ``!include`` support, ``${VAR}``
  interpolation, "project wins" merge.
* Per-root repository config (``.gitpush.json``): found by walking up
  from the active file until a folder containing the file is reached.

Usage:
    from gitpush.config_loader import (
        find_repo_config,
        load_hierarchical_config,
    )

    config = load_hierarchical_config()
    found = find_repo_config(storage, "notes/project/todo.md")
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from .config_schema import REPO_CONFIG_FILENAME, RepoConfig

if TYPE_CHECKING:
    from .storage import LocalStorage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Env var interpolation
# ---------------------------------------------------------------------------

# Matches ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` with environment values.

    An unset or empty variable falls back to *default*, or to ``""`` when
    there is no default.
    """

    def _replace(match: re.Match) -> str:
        env_val = os.environ.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# YAML !include support
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader subclass with ``!include``; the global loader is untouched."""


def _include_constructor(
    loader: ConfigLoader, node: yaml.ScalarNode
) -> Any:
    """Load the file named by ``!include`` relative to the including file."""
    target = Path(loader.construct_scalar(node))
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    stack: list[Path] = getattr(loader, "_include_stack", [])
    if target in stack:
        chain = " -> ".join(str(p) for p in [*stack, target])
        raise ValueError(f"Circular include detected: {chain}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} (referenced from {Path(loader.name).resolve()})"
        )
    return _load_yaml_with_includes(target, _include_stack=[*stack, target])


ConfigLoader.add_constructor("!include", _include_constructor)


def _load_yaml_with_includes(
    path: Path,
    *,
    _include_stack: list[Path] | None = None,
) -> Any:
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Application config discovery and merge
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config file paths in precedence order (highest first).

    Search order:
        1. ``GITPUSH_CONFIG`` env var (explicit single path)
        2. ``.gitpush/config.yml`` in CWD (project-level)
        3. ``~/.config/gitpush/config.yml`` (XDG global)
    """
    candidates: list[Path] = []

    env_path = os.environ.get("GITPUSH_CONFIG")
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    candidates.append(Path.cwd() / ".gitpush" / "config.yml")
    candidates.append(
        Path.home() / ".config" / "gitpush" / "config.yml"
    )

    return [p for p in candidates if p.exists()]


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge all discovered config files.

    Files are applied from lowest precedence to highest; top-level keys of
    a later file replace those of earlier ones. Env var interpolation runs
    after the merge. Returns ``{}`` when no config file exists.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)


# ---------------------------------------------------------------------------
# Per-root repository config
# ---------------------------------------------------------------------------


def parse_repo_config(text: str) -> RepoConfig:
    """Parse the JSON text of a ``.gitpush.json`` file.

    Raises:
        ValueError: If the text is not valid JSON or fails validation.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Repository config must be a JSON object")
    try:
        return RepoConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc


def find_repo_config(
    storage: LocalStorage, active_path: str | None
) -> tuple[str, RepoConfig] | None:
    """Find the repository config governing *active_path*.

    Starts at *active_path* when it is a folder (``""`` is the vault
    root), otherwise at its parent folder, and walks up to the vault root.
    A config file that cannot be parsed is logged and the search
    continues with the parent folder.

    Args:
        storage: Vault storage.
        active_path: Vault-relative path of the active file or folder,
            or ``None`` for no active context.

    Returns:
        ``(root_path, config)`` where *root_path* is the vault-relative
        folder holding the config (``""`` for the vault root), or ``None``.
    """
    if active_path is None:
        return None

    folder = PurePosixPath(active_path or ".")
    # An existing folder is searched itself; a file or missing path from
    # its parent.
    if active_path and (
        storage.is_file(active_path) or not storage.exists(active_path)
    ):
        folder = folder.parent
    while True:
        root = "" if str(folder) == "." else str(folder)
        candidate = (
            f"{root}/{REPO_CONFIG_FILENAME}" if root else REPO_CONFIG_FILENAME
        )
        if storage.exists(candidate):
            try:
                return root, parse_repo_config(storage.read_text(candidate))
            except (OSError, ValueError) as exc:
                logger.error("Failed to parse %s: %s", candidate, exc)
        if not root:
            return None
        folder = folder.parent
