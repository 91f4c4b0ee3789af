"""Unified configuration schema for gitpush.

Defines Pydantic models for the application config (GitHub connection,
sync behaviour, logging) and for the per-root ``.gitpush.json`` file that
links a vault folder to a repository.

Usage:
    from gitpush.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator


logger = logging.getLogger(__name__)

# Name of the per-root configuration file.
REPO_CONFIG_FILENAME = ".gitpush.json"

DEFAULT_IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "svg", "webp")


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub connection settings.

    All fields are optional so env vars and CLI args can supply them at
    runtime instead.
    """

    token: str | None = Field(
        default=None, description="GitHub personal access token"
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Per-request read timeout in seconds",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Sync behaviour settings."""

    state_dir: str = Field(
        default=".gitpush",
        description="Directory holding the persisted sync state",
    )
    debounce_seconds: float = Field(
        default=1.0,
        ge=0,
        le=60,
        description="Quiet period before a file change triggers a refresh",
    )
    default_commit_message: str = Field(
        default="Update from gitpush",
        description="Commit message used when none is given",
    )
    image_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IMAGE_EXTENSIONS),
        description="Attachment extensions uploaded with documents",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Per-root repository config
# ---------------------------------------------------------------------------


class RepoConfig(BaseModel):
    """Contents of a ``.gitpush.json`` file.

    Example::

        {
          "repo": "username/repo",
          "branch": "main",
          "path": "vault-folder",
          "imagesPath": "vault-folder/images"
        }
    """

    repo: str
    branch: str | None = None
    path: str = ""
    images_path: str = Field(default="images", alias="imagesPath")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("repo")
    @classmethod
    def _check_repo(cls, value: str) -> str:
        parts = value.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(
                f"Invalid repo '{value}': expected 'owner/name'"
            )
        return value.strip()

    @property
    def owner(self) -> str:
        return self.repo.split("/")[0]

    @property
    def name(self) -> str:
        return self.repo.split("/")[1]

    @property
    def content_prefix(self) -> str:
        """``path`` without leading or trailing slashes."""
        return (self.path or "").strip("/")

    @property
    def attachment_prefix(self) -> str:
        return (self.images_path or "images").strip("/")


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` is always valid.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
