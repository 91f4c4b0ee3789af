"""Runtime configuration for the gitpush server.

Reads GitHub connection and sync settings from CLI args, environment
variables, .env files, YAML config file fallbacks, and the token stored in
the persisted settings blob.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config >
    stored settings > Built-in defaults

Environment variables:
    GITPUSH_TOKEN: GitHub personal access token (GITHUB_TOKEN also accepted)
    GITPUSH_API_URL: GitHub REST API base URL (optional)
    GITPUSH_VAULT: Directory to synchronise (optional, default: CWD)
    GITPUSH_DEBOUNCE_SECONDS: Quiet period before change-triggered refresh
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .config_schema import DEFAULT_IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


@dataclass
class Config:
    token: str
    api_url: str = DEFAULT_API_URL
    vault_root: str = "."
    state_dir: str = ".gitpush"
    timeout: float = 60.0
    debounce_seconds: float = 1.0
    default_commit_message: str = "Update from gitpush"
    image_extensions: tuple[str, ...] = DEFAULT_IMAGE_EXTENSIONS
    debug: bool = False

    def state_path(self) -> Path:
        """Absolute location of the state directory (relative to the vault)."""
        return Path(self.vault_root).resolve() / self.state_dir


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    An empty token is allowed: the server still scans and reports local
    changes, and remote fetches report "no token" as a remote error.

    Raises:
        ValueError: If the API URL is malformed or the vault is missing.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")
    config.token = config.token.strip()

    if not os.path.isdir(config.vault_root):
        raise ValueError(
            f"Vault directory not found: '{config.vault_root}'"
        )

    if not config.token:
        logger.warning(
            "No GitHub token configured. Set GITPUSH_TOKEN to enable push and pull."
        )


def load_config(
    token: str | None = None,
    api_url: str | None = None,
    vault: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
    stored_token: str | None = None,
) -> Config:
    """Load configuration with unified precedence.

    The caller is responsible for calling ``load_dotenv()`` first so that
    .env values are visible via ``os.getenv()``.

    Args:
        token: Override GitHub token.
        api_url: Override API base URL.
        vault: Override vault directory.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: ``{"github": {...}, "sync": {...}}`` sections from
            the YAML config, used when CLI and env are both unset.
        stored_token: ``authToken`` from the persisted settings blob.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is invalid after checking all sources.
    """
    fb = yaml_fallbacks or {}
    gh = fb.get("github", {}) or {}
    sync = fb.get("sync", {}) or {}

    final_token = (
        token
        or os.getenv("GITPUSH_TOKEN")
        or os.getenv("GITHUB_TOKEN")
        or gh.get("token")
        or stored_token
        or ""
    )

    final_api_url = (
        api_url
        or os.getenv("GITPUSH_API_URL")
        or gh.get("api_url")
        or DEFAULT_API_URL
    )

    final_vault = vault or os.getenv("GITPUSH_VAULT") or "."

    debounce_raw = os.getenv("GITPUSH_DEBOUNCE_SECONDS")
    if debounce_raw is not None:
        try:
            final_debounce = float(debounce_raw)
        except ValueError:
            raise ValueError(
                f"Invalid GITPUSH_DEBOUNCE_SECONDS '{debounce_raw}': must be a number between 0 and 60"
            ) from None
        if not (0 <= final_debounce <= 60):
            raise ValueError(
                f"Invalid GITPUSH_DEBOUNCE_SECONDS '{debounce_raw}': must be a number between 0 and 60"
            )
    elif "debounce_seconds" in sync:
        final_debounce = float(sync["debounce_seconds"])
    else:
        final_debounce = 1.0

    config = Config(
        token=final_token,
        api_url=final_api_url,
        vault_root=final_vault,
        state_dir=sync.get("state_dir", ".gitpush"),
        timeout=float(gh.get("timeout", 60.0)),
        debounce_seconds=final_debounce,
        default_commit_message=sync.get(
            "default_commit_message", "Update from gitpush"
        ),
        image_extensions=tuple(
            sync.get("image_extensions", DEFAULT_IMAGE_EXTENSIONS)
        ),
        debug=debug,
    )

    validate_config(config)

    return config
