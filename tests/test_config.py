"""Tests for gitpush.config -- env-var config loading and validation.

NOT to be confused with test_config_loader.py (YAML discovery and
``.gitpush.json`` lookup) or test_config_schema.py (Pydantic models).
"""

import logging

import pytest

from gitpush.config import DEFAULT_API_URL, Config, load_config, validate_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "GITPUSH_TOKEN",
        "GITHUB_TOKEN",
        "GITPUSH_API_URL",
        "GITPUSH_VAULT",
        "GITPUSH_DEBOUNCE_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config() -- URL format and vault checks."""

    def test_valid_config(self, tmp_path):
        validate_config(Config(token="t", vault_root=str(tmp_path)))

    def test_invalid_url_no_scheme(self, tmp_path):
        config = Config(token="t", api_url="api.github.com", vault_root=str(tmp_path))
        with pytest.raises(ValueError, match="must start with http:// or https://"):
            validate_config(config)

    def test_url_without_host(self, tmp_path):
        config = Config(token="t", api_url="https://", vault_root=str(tmp_path))
        with pytest.raises(ValueError, match="hostname"):
            validate_config(config)

    def test_trailing_slash_and_whitespace_stripped(self, tmp_path):
        config = Config(
            token="  t  ",
            api_url=" https://ghe.example.com/api/v3/ ",
            vault_root=str(tmp_path),
        )
        validate_config(config)
        assert config.api_url == "https://ghe.example.com/api/v3"
        assert config.token == "t"

    def test_missing_vault(self, tmp_path):
        config = Config(token="t", vault_root=str(tmp_path / "nope"))
        with pytest.raises(ValueError, match="Vault directory not found"):
            validate_config(config)

    def test_empty_token_only_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            validate_config(Config(token="", vault_root=str(tmp_path)))
        assert "No GitHub token configured" in caplog.text


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config.token == ""
        assert config.api_url == DEFAULT_API_URL
        assert config.vault_root == "."
        assert config.state_dir == ".gitpush"
        assert config.debounce_seconds == 1.0

    def test_env_vars(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITPUSH_TOKEN", "env-token")
        monkeypatch.setenv("GITPUSH_VAULT", str(tmp_path))
        monkeypatch.setenv("GITPUSH_DEBOUNCE_SECONDS", "2.5")
        config = load_config()
        assert config.token == "env-token"
        assert config.vault_root == str(tmp_path)
        assert config.debounce_seconds == 2.5

    def test_github_token_accepted(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
        assert load_config(vault=str(tmp_path)).token == "gh-token"

    def test_cli_overrides_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITPUSH_TOKEN", "env-token")
        config = load_config(token="cli-token", vault=str(tmp_path))
        assert config.token == "cli-token"

    @pytest.mark.parametrize("value", ["abc", "-1", "61"])
    def test_invalid_debounce(self, tmp_path, monkeypatch, value):
        monkeypatch.setenv("GITPUSH_DEBOUNCE_SECONDS", value)
        with pytest.raises(ValueError, match="GITPUSH_DEBOUNCE_SECONDS"):
            load_config(vault=str(tmp_path))

    def test_state_path_is_under_vault(self, tmp_path):
        config = load_config(vault=str(tmp_path))
        assert config.state_path() == tmp_path.resolve() / ".gitpush"


class TestLoadConfigWithYamlFallbacks:
    def test_yaml_fallback_used(self, tmp_path):
        config = load_config(
            vault=str(tmp_path),
            yaml_fallbacks={
                "github": {"token": "yaml-token", "timeout": 5},
                "sync": {
                    "debounce_seconds": 3,
                    "default_commit_message": "vault sync",
                    "image_extensions": ["png"],
                },
            },
        )
        assert config.token == "yaml-token"
        assert config.timeout == 5.0
        assert config.debounce_seconds == 3.0
        assert config.default_commit_message == "vault sync"
        assert config.image_extensions == ("png",)

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITPUSH_TOKEN", "env-token")
        config = load_config(
            vault=str(tmp_path), yaml_fallbacks={"github": {"token": "yaml"}}
        )
        assert config.token == "env-token"

    def test_stored_token_is_last_resort(self, tmp_path):
        assert load_config(vault=str(tmp_path), stored_token="saved").token == "saved"
        config = load_config(
            vault=str(tmp_path),
            yaml_fallbacks={"github": {"token": "yaml"}},
            stored_token="saved",
        )
        assert config.token == "yaml"

    def test_empty_sections(self, tmp_path):
        config = load_config(
            vault=str(tmp_path), yaml_fallbacks={"github": None, "sync": None}
        )
        assert config.api_url == DEFAULT_API_URL
