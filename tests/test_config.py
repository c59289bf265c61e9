"""Tests for moodjournal.config: settings, file loading and key lookup."""

from __future__ import annotations

from unittest.mock import patch

import keyring.errors
import pytest
from pydantic import ValidationError

from moodjournal.config import (
    AccessPath,
    AIConfig,
    APIKeyManager,
    APIKeyNotFoundError,
    AppConfig,
    ConfigError,
    KeySource,
    get_api_key,
    get_config,
    is_placeholder_key,
    load_config,
    reset_config,
)

# =============================================================================
# Placeholders
# =============================================================================


class TestPlaceholderKeys:
    """Test detection of template key values."""

    @pytest.mark.parametrize(
        "key",
        [None, "", "   ", "your-api-key", "YOUR_API_KEY", "your_gemini_api_key_here", "changeme"],
    )
    def test_placeholders(self, key):
        assert is_placeholder_key(key) is True

    @pytest.mark.parametrize("key", ["AIzaSyA-realistic-looking-key", "test-key"])
    def test_real_keys(self, key):
        assert is_placeholder_key(key) is False


# =============================================================================
# Models
# =============================================================================


class TestAIConfig:
    """Test cascade settings validation."""

    def test_defaults(self):
        config = AIConfig()
        assert config.access_paths == [AccessPath.SDK, AccessPath.REST]
        assert config.api_versions == ["v1beta", "v1"]
        assert config.model_ids[0] == "gemini-2.0-flash"
        assert config.short_circuit_on_invalid_configuration is False

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError):
            AIConfig(model_ids=[])

    def test_duplicates_dropped_in_order(self):
        config = AIConfig(api_versions=["v1", "v1beta", "v1"])
        assert config.api_versions == ["v1", "v1beta"]

    def test_access_paths_from_strings(self):
        assert AIConfig(access_paths=["rest"]).access_paths == [AccessPath.REST]

    def test_trailing_slash_stripped(self):
        assert AIConfig(rest_base_url="http://localhost:8080/").rest_base_url == "http://localhost:8080"


class TestAppConfig:
    """Test settings sources."""

    def test_paths_default_under_data_dir(self, tmp_path):
        config = AppConfig(paths={"data_dir": tmp_path})
        assert config.paths.quota_file == tmp_path.resolve() / "quota.json"
        assert config.paths.log_dir == tmp_path.resolve() / "logs"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MOODJOURNAL_AI__TEMPERATURE", "0.2")
        monkeypatch.setenv("MOODJOURNAL_DEBUG", "true")

        config = AppConfig()

        assert config.ai.temperature == 0.2
        assert config.debug is True


class TestLoadConfig:
    """Test YAML file loading."""

    def test_loads_yaml_file(self, tmp_path):
        path = tmp_path / "moodjournal.yaml"
        path.write_text(
            "ai:\n  access_paths: [rest]\n  model_ids: [gemini-pro]\nquota:\n  retention_days: 7\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.ai.access_paths == [AccessPath.REST]
        assert config.ai.model_ids == ["gemini-pro"]
        assert config.quota.retention_days == 7

    def test_malformed_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / "moodjournal.yaml"
        path.write_text("ai: [unclosed", encoding="utf-8")

        assert load_config(path).ai.api_versions == ["v1beta", "v1"]

    def test_invalid_values_use_defaults(self, tmp_path):
        path = tmp_path / "moodjournal.yaml"
        path.write_text("ai:\n  model_ids: []\n", encoding="utf-8")

        assert load_config(path).ai.model_ids == AIConfig().model_ids

    def test_get_config_cached(self):
        assert get_config() is get_config()
        first = get_config()
        reset_config()
        assert get_config() is not first


# =============================================================================
# API Keys
# =============================================================================


class TestAPIKeyManager:
    """Test key lookup order."""

    def test_environment_first(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        manager = APIKeyManager()

        assert manager.get_key().get_secret_value() == "env-key"
        assert manager.get_key_source() is KeySource.ENVIRONMENT

    def test_placeholder_env_falls_through_to_keyring(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "your-api-key")
        monkeypatch.setattr("moodjournal.config.keyring.get_password", lambda *a: "ring-key")
        manager = APIKeyManager()

        assert manager.get_key().get_secret_value() == "ring-key"
        assert manager.get_key_source() is KeySource.KEYRING

    def test_no_key(self):
        manager = APIKeyManager()
        assert manager.get_key() is None
        assert manager.get_key_source() is KeySource.NONE

    def test_keyring_backend_failure_is_no_key(self, monkeypatch):
        def _broken(*args):
            raise keyring.errors.NoKeyringError("no backend")

        monkeypatch.setattr("moodjournal.config.keyring.get_password", _broken)
        assert APIKeyManager().get_key() is None

    def test_get_api_key_raises(self):
        with pytest.raises(APIKeyNotFoundError) as exc_info:
            get_api_key()
        assert "GEMINI_API_KEY" in str(exc_info.value)

    def test_store_key(self):
        with patch("moodjournal.config.keyring.set_password") as mock_set:
            APIKeyManager().store_key("  new-key  ")

        mock_set.assert_called_once_with("mood-journal-ai", "gemini", "new-key")

    def test_store_placeholder_rejected(self):
        with patch("moodjournal.config.keyring.set_password") as mock_set:
            with pytest.raises(ConfigError):
                APIKeyManager().store_key("your-api-key")
        mock_set.assert_not_called()

    def test_store_keyring_error(self):
        with patch(
            "moodjournal.config.keyring.set_password",
            side_effect=keyring.errors.PasswordSetError("locked"),
        ):
            with pytest.raises(ConfigError, match="PasswordSetError"):
                APIKeyManager().store_key("new-key")
