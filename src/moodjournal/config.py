"""Central Configuration System for Mood Journal AI.

This module is the single source of truth for application configuration.
Every other module that needs settings imports from here.

The configuration system supports:
- Multi-source configuration (environment variables > config file > defaults)
- API key lookup (environment > system keyring)
- Placeholder detection, so a template key is treated as "not configured"

Example:
    >>> from moodjournal.config import get_config, get_api_key
    >>>
    >>> cfg = get_config()
    >>> print(cfg.ai.model_ids)
    >>> key = get_api_key()  # raises APIKeyNotFoundError if unset

Config File Format (YAML):
    ```yaml
    ai:
      access_paths: [sdk, rest]
      api_versions: [v1beta, v1]
      model_ids: [gemini-2.0-flash, gemini-1.5-flash, gemini-1.5-pro, gemini-pro]
      temperature: 0.7
      max_output_tokens: 1024
      timeout_seconds: 60

    quota:
      key_prefix: ai_analysis
      retention_days: 30

    paths:
      data_dir: ~/.moodjournal

    debug: false
    ```
"""

from __future__ import annotations

import functools
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

import keyring
import keyring.errors
import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings

# Configure module logger - never log secrets
logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileError(ConfigError):
    """Raised when a config file exists but cannot be used."""

    pass


class APIKeyNotFoundError(ConfigError):
    """Raised when no usable API key is found in any source.

    A placeholder value counts as "not found".
    """

    pass


# =============================================================================
# Enums
# =============================================================================


class AccessPath(str, Enum):
    """The two ways the Gemini service can be reached.

    Attributes:
        SDK: The google-genai client library.
        REST: Direct HTTPS calls to the generativelanguage endpoint.
    """

    SDK = "sdk"
    REST = "rest"


class KeySource(str, Enum):
    """Where the API key was found."""

    ENVIRONMENT = "environment"
    KEYRING = "keyring"
    NONE = "none"


# Values shipped in templates and sample configs. Seeing one of these means
# the user never replaced it.
PLACEHOLDER_KEYS: frozenset[str] = frozenset(
    {
        "your-api-key",
        "your_api_key",
        "your-gemini-api-key",
        "your_gemini_api_key_here",
        "changeme",
        "replace-me",
        "<api-key>",
        "xxx",
    }
)


def is_placeholder_key(key: str | None) -> bool:
    """Return True for empty keys and known template values."""
    if key is None:
        return True
    stripped = key.strip()
    if not stripped:
        return True
    lowered = stripped.lower()
    if lowered in PLACEHOLDER_KEYS:
        return True
    return lowered.startswith("your") and ("key" in lowered or "here" in lowered)


# =============================================================================
# Configuration Models
# =============================================================================


class AIConfig(BaseModel):
    """Configuration for the Gemini request cascade.

    The three lists are combined path-major, then version, then model, in
    the order given here. Put the newest and most capable entries first.

    Attributes:
        access_paths: Access path preference order.
        api_versions: API versions to try, newest first.
        model_ids: Model identifiers to try, most capable first.
        rest_base_url: Base URL of the HTTP endpoint.
        rest_method: Method suffix of the HTTP endpoint (``models/{id}:{method}``).
        temperature: Sampling temperature.
        max_output_tokens: Maximum tokens in a completion.
        timeout_seconds: Transport timeout for HTTP attempts.
        short_circuit_on_invalid_configuration: Stop the cascade at the first
            invalid-configuration failure instead of exhausting it.
    """

    access_paths: list[AccessPath] = Field(
        default_factory=lambda: [AccessPath.SDK, AccessPath.REST],
        description="Access path preference order.",
    )
    api_versions: list[str] = Field(
        default_factory=lambda: ["v1beta", "v1"],
        description="API versions, newest first.",
    )
    model_ids: list[str] = Field(
        default_factory=lambda: [
            "gemini-2.0-flash",
            "gemini-1.5-flash",
            "gemini-1.5-pro",
            "gemini-pro",
        ],
        description="Model identifiers, most capable first.",
    )
    rest_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Base URL for direct HTTP calls.",
    )
    rest_method: str = Field(default="generateContent", description="Endpoint method suffix.")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=1024, ge=16, le=32000)
    timeout_seconds: float = Field(default=60.0, gt=0, le=600)
    short_circuit_on_invalid_configuration: bool = Field(
        default=False,
        description="Stop at the first invalid-configuration failure.",
    )

    @field_validator("access_paths", "api_versions", "model_ids")
    @classmethod
    def not_empty(cls, v: list[Any]) -> list[Any]:
        """Reject empty lists and drop duplicates while keeping order."""
        if not v:
            raise ValueError("must contain at least one entry")
        seen: list[Any] = []
        for item in v:
            if item not in seen:
                seen.append(item)
        return seen

    @field_validator("rest_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class QuotaConfig(BaseModel):
    """Daily AI-analysis allowance settings.

    Attributes:
        key_prefix: Prefix of quota marker keys.
        retention_days: Markers older than this are removed by ``quota prune``.
    """

    key_prefix: str = Field(default="ai_analysis")
    retention_days: int = Field(default=30, ge=1, le=3650)


class PathsConfig(BaseModel):
    """Filesystem locations.

    Attributes:
        data_dir: Base directory. Default ~/.moodjournal
        quota_file: JSON file holding quota markers. Default data_dir/quota.json
        log_dir: Log directory. Default data_dir/logs
    """

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".moodjournal")
    quota_file: Path | None = None
    log_dir: Path | None = None

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        """Expand ~ and resolve path."""
        if isinstance(v, (str, Path)):
            return Path(v).expanduser().resolve()
        return v

    @model_validator(mode="after")
    def resolve_defaults(self) -> "PathsConfig":
        """Resolve None defaults relative to data_dir."""
        if self.quota_file is None:
            object.__setattr__(self, "quota_file", self.data_dir / "quota.json")
        else:
            object.__setattr__(self, "quota_file", Path(self.quota_file).expanduser().resolve())

        if self.log_dir is None:
            object.__setattr__(self, "log_dir", self.data_dir / "logs")
        else:
            object.__setattr__(self, "log_dir", Path(self.log_dir).expanduser().resolve())

        return self


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Configuration priority (highest wins):
    1. Environment variables (MOODJOURNAL_*, nested with ``__``)
    2. Config file (YAML)
    3. In-code defaults

    Example:
        >>> config = AppConfig()
        >>> config.ai.api_versions
        ['v1beta', 'v1']
    """

    ai: AIConfig = Field(default_factory=AIConfig)
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    debug: bool = Field(default=False, description="Enable debug mode.")
    verbose: bool = Field(default=False, description="Enable verbose output.")

    model_config = {
        "env_prefix": "MOODJOURNAL_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Environment variables override values read from the config file."""
        return env_settings, init_settings, dotenv_settings, file_secret_settings


# =============================================================================
# API Key Management
# =============================================================================


class APIKeyManager:
    """Looks up the Gemini API key.

    Sources tried in order:
    1. Environment variable GEMINI_API_KEY
    2. System keyring

    Placeholder values are skipped as if the source were empty. The key is
    cached after the first successful lookup.

    Security Rules:
    - NEVER log the actual key value
    - NEVER include key in exception messages
    """

    KEYRING_SERVICE = "mood-journal-ai"
    KEYRING_USERNAME = "gemini"
    ENV_VAR_NAME = "GEMINI_API_KEY"

    def __init__(self) -> None:
        self._cached_key: SecretStr | None = None
        self._key_source: KeySource = KeySource.NONE

    def get_key(self) -> SecretStr | None:
        """Return the key, or None if no source holds a usable one."""
        if self._cached_key is not None:
            return self._cached_key

        key = self._read_from_environment()
        if not is_placeholder_key(key):
            self._cached_key = SecretStr(key.strip())
            self._key_source = KeySource.ENVIRONMENT
            logger.debug("API key loaded from environment variable")
            return self._cached_key

        key = self._read_from_keyring()
        if not is_placeholder_key(key):
            self._cached_key = SecretStr(key.strip())
            self._key_source = KeySource.KEYRING
            logger.debug("API key loaded from system keyring")
            return self._cached_key

        self._key_source = KeySource.NONE
        logger.debug("No API key found in any source")
        return None

    def get_key_source(self) -> KeySource:
        return self._key_source

    def store_key(self, key: str) -> None:
        """Store the key in the system keyring.

        Raises:
            ConfigError: If the key is a placeholder or the keyring refuses it.
        """
        if is_placeholder_key(key):
            raise ConfigError("Refusing to store an empty or placeholder API key")
        try:
            keyring.set_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME, key.strip())
        except keyring.errors.KeyringError as e:
            raise ConfigError(f"Failed to store key in keyring: {type(e).__name__}") from e
        self._cached_key = None

    def _read_from_environment(self) -> str | None:
        return os.environ.get(self.ENV_VAR_NAME)

    def _read_from_keyring(self) -> str | None:
        try:
            return keyring.get_password(self.KEYRING_SERVICE, self.KEYRING_USERNAME)
        except Exception as e:
            # Headless systems often have no keyring backend at all
            logger.debug(f"Keyring access failed: {type(e).__name__}")
            return None


# =============================================================================
# Loading
# =============================================================================


def _read_yaml(config_file: Path) -> dict[str, Any]:
    """Read a YAML config file into a dict.

    Raises:
        ConfigFileError: If the file cannot be read or parsed.
    """
    try:
        content = config_file.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(f"Cannot read {config_file}: {type(e).__name__}") from e

    if not content.strip():
        return {}

    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Malformed YAML in {config_file}: {e}") from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigFileError(f"Config file {config_file} must contain a mapping")
    return loaded


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from file and environment.

    Searches for a YAML file at ``path``, ``./moodjournal.yaml`` and
    ``~/.moodjournal/config.yaml``, in that order. A broken file is logged
    and ignored; defaults and environment variables still apply.

    Args:
        path: Optional explicit config file path.

    Returns:
        AppConfig instance.
    """
    search_paths = [
        path,
        Path("./moodjournal.yaml"),
        Path("./moodjournal.yml"),
        Path.home() / ".moodjournal" / "config.yaml",
    ]

    config_data: dict[str, Any] = {}
    for search_path in search_paths:
        if search_path is not None and search_path.exists():
            try:
                config_data = _read_yaml(search_path)
                logger.debug(f"Loaded config file {search_path}")
            except ConfigFileError as e:
                logger.warning(f"{e}. Using defaults.")
            break

    sections = {k: v for k, v in config_data.items() if k in AppConfig.model_fields}
    try:
        return AppConfig(**sections)
    except ValueError as e:
        logger.warning(f"Error parsing config values: {e}. Using defaults.")
        return AppConfig()


@functools.lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the cached configuration singleton."""
    return load_config()


@functools.lru_cache(maxsize=1)
def get_key_manager() -> APIKeyManager:
    """Get the cached API key manager."""
    return APIKeyManager()


def get_api_key() -> SecretStr:
    """Return the configured Gemini API key.

    Raises:
        APIKeyNotFoundError: If no usable key is configured in any source.
    """
    key = get_key_manager().get_key()
    if key is None:
        raise APIKeyNotFoundError(
            "No API key found. Set the GEMINI_API_KEY environment variable "
            "or store a key in the system keyring with 'moodjournal set-key'."
        )
    return key


def reset_config() -> None:
    """Clear cached configuration and key lookups (used by tests)."""
    get_config.cache_clear()
    get_key_manager.cache_clear()
