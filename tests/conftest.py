"""Central Pytest Fixtures for Mood Journal AI.

Fixtures included:
- Isolation: clean environment, no keyring, fresh config/client caches
- Config: app_config rooted in a temporary data directory
- Transports: ScriptedTransport and factories for scripted cascades
- Storage: memory_store
"""

from __future__ import annotations

import logging
import os
from typing import Iterable

import pytest

from moodjournal.ai.client import reset_client
from moodjournal.config import AccessPath, AIConfig, AppConfig, PathsConfig, reset_config
from moodjournal.core.storage import MemoryStore

# =============================================================================
# Helper Classes
# =============================================================================


class ScriptedTransport:
    """Transport that replays a script of answers.

    Each script entry is either a string (returned as the completion) or an
    exception instance (raised). Calls are recorded as
    ``(prompt, api_version, model_id)`` tuples.
    """

    def __init__(self, script: Iterable[str | BaseException] = ()) -> None:
        self.script = list(script)
        self.calls: list[tuple[str, str, str]] = []

    def generate(self, prompt: str, api_version: str, model_id: str) -> str:
        self.calls.append((prompt, api_version, model_id))
        if not self.script:
            raise AssertionError("ScriptedTransport called more times than scripted")
        answer = self.script.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep tests away from real keys, keyrings and cached singletons."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    for name in list(os.environ):
        if name.upper().startswith("MOODJOURNAL_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("moodjournal.config.keyring.get_password", lambda *args: None)

    reset_config()
    reset_client()
    yield
    reset_config()
    reset_client()

    # CLI runs install handlers and stop propagation on the package logger
    package_logger = logging.getLogger("moodjournal")
    package_logger.handlers = []
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


# =============================================================================
# Config & Storage
# =============================================================================


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Config with a temp data dir and a small two-by-two cascade."""
    return AppConfig(
        ai=AIConfig(
            access_paths=[AccessPath.SDK, AccessPath.REST],
            api_versions=["v1beta", "v1"],
            model_ids=["gemini-1.5-flash", "gemini-pro"],
        ),
        paths=PathsConfig(data_dir=tmp_path / "data"),
    )


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


# =============================================================================
# Transports
# =============================================================================


@pytest.fixture
def scripted_transport():
    """Factory: ``scripted_transport("text", RuntimeError("boom"), ...)``."""

    def _make(*script: str | BaseException) -> ScriptedTransport:
        return ScriptedTransport(script)

    return _make
