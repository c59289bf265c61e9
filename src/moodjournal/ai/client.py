"""Resilient Gemini client for Mood Journal AI.

This module is the public interface for all AI features. A request is a
single prompt; the client runs it through the strategy cascade (client
library first, then raw HTTP; each across the configured API versions and
models) and returns either the first non-empty completion or one classified
failure with a fixed user-facing message.

The client provides:
- Deterministic, ordered fallback across access paths, versions and models
- A closed failure taxonomy (ErrorKind) with one message per kind
- Four journaling operations built on ``generate``
- Security-first logging (never logs keys, prompts or completions)

Example:
    >>> from moodjournal.ai.client import get_client
    >>>
    >>> client = get_client()
    >>> result = client.analyze_diary_entry("Today I finally finished the project...")
    >>> if result.ok:
    ...     print(result.text)
    ... else:
    ...     print(result.user_message)

Failure policy per operation:
- ``generate``, ``analyze_diary_entry``, ``generate_motivation_message``:
  failures are returned to the caller.
- ``suggest_tasks``, ``analyze_mood``: failures degrade to an empty list /
  a neutral mood so the caller always has something to show.
"""

from __future__ import annotations

from typing import Mapping

from pydantic import BaseModel, Field

from moodjournal.ai.errors import AIRequestError, ErrorKind, user_message
from moodjournal.ai.prompts import (
    MoodAnalysis,
    build_diary_analysis_prompt,
    build_mood_analysis_prompt,
    build_motivation_prompt,
    build_task_suggestions_prompt,
    neutral_mood,
    parse_mood_analysis,
    parse_task_suggestions,
)
from moodjournal.ai.strategy import (
    AttemptSuccess,
    Strategy,
    StrategyCascade,
    build_strategies,
)
from moodjournal.ai.transports import RestTransport, SdkTransport, Transport
from moodjournal.config import (
    AccessPath,
    APIKeyNotFoundError,
    AppConfig,
    get_api_key,
    get_config,
    is_placeholder_key,
)
from moodjournal.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Response Model
# =============================================================================


class GenerationResult(BaseModel):
    """Outcome of one AI request.

    Exactly one of ``text`` / ``error_kind`` is set. Failures carry only the
    kind and its fixed message; which strategy failed is never exposed.

    Attributes:
        text: The completion on success.
        error_kind: The failure category on failure.
        user_message: Message safe to show to the user on failure.
        attempts: Number of strategies attempted.
    """

    text: str | None = Field(None, description="Completion text on success")
    error_kind: ErrorKind | None = Field(None, description="Failure category")
    user_message: str | None = Field(None, description="User-facing failure message")
    attempts: int = Field(0, ge=0, description="Strategies attempted")

    @property
    def ok(self) -> bool:
        return self.error_kind is None and self.text is not None

    @classmethod
    def success(cls, text: str, attempts: int = 1) -> "GenerationResult":
        return cls(text=text, attempts=attempts)

    @classmethod
    def failure(cls, kind: ErrorKind, attempts: int = 0) -> "GenerationResult":
        return cls(error_kind=kind, user_message=user_message(kind), attempts=attempts)

    def unwrap(self) -> str:
        """Return the text or raise the classified failure.

        Raises:
            AIRequestError: If the request failed.
        """
        if not self.ok:
            raise AIRequestError(self.error_kind or ErrorKind.UNCLASSIFIED, self.user_message)
        return self.text  # type: ignore[return-value]


# =============================================================================
# Main AI Client Class
# =============================================================================


class AIRequestClient:
    """Facade over the strategy cascade.

    The client library handle is optional: if it cannot be created (bad
    configuration, library error) the client keeps working over HTTP only.

    Args:
        config: Application configuration. If None, loads from get_config().
        api_key: Override API key. If None, loads from configured sources.
        transports: Override transports per access path (tests, custom
            backends). If None, transports are built from configuration.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        api_key: str | None = None,
        transports: Mapping[AccessPath, Transport] | None = None,
    ) -> None:
        self._config = config or get_config()
        self._api_key = self._resolve_api_key(api_key)

        if transports is not None:
            self._transports = dict(transports)
        else:
            self._transports = self._build_transports()

        ai = self._config.ai
        self._strategies = build_strategies(ai.access_paths, ai.api_versions, ai.model_ids)
        self._cascade = StrategyCascade(
            self._transports,
            short_circuit_on_invalid_configuration=ai.short_circuit_on_invalid_configuration,
        )

    # =========================================================================
    # Setup
    # =========================================================================

    def _resolve_api_key(self, api_key: str | None) -> str | None:
        if api_key is not None:
            if is_placeholder_key(api_key):
                logger.warning("API key override is empty or a placeholder")
                return None
            return api_key.strip()

        try:
            return get_api_key().get_secret_value()
        except APIKeyNotFoundError:
            logger.warning("No Gemini API key configured; AI features are unavailable")
            return None

    def _build_transports(self) -> dict[AccessPath, Transport]:
        """Create a transport for each configured access path.

        Without a key nothing is created. A library initialisation failure
        leaves the SDK path out.
        """
        if self._api_key is None:
            return {}

        ai = self._config.ai
        transports: dict[AccessPath, Transport] = {}

        for path in ai.access_paths:
            if path is AccessPath.SDK:
                try:
                    transports[path] = SdkTransport(
                        api_key=self._api_key,
                        api_versions=ai.api_versions,
                        temperature=ai.temperature,
                        max_output_tokens=ai.max_output_tokens,
                    )
                    logger.debug("Client library initialised")
                except Exception as e:
                    logger.error(
                        f"Client library initialisation failed, using HTTP only: {type(e).__name__}"
                    )
            elif path is AccessPath.REST:
                transports[path] = RestTransport(
                    api_key=self._api_key,
                    base_url=ai.rest_base_url,
                    method=ai.rest_method,
                    timeout=ai.timeout_seconds,
                    temperature=ai.temperature,
                    max_output_tokens=ai.max_output_tokens,
                )

        return transports

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def strategies(self) -> list[Strategy]:
        """Strategies in the order they are attempted."""
        return list(self._strategies)

    @property
    def access_paths(self) -> list[AccessPath]:
        """Access paths with a working transport."""
        return list(self._transports)

    def is_available(self) -> bool:
        """True iff a real key was loaded and the client library initialised."""
        return self._api_key is not None and AccessPath.SDK in self._transports

    # =========================================================================
    # Generation
    # =========================================================================

    def generate(self, prompt: str) -> GenerationResult:
        """Run the cascade for ``prompt``.

        Empty prompts and a missing key fail with INVALID_CONFIGURATION
        before any network call.
        """
        if not prompt or not prompt.strip():
            logger.warning("Rejected empty prompt")
            return GenerationResult.failure(ErrorKind.INVALID_CONFIGURATION)

        if self._api_key is None:
            return GenerationResult.failure(ErrorKind.INVALID_CONFIGURATION)

        result = self._cascade.run(prompt, self._strategies)

        if isinstance(result, AttemptSuccess):
            return GenerationResult.success(result.text, attempts=result.attempts)
        return GenerationResult.failure(result.kind, attempts=result.attempts)

    def analyze_diary_entry(self, diary_text: str) -> GenerationResult:
        """Supportive reflection on a diary entry."""
        return self.generate(build_diary_analysis_prompt(diary_text))

    def generate_motivation_message(
        self,
        user_mood: str | None = None,
        completed_tasks: int | None = None,
    ) -> GenerationResult:
        """Short motivation message, optionally tuned to mood and progress."""
        return self.generate(build_motivation_prompt(user_mood, completed_tasks))

    def suggest_tasks(self, user_goals: list[str] | None = None) -> list[str]:
        """Up to five task suggestions. Returns [] on any failure."""
        try:
            result = self.generate(build_task_suggestions_prompt(user_goals))
            if not result.ok:
                logger.info(f"Task suggestions unavailable: {result.error_kind.value}")
                return []
            return parse_task_suggestions(result.text or "")
        except Exception as e:
            logger.error(f"Task suggestion failed: {type(e).__name__}")
            return []

    def analyze_mood(self, diary_text: str) -> MoodAnalysis:
        """Structured mood reading. Returns a neutral mood on any failure."""
        try:
            result = self.generate(build_mood_analysis_prompt(diary_text))
            if not result.ok:
                logger.info(f"Mood analysis unavailable: {result.error_kind.value}")
                return neutral_mood()
            parsed = parse_mood_analysis(result.text or "")
            if parsed is None:
                logger.warning("Mood analysis response was not valid mood JSON")
                return neutral_mood()
            return parsed
        except Exception as e:
            logger.error(f"Mood analysis failed: {type(e).__name__}")
            return neutral_mood()


# =============================================================================
# Module-Level Functions
# =============================================================================

# Process-wide client, created on first use and kept for the process lifetime.
_client: AIRequestClient | None = None


def get_client(config: AppConfig | None = None) -> AIRequestClient:
    """Return the shared client, creating it on first call.

    ``config`` only matters for the call that creates the client.
    """
    global _client
    if _client is None:
        _client = AIRequestClient(config=config)
    return _client


def reset_client() -> None:
    """Drop the shared client (tests, key changes)."""
    global _client
    _client = None
