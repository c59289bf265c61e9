"""AI module for Mood Journal AI.

This module provides the resilient interface to Google's Gemini service.
transports.py is the SOLE place that talks to the provider; everything else
goes through AIRequestClient.

Exports:
    - AIRequestClient: Facade running the strategy cascade
    - get_client / reset_client: Process-wide client handle
    - GenerationResult: Success/failure of one request
    - ErrorKind, classify, user_message, AIRequestError: Failure taxonomy
    - Strategy, StrategyCascade, build_strategies: Fallback ordering
    - RateLimiter: Daily per-user allowance
    - MoodAnalysis: Structured mood reading
"""

from moodjournal.ai.client import (
    AIRequestClient,
    GenerationResult,
    get_client,
    reset_client,
)
from moodjournal.ai.errors import (
    AIRequestError,
    ErrorKind,
    classify,
    user_message,
)
from moodjournal.ai.prompts import MoodAnalysis, neutral_mood
from moodjournal.ai.rate_limiter import RateLimiter
from moodjournal.ai.strategy import (
    AttemptFailure,
    AttemptResult,
    AttemptSuccess,
    Strategy,
    StrategyCascade,
    build_strategies,
)
from moodjournal.ai.transports import (
    ProviderHTTPError,
    ProviderResponseError,
    RestTransport,
    SdkTransport,
)

__all__ = [
    # Client
    "AIRequestClient",
    "GenerationResult",
    "get_client",
    "reset_client",
    # Errors
    "AIRequestError",
    "ErrorKind",
    "classify",
    "user_message",
    # Prompts
    "MoodAnalysis",
    "neutral_mood",
    # Quota
    "RateLimiter",
    # Cascade
    "AttemptFailure",
    "AttemptResult",
    "AttemptSuccess",
    "Strategy",
    "StrategyCascade",
    "build_strategies",
    # Transports
    "ProviderHTTPError",
    "ProviderResponseError",
    "RestTransport",
    "SdkTransport",
]
