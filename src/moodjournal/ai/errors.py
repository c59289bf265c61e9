"""Failure taxonomy for AI requests.

Every failure from either access path ends up as exactly one ``ErrorKind``.
Classification is plain text matching, first rule wins:

1. API key / configuration phrases  -> INVALID_CONFIGURATION
2. quota / 429 / rate limit phrases -> QUOTA_EXCEEDED
3. network / fetch / connection     -> NETWORK_ERROR
4. timeout phrases                  -> TIMEOUT
5. anything else                    -> UNCLASSIFIED

EMPTY_RESPONSE is never produced here; the cascade assigns it when a call
succeeds but yields no text.

Example:
    >>> classify("429 Too Many Requests")
    <ErrorKind.QUOTA_EXCEEDED: 'quota_exceeded'>
    >>> user_message(ErrorKind.TIMEOUT)
    'The AI service took too long to respond. Please try again.'
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Caller-visible failure categories.

    Attributes:
        INVALID_CONFIGURATION: Missing/placeholder/rejected API key or a bad request setup.
        QUOTA_EXCEEDED: Provider quota or rate limit hit.
        NETWORK_ERROR: The provider could not be reached.
        TIMEOUT: The provider did not answer in time.
        EMPTY_RESPONSE: The provider answered with no text.
        UNCLASSIFIED: Anything else.
    """

    INVALID_CONFIGURATION = "invalid_configuration"
    QUOTA_EXCEEDED = "quota_exceeded"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    UNCLASSIFIED = "unclassified"


# Ordered: the first rule with a matching phrase wins.
CLASSIFICATION_RULES: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (
        ErrorKind.INVALID_CONFIGURATION,
        (
            "api key",
            "api_key",
            "api-key",
            "apikey",
            "not configured",
            "invalid configuration",
            "misconfigured",
        ),
    ),
    (
        ErrorKind.QUOTA_EXCEEDED,
        (
            "quota",
            "429",
            "rate limit",
            "rate-limit",
            "ratelimit",
            "resource_exhausted",
            "resource exhausted",
            "too many requests",
        ),
    ),
    (
        ErrorKind.NETWORK_ERROR,
        (
            "network",
            "fetch",
            "connection",
            "unreachable",
            "name resolution",
            # httpx transport errors and resolver (getaddrinfo) failures
            "name or service not known",
            "nodename nor servname",
            "getaddrinfo",
            "gaierror",
            "connecterror",
            "remoteprotocolerror",
            "disconnected",
        ),
    ),
    (
        ErrorKind.TIMEOUT,
        (
            "timeout",
            "timed out",
            "deadline",
        ),
    ),
)


USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_CONFIGURATION: (
        "AI analysis is not set up. Please check the API key configuration."
    ),
    ErrorKind.QUOTA_EXCEEDED: (
        "The AI service is busy or its usage limit was reached. Please try again later."
    ),
    ErrorKind.NETWORK_ERROR: (
        "Could not reach the AI service. Please check your internet connection."
    ),
    ErrorKind.TIMEOUT: "The AI service took too long to respond. Please try again.",
    ErrorKind.EMPTY_RESPONSE: "The AI service returned an empty answer. Please try again.",
    ErrorKind.UNCLASSIFIED: "Something went wrong while talking to the AI service.",
}


class AIRequestError(Exception):
    """A classified AI request failure.

    Attributes:
        kind: The ErrorKind.
        user_message: Fixed message for ``kind``, safe to show to users.
    """

    def __init__(self, kind: ErrorKind, user_message: str | None = None) -> None:
        self.kind = kind
        self.user_message = user_message or USER_MESSAGES[kind]
        super().__init__(self.user_message)


def _error_text(raw_error: BaseException | None) -> str:
    """Collect type names and messages along the exception chain."""
    parts: list[str] = []
    seen: set[int] = set()
    current: BaseException | None = raw_error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(type(current).__name__)
        parts.append(str(current))
        current = current.__cause__ or current.__context__
    return " ".join(parts)


def classify(message: str | None, raw_error: BaseException | None = None) -> ErrorKind:
    """Map a failure to an ErrorKind.

    Args:
        message: Failure text (may be empty).
        raw_error: The exception, if any. Its type name, text, and chained
            causes are matched too.

    Returns:
        The first matching ErrorKind, or UNCLASSIFIED.
    """
    haystack = f"{message or ''} {_error_text(raw_error)}".lower()
    for kind, phrases in CLASSIFICATION_RULES:
        if any(phrase in haystack for phrase in phrases):
            return kind
    return ErrorKind.UNCLASSIFIED


def user_message(kind: ErrorKind) -> str:
    """Return the fixed user-facing message for ``kind``."""
    return USER_MESSAGES[kind]
