"""Tests for moodjournal.ai.errors: failure classification.

The classifier is pure, so every case runs without network or mocks.
"""

from __future__ import annotations

import socket

import httpx
import pytest

from moodjournal.ai.errors import (
    USER_MESSAGES,
    AIRequestError,
    ErrorKind,
    classify,
    user_message,
)
from moodjournal.ai.transports import ProviderHTTPError

# =============================================================================
# Classification Rules
# =============================================================================


class TestClassify:
    """Test rule matching and rule order."""

    @pytest.mark.parametrize(
        "message",
        [
            "API key not valid. Please pass a valid API key.",
            "Missing api_key parameter",
            "GenerativeAI is not configured",
            "Invalid configuration for client",
        ],
    )
    def test_invalid_configuration(self, message):
        assert classify(message) is ErrorKind.INVALID_CONFIGURATION

    @pytest.mark.parametrize(
        "message",
        [
            "HTTP 429 RESOURCE_EXHAUSTED",
            "You exceeded your current quota",
            "Rate limit reached for requests",
            "Too Many Requests",
        ],
    )
    def test_quota_exceeded(self, message):
        assert classify(message) is ErrorKind.QUOTA_EXCEEDED

    @pytest.mark.parametrize(
        "message",
        [
            "Network is unreachable",
            "Failed to fetch",
            "Connection refused",
        ],
    )
    def test_network_error(self, message):
        assert classify(message) is ErrorKind.NETWORK_ERROR

    @pytest.mark.parametrize("message", ["Request timeout", "The read operation timed out"])
    def test_timeout(self, message):
        assert classify(message) is ErrorKind.TIMEOUT

    def test_unclassified(self):
        assert classify("HTTP 500 INTERNAL: something broke") is ErrorKind.UNCLASSIFIED

    def test_empty_message_is_unclassified(self):
        assert classify("") is ErrorKind.UNCLASSIFIED
        assert classify(None) is ErrorKind.UNCLASSIFIED

    def test_case_insensitive(self):
        assert classify("QUOTA EXCEEDED") is ErrorKind.QUOTA_EXCEEDED

    def test_configuration_rule_wins_over_quota(self):
        """Both phrases present: the earlier rule decides."""
        message = "API key has exceeded its quota (429)"
        assert classify(message) is ErrorKind.INVALID_CONFIGURATION

    def test_quota_rule_wins_over_network(self):
        assert classify("429 from upstream connection") is ErrorKind.QUOTA_EXCEEDED

    def test_deterministic(self):
        error = RuntimeError("Connection reset by peer")
        results = {classify(str(error), error) for _ in range(10)}
        assert results == {ErrorKind.NETWORK_ERROR}

    def test_never_returns_empty_response(self):
        assert classify("empty response") is not ErrorKind.EMPTY_RESPONSE


class TestClassifyRawError:
    """Test matching on exception types and chained causes."""

    def test_matches_nested_cause(self):
        try:
            try:
                raise OSError("Name resolution failed")
            except OSError as inner:
                raise RuntimeError("request failed") from inner
        except RuntimeError as outer:
            assert classify(str(outer), outer) is ErrorKind.NETWORK_ERROR

    def test_matches_exception_type_name(self):
        error = httpx.ReadTimeout("")
        assert classify(str(error), error) is ErrorKind.TIMEOUT

    def test_httpx_connect_error(self):
        error = httpx.ConnectError("[Errno 111] Connection refused")
        assert classify(str(error), error) is ErrorKind.NETWORK_ERROR

    def test_unresolvable_host(self):
        try:
            try:
                raise socket.gaierror(-2, "Name or service not known")
            except socket.gaierror as inner:
                raise httpx.ConnectError("[Errno -2] Name or service not known") from inner
        except httpx.ConnectError as error:
            assert classify(str(error), error) is ErrorKind.NETWORK_ERROR

    def test_unresolvable_host_macos(self):
        error = httpx.ConnectError("[Errno 8] nodename nor servname provided, or not known")
        assert classify(str(error), error) is ErrorKind.NETWORK_ERROR

    def test_connect_error_without_message(self):
        error = httpx.ConnectError("")
        assert classify(str(error), error) is ErrorKind.NETWORK_ERROR

    def test_server_disconnected(self):
        error = httpx.RemoteProtocolError("Server disconnected without sending a response.")
        assert classify(str(error), error) is ErrorKind.NETWORK_ERROR

    def test_connect_timeout_stays_timeout(self):
        error = httpx.ConnectTimeout("")
        assert classify(str(error), error) is ErrorKind.TIMEOUT

    def test_provider_http_error(self):
        error = ProviderHTTPError(429, "RESOURCE_EXHAUSTED", "Resource has been exhausted")
        assert classify(str(error), error) is ErrorKind.QUOTA_EXCEEDED

    def test_provider_rejected_key(self):
        error = ProviderHTTPError(400, "INVALID_ARGUMENT", "API key not valid.")
        assert classify(str(error), error) is ErrorKind.INVALID_CONFIGURATION


# =============================================================================
# User Messages
# =============================================================================


class TestUserMessages:
    """Test the kind-to-message mapping."""

    def test_every_kind_has_a_message(self):
        for kind in ErrorKind:
            assert user_message(kind)

    def test_messages_are_distinct(self):
        assert len(set(USER_MESSAGES.values())) == len(ErrorKind)

    def test_request_error_defaults_to_kind_message(self):
        error = AIRequestError(ErrorKind.TIMEOUT)
        assert error.kind is ErrorKind.TIMEOUT
        assert error.user_message == user_message(ErrorKind.TIMEOUT)
        assert str(error) == error.user_message
