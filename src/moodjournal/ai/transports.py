"""Access-path transports for the Gemini service.

Each transport performs exactly one content-generation call for a given
API version and model id and returns the completion text ("" when the
provider answered without text). Transports do not retry and do not
classify; failures propagate to the cascade.

- ``SdkTransport`` goes through the google-genai client library.
- ``RestTransport`` posts to the generativelanguage HTTP endpoint with httpx.

This module and nothing else imports google-genai.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from moodjournal.utils.logging import get_logger

logger = get_logger(__name__)

# Maximum provider message length kept in error text
MAX_ERROR_MESSAGE_LENGTH = 500


class Transport(Protocol):
    """One access path to the provider."""

    def generate(self, prompt: str, api_version: str, model_id: str) -> str: ...


class ProviderHTTPError(Exception):
    """The provider answered with an error.

    The message carries the HTTP status, the provider status string and the
    provider's own message. It never carries the request URL or the key.

    Attributes:
        status_code: HTTP status code, if known.
        provider_status: Provider status string (e.g. "RESOURCE_EXHAUSTED").
        provider_message: Provider error message, truncated.
    """

    def __init__(
        self,
        status_code: int | None,
        provider_status: str | None = None,
        provider_message: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.provider_status = provider_status
        self.provider_message = _truncate(provider_message or "")
        parts = [f"HTTP {status_code}" if status_code is not None else "HTTP error"]
        if provider_status:
            parts.append(provider_status)
        message = " ".join(parts)
        if self.provider_message:
            message = f"{message}: {self.provider_message}"
        super().__init__(message)


class ProviderResponseError(Exception):
    """The provider answered 2xx with a body that is not JSON."""

    pass


def _truncate(text: str) -> str:
    if len(text) > MAX_ERROR_MESSAGE_LENGTH:
        return text[:MAX_ERROR_MESSAGE_LENGTH] + "..."
    return text


def extract_candidate_text(body: Any) -> str:
    """Pull completion text out of a ``generateContent`` response body.

    Joins the text parts of the first candidate. Anything missing or
    malformed yields "".
    """
    if not isinstance(body, dict):
        return ""
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, dict):
        return ""
    content = first.get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    return "".join(texts)


# =============================================================================
# REST
# =============================================================================


class RestTransport:
    """Direct HTTP access path.

    Calls ``POST {base_url}/{api_version}/models/{model_id}:{method}?key=...``.

    Example:
        >>> transport = RestTransport(api_key="...")
        >>> transport.generate("Hello", "v1beta", "gemini-1.5-flash")
        'Hi there!'
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com",
        method: str = "generateContent",
        timeout: float = 60.0,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.method = method
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def build_url(self, api_version: str, model_id: str) -> str:
        """Endpoint URL without the key."""
        return f"{self.base_url}/{api_version}/models/{model_id}:{self.method}"

    def build_payload(self, prompt: str) -> dict[str, Any]:
        payload: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        generation_config: dict[str, Any] = {}
        if self.temperature is not None:
            generation_config["temperature"] = self.temperature
        if self.max_output_tokens is not None:
            generation_config["maxOutputTokens"] = self.max_output_tokens
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    def generate(self, prompt: str, api_version: str, model_id: str) -> str:
        """Send one request and return the completion text.

        Raises:
            ProviderHTTPError: On a 4xx/5xx answer.
            ProviderResponseError: On a 2xx answer that is not JSON.
            httpx.HTTPError: On transport failures (connect, timeout, ...).
        """
        url = self.build_url(api_version, model_id)
        logger.debug(f"POST {url}")

        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                url,
                params={"key": self._api_key},
                json=self.build_payload(prompt),
            )

        if response.status_code >= 400:
            self._raise_for_error(response)

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderResponseError(
                f"Malformed response body (HTTP {response.status_code})"
            ) from e

        return extract_candidate_text(body)

    def _raise_for_error(self, response: httpx.Response) -> None:
        """Map an error answer to ProviderHTTPError."""
        provider_status = None
        provider_message = None
        try:
            error = response.json().get("error", {})
            if isinstance(error, dict):
                provider_status = error.get("status")
                provider_message = error.get("message")
        except (ValueError, AttributeError):
            provider_message = response.text

        raise ProviderHTTPError(
            response.status_code,
            provider_status=provider_status,
            provider_message=provider_message,
        )


# =============================================================================
# SDK
# =============================================================================


class SdkTransport:
    """Client-library access path (google-genai).

    One ``genai.Client`` per API version, created up front. Construction
    fails if the library rejects the configuration; callers treat that as
    "library path unavailable".
    """

    def __init__(
        self,
        api_key: str,
        api_versions: list[str],
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> None:
        self._api_key = api_key
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._clients: dict[str, Any] = {}
        for version in api_versions:
            self._clients[version] = self._create_client(version)

    def _create_client(self, api_version: str) -> Any:
        return genai.Client(
            api_key=self._api_key,
            http_options=genai_types.HttpOptions(api_version=api_version),
        )

    def _get_client(self, api_version: str) -> Any:
        client = self._clients.get(api_version)
        if client is None:
            client = self._create_client(api_version)
            self._clients[api_version] = client
        return client

    def _generation_config(self) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )

    def generate(self, prompt: str, api_version: str, model_id: str) -> str:
        """Send one request through the library and return the completion text.

        Raises:
            ProviderHTTPError: When the library reports a provider error.
            Exception: Library transport failures propagate unchanged.
        """
        client = self._get_client(api_version)
        try:
            response = client.models.generate_content(
                model=model_id,
                contents=prompt,
                config=self._generation_config(),
            )
        except genai_errors.APIError as e:
            raise ProviderHTTPError(
                getattr(e, "code", None),
                provider_status=getattr(e, "status", None),
                provider_message=getattr(e, "message", None) or str(e),
            ) from e

        text = getattr(response, "text", None)
        return text if isinstance(text, str) else ""
