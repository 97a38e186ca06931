"""Gemini REST client.

Implements the TextGenerator and CredentialValidator protocols on top of
the Generative Language API:
- POST {base_url}/{model}:generateContent for text generation
- GET {base_url}/models for API key validation

Failures are raised as GeminiAPIError carrying the HTTP status in ``code``
so the retry policy can classify them. Timeouts carry no code but say
"timeout" in their message.
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from gemini_formula.config import settings
from gemini_formula.errors import EmptyResponseError, GeminiAPIError

logger = logging.getLogger(__name__)

_MAX_PROVIDER_MESSAGE_CHARS = 180


class GeminiClient:
    """Synchronous Gemini API client.

    The API key is read through ``api_key_provider`` on every call, so a
    key stored after construction is picked up without rebuilding the
    client.

    Example:
        ```python
        client = GeminiClient.create(api_key_provider=lambda: "AIza...")
        text = client.generate("Explain gravity", "models/gemini-2.0-flash", "", 0.7)
        ```
    """

    def __init__(
        self,
        api_key_provider: Callable[[], str | None],
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the Gemini client.

        Args:
            api_key_provider: Callable returning the current API key.
            base_url: API base URL. Defaults to settings.gemini_base_url.
            timeout: Default request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self._api_key_provider = api_key_provider
        self._base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-load the HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._timeout,
                transport=self._transport,
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            )
        return self._client

    @classmethod
    def create(
        cls,
        api_key_provider: Callable[[], str | None],
        base_url: str | None = None,
    ) -> "GeminiClient":
        """Factory method to create GeminiClient with defaults.

        Args:
            api_key_provider: Callable returning the current API key.
            base_url: API base URL. If None, uses settings.

        Returns:
            Configured GeminiClient
        """
        return cls(api_key_provider=api_key_provider, base_url=base_url)

    def generate(
        self,
        prompt: str,
        model: str,
        system_prompt: str,
        temperature: float,
        timeout: float | None = None,
    ) -> str:
        """Generate text with a Gemini model.

        Args:
            prompt: The user prompt
            model: Model identifier with the "models/" prefix
            system_prompt: System instruction, "" for none
            temperature: Sampling temperature
            timeout: Per-call timeout in seconds. Defaults to the client timeout.

        Returns:
            The generated text

        Raises:
            GeminiAPIError: On HTTP failure, timeout or malformed payload
            EmptyResponseError: If the model produced no text
        """
        api_key = self._api_key_provider()
        if not api_key:
            raise GeminiAPIError("API key not set", code=401)

        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature},
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        request_timeout = timeout if timeout is not None else self._timeout
        url = f"{self._base_url}/{model}:generateContent"
        try:
            response = self.client.post(
                url,
                json=payload,
                headers={"x-goog-api-key": api_key},
                timeout=request_timeout,
            )
        except httpx.TimeoutException as e:
            raise GeminiAPIError(f"Gemini request timeout after {request_timeout:g}s") from e
        except httpx.HTTPError as e:
            raise GeminiAPIError(f"Gemini API transport error: {e}") from e

        if response.status_code != 200:
            detail = _extract_error_message(response)
            raise GeminiAPIError(
                f"Gemini API error (HTTP {response.status_code}): {detail}",
                code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GeminiAPIError("Malformed response from Gemini API") from e

        return _extract_text(data)

    def validate_api_key(self, api_key: str, timeout: float | None = None) -> bool:
        """Check an API key by listing models.

        Args:
            api_key: The key to check
            timeout: Request timeout in seconds

        Returns:
            True if the models endpoint answered HTTP 200, False otherwise
        """
        if not api_key:
            return False
        try:
            response = self.client.get(
                f"{self._base_url}/models",
                headers={"x-goog-api-key": api_key},
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.HTTPError as e:
            logger.error("API key validation failed: %s", e)
            return False
        return response.status_code == 200

    def close(self) -> None:
        """Close the HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            self._client.close()
            self._client = None


def _extract_text(data: Any) -> str:
    if not isinstance(data, dict):
        raise GeminiAPIError("Malformed response from Gemini API")

    candidates = data.get("candidates")
    if not candidates:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise GeminiAPIError(f"Prompt blocked by Gemini: {block_reason}")
        raise EmptyResponseError()

    content = candidates[0].get("content") or {}
    parts = content.get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    if not text:
        raise EmptyResponseError()
    return text


def _extract_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return _short_message(response.text) or response.reason_phrase

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return _short_message(error["message"])
    return _short_message(response.text) or response.reason_phrase


def _short_message(text: str) -> str:
    compact = " ".join(text.split())
    if len(compact) <= _MAX_PROVIDER_MESSAGE_CHARS:
        return compact
    return f"{compact[: _MAX_PROVIDER_MESSAGE_CHARS - 3]}..."
