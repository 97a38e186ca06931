"""Upstream text generation protocol.

The generation API is treated as an opaque call. Failures carry a ``code``
attribute (HTTP status) that drives retry classification.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextGenerator(Protocol):
    """Protocol for text-generation backends."""

    def generate(
        self,
        prompt: str,
        model: str,
        system_prompt: str,
        temperature: float,
        timeout: float | None = None,
    ) -> str:
        """Generate text for a prompt.

        Args:
            prompt: The user prompt
            model: Model identifier (e.g. "models/gemini-2.0-flash")
            system_prompt: Optional system instruction, "" for none
            temperature: Sampling temperature
            timeout: Per-call network timeout in seconds

        Returns:
            The generated text

        Raises:
            GeminiAPIError: If the call fails
        """
        ...


@runtime_checkable
class CredentialValidator(Protocol):
    """Protocol for checking an API key against the upstream service."""

    def validate_api_key(self, api_key: str, timeout: float | None = None) -> bool:
        """Check whether an API key is accepted.

        Args:
            api_key: The key to check
            timeout: Request timeout in seconds

        Returns:
            True if the models listing answered HTTP 200
        """
        ...
