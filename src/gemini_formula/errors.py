"""Exception hierarchy for the Gemini formula service."""


class GeminiFormulaError(Exception):
    """Base class for all service errors."""


class GeminiAPIError(GeminiFormulaError):
    """Raised when the Gemini API call fails or returns unusable output.

    Attributes:
        code: HTTP status code of the failed call, None for transport failures
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class EmptyResponseError(GeminiAPIError):
    """Raised when the API answered successfully but produced no text."""

    def __init__(self, message: str = "Empty response from API") -> None:
        super().__init__(message)


class InvalidTransitionError(GeminiFormulaError):
    """Raised when a processing record would move backwards or leave a terminal status."""


class StateStoreError(GeminiFormulaError):
    """Raised when the durable state snapshot cannot be written."""
