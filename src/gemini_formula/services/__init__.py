"""Service layer for business logic.

This layer contains the core business logic and orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> GeminiService -> RequestQueue -> TextGenerator
                             -> ResponseCache -> ExpiringCacheStore
                             -> GeminiState  -> KeyValueStore

Usage:
    ```python
    from gemini_formula.services import GeminiService

    # Using factory method (recommended)
    service = GeminiService.create()

    # Or manual creation
    service = GeminiService(state=state, cache=cache, table=table, queue=queue)
    ```
"""

from .fingerprint import make_fingerprint
from .gemini_service import GeminiService, SetupResult
from .processing_table import ProcessingTable
from .request_queue import RequestQueue
from .response_cache import ResponseCache
from .retry import is_retryable_error, retry_with_backoff
from .state_service import GeminiState

__all__ = [
    "GeminiService",
    "GeminiState",
    "ProcessingTable",
    "RequestQueue",
    "ResponseCache",
    "SetupResult",
    "is_retryable_error",
    "make_fingerprint",
    "retry_with_backoff",
]
