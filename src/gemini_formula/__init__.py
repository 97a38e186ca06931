"""Gemini Formula - rate-limited, cached Gemini calls for spreadsheet formulas.

A formula cell is re-evaluated on every recalculation and cannot wait for a
network response. This package turns that repeatedly re-invoked call site
into a deduplicated job system: requests are fingerprinted, queued, drained
in rate-limited batches with retry and backoff, and their responses cached.

Layers:
    - protocols: Interface contracts (KeyValueStore, ExpiringCacheStore, TextGenerator)
    - repositories: Redis stores and the Gemini REST client
    - services: Fingerprint, cache, processing table, queue, retry, state, entry point
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from gemini_formula.services import GeminiService

    service = GeminiService.create()
    service.submit_prompt("Explain gravity")
    ```

For HTTP API:
    ```python
    from gemini_formula.api.app import app
    ```
"""

from gemini_formula.config import get_redis_client, settings
from gemini_formula.entities import ProcessingRecord, QueuedRequest, RequestStatus
from gemini_formula.handlers import GeminiHandler
from gemini_formula.protocols import ExpiringCacheStore, KeyValueStore, TextGenerator
from gemini_formula.repositories import GeminiClient, RedisExpiringCache, RedisStateStore
from gemini_formula.services import GeminiService, GeminiState, ResponseCache

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "ExpiringCacheStore",
    "KeyValueStore",
    "TextGenerator",
    # Services (business logic)
    "GeminiService",
    "GeminiState",
    "ResponseCache",
    # Handlers (HTTP)
    "GeminiHandler",
    # Repositories (data access)
    "GeminiClient",
    "RedisExpiringCache",
    "RedisStateStore",
    # Entities (domain models)
    "ProcessingRecord",
    "QueuedRequest",
    "RequestStatus",
]
