"""Repository layer for data access.

This layer abstracts external dependencies (Redis, the Gemini REST API)
behind protocol-based interfaces. This enables:
- Swapping the cache or state backend without touching services
- Unit testing with fakeredis and fake generators
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from gemini_formula.protocols import ExpiringCacheStore, KeyValueStore, TextGenerator

from .gemini_client import GeminiClient
from .redis_repository import RedisExpiringCache, RedisStateStore

__all__ = [
    "ExpiringCacheStore",
    "KeyValueStore",
    "TextGenerator",
    "GeminiClient",
    "RedisExpiringCache",
    "RedisStateStore",
]
