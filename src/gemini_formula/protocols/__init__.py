"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Swapping Redis for another key-value or cache service
- Unit testing with fake generators and in-memory stores
- Clear separation of concerns

Usage:
    ```python
    from gemini_formula.protocols import ExpiringCacheStore, TextGenerator

    store: ExpiringCacheStore = RedisExpiringCache()  # works
    generator: TextGenerator = GeminiClient.create(lambda: api_key)  # works
    ```
"""

from .cache_store import ExpiringCacheStore
from .key_value_store import KeyValueStore
from .text_generator import CredentialValidator, TextGenerator

__all__ = [
    "CredentialValidator",
    "ExpiringCacheStore",
    "KeyValueStore",
    "TextGenerator",
]
