"""Content-addressed response cache with chunked storage.

Values are stored behind an envelope:
- ``{"type": "single", "data": ...}`` for values up to ``chunk_size``
- ``{"type": "chunked", "keys": [...], "length": N}`` for larger ones,
  each chunk under ``f"{key}_{i}"``

Chunks are written before the envelope, so a reader never sees an envelope
whose chunks were not written. A missing chunk turns the whole entry into a
miss; partial values are never returned, and the broken envelope is
dropped so the next lookup does not parse it again.
"""

import logging

from pydantic import ValidationError

from gemini_formula.config import settings
from gemini_formula.models import ChunkedEnvelope, SingleEnvelope, envelope_adapter
from gemini_formula.protocols import ExpiringCacheStore

logger = logging.getLogger(__name__)


class ResponseCache:
    """Response cache over an ExpiringCacheStore.

    Example:
        ```python
        cache = ResponseCache(store=RedisExpiringCache.create())
        cache.put(fingerprint, text)
        cache.get(fingerprint)  # -> text
        ```
    """

    def __init__(
        self,
        store: ExpiringCacheStore,
        ttl: int | None = None,
        chunk_size: int | None = None,
    ) -> None:
        """Initialize the response cache.

        Args:
            store: Expiring key-value backend (required).
            ttl: Time-to-live for envelope and chunks in seconds. Defaults to settings.
            chunk_size: Largest value stored inline, also the chunk length. Defaults to settings.
        """
        self._store = store
        self._ttl = ttl or settings.cache_ttl
        self._chunk_size = chunk_size or settings.cache_chunk_size
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> str | None:
        """Look up a cached response.

        Args:
            key: Request fingerprint

        Returns:
            The exact stored value, or None on a miss
        """
        value = self._load(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def _load(self, key: str) -> str | None:
        raw = self._store.get(key)
        if raw is None:
            return None

        try:
            envelope = envelope_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding malformed cache envelope %s: %s", key, e.errors()[:1])
            self.delete(key)
            return None

        if isinstance(envelope, SingleEnvelope):
            return envelope.data

        if len(envelope.keys) != envelope.length:
            logger.warning(
                "Chunked cache envelope %s lists %d keys but declares %d",
                key,
                len(envelope.keys),
                envelope.length,
            )
            self.delete(key)
            return None

        chunks = self._store.get_many(envelope.keys)
        if len(chunks) != envelope.length or any(k not in chunks for k in envelope.keys):
            logger.info("Cache entry %s is missing chunks, treating as miss", key)
            self.delete(key)
            return None
        return "".join(chunks[k] for k in envelope.keys)

    def put(self, key: str, value: str) -> None:
        """Store a response.

        Args:
            key: Request fingerprint
            value: Response text
        """
        if len(value) <= self._chunk_size:
            envelope: SingleEnvelope | ChunkedEnvelope = SingleEnvelope(data=value)
        else:
            chunks = {
                f"{key}_{i}": value[offset : offset + self._chunk_size]
                for i, offset in enumerate(range(0, len(value), self._chunk_size))
            }
            self._store.put_many(chunks, self._ttl)
            envelope = ChunkedEnvelope(keys=list(chunks), length=len(chunks))

        self._store.put(key, envelope.model_dump_json(), self._ttl)

    def delete(self, key: str) -> bool:
        """Delete a cached response envelope.

        Orphaned chunks expire with their TTL.
        """
        return self._store.delete(key)

    def hit_rate(self) -> float:
        """Return the hit rate since this cache was created."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with hit/miss counters and settings
        """
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate(),
            "ttl_seconds": self._ttl,
            "chunk_size": self._chunk_size,
        }

    @property
    def store(self) -> ExpiringCacheStore:
        """Get the underlying store (for testing)."""
        return self._store

    @property
    def chunk_size(self) -> int:
        """Get the chunk size."""
        return self._chunk_size
