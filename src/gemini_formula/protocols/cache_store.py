"""Expiring cache storage protocol.

Defines the interface for the external cache service that holds response
envelopes and chunks. Every key carries its own TTL.

Implementations can include:
- Redis (default)
- Memcached
- Any string-to-string store with per-key expiry and multi-get
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ExpiringCacheStore(Protocol):
    """Protocol for string caches with per-key TTL."""

    def get(self, key: str) -> str | None:
        """Read one key.

        Args:
            key: The cache key

        Returns:
            The cached string, or None if missing or expired
        """
        ...

    def get_many(self, keys: list[str]) -> dict[str, str]:
        """Read several keys in one round trip.

        Args:
            keys: The cache keys

        Returns:
            Mapping of every key that was found to its value
        """
        ...

    def put(self, key: str, value: str, ttl: int) -> None:
        """Write one key.

        Args:
            key: The cache key
            value: The value to store
            ttl: Time-to-live in seconds
        """
        ...

    def put_many(self, items: dict[str, str], ttl: int) -> None:
        """Write several keys together with a shared TTL.

        Args:
            items: Mapping of key to value
            ttl: Time-to-live in seconds
        """
        ...

    def delete(self, key: str) -> bool:
        """Delete one key.

        Args:
            key: The cache key

        Returns:
            True if deleted, False otherwise
        """
        ...
