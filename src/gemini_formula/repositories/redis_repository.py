"""Redis implementations of KeyValueStore and ExpiringCacheStore.

The durable state snapshot and the response cache share one Redis client
(created with ``decode_responses=True``) but live under different keys.
"""

import logging

import redis

from gemini_formula.config import get_redis_client, settings

logger = logging.getLogger(__name__)


class RedisStateStore:
    """Redis implementation of the durable KeyValueStore.

    This class satisfies the KeyValueStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize the state store.

        Args:
            redis_client: Redis client instance. If None, creates default.
        """
        self._client = redis_client if redis_client is not None else get_redis_client()

    @classmethod
    def create(cls, redis_client: redis.Redis | None = None) -> "RedisStateStore":
        """Factory method to create RedisStateStore with defaults."""
        return cls(redis_client=redis_client)

    def get(self, key: str) -> str | None:
        value = self._client.get(key)
        return _as_text(value)

    def set(self, key: str, value: str) -> None:
        self._client.set(key, value)

    def delete(self, key: str) -> bool:
        result: int = self._client.delete(key)  # type: ignore[assignment]
        return result > 0

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning("Redis health check failed: %s", e)
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client


class RedisExpiringCache:
    """Redis implementation of ExpiringCacheStore.

    Every key is namespaced with a prefix and written with ``SET ... EX``.
    Multi-key writes go through one pipeline so chunks share a TTL and land
    together.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        prefix: str | None = None,
    ) -> None:
        """Initialize the cache store.

        Args:
            redis_client: Redis client instance. If None, creates default.
            prefix: Namespace prepended to every key. Defaults to settings.
        """
        self._client = redis_client if redis_client is not None else get_redis_client()
        self._prefix = settings.cache_prefix if prefix is None else prefix

    @classmethod
    def create(
        cls,
        redis_client: redis.Redis | None = None,
        prefix: str | None = None,
    ) -> "RedisExpiringCache":
        """Factory method to create RedisExpiringCache with defaults.

        Args:
            redis_client: Redis client. If None, uses settings.
            prefix: Key namespace. If None, uses settings.

        Returns:
            Configured RedisExpiringCache
        """
        return cls(redis_client=redis_client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> str | None:
        return _as_text(self._client.get(self._key(key)))

    def get_many(self, keys: list[str]) -> dict[str, str]:
        if not keys:
            return {}
        values = self._client.mget([self._key(key) for key in keys])
        found = {}
        for key, value in zip(keys, values):
            text = _as_text(value)
            if text is not None:
                found[key] = text
        return found

    def put(self, key: str, value: str, ttl: int) -> None:
        self._client.set(self._key(key), value, ex=ttl)

    def put_many(self, items: dict[str, str], ttl: int) -> None:
        if not items:
            return
        pipe = self._client.pipeline()
        for key, value in items.items():
            pipe.set(self._key(key), value, ex=ttl)
        pipe.execute()

    def delete(self, key: str) -> bool:
        result: int = self._client.delete(self._key(key))  # type: ignore[assignment]
        return result > 0

    @property
    def prefix(self) -> str:
        """Get the key namespace."""
        return self._prefix


def _as_text(value: object) -> str | None:
    # Clients created without decode_responses hand back bytes
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
