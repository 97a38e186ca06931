import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


class Tier(str, Enum):
    """Rate-limit tier of the configured API key."""

    FREE = "FREE"
    PAID = "PAID"


@dataclass(frozen=True)
class RateLimitProfile:
    """Quota and timeout profile for one tier."""

    requests_per_minute: int
    requests_per_day: int
    timeout_seconds: float
    batch_delay_seconds: float


# Known Gemini models (display metadata for the settings surface)
MODELS: dict[str, dict[str, object]] = {
    "models/gemini-2.0-flash": {"name": "Gemini 2.0 Flash", "experimental": False, "default": True},
    "models/gemini-2.0-flash-lite": {"name": "Gemini 2.0 Flash Lite", "experimental": True},
    "models/gemini-1.5-pro": {"name": "Gemini 1.5 Pro", "experimental": False},
}

LEGACY_MODEL_MAPPING: dict[str, str] = {
    "gemini-pro": "models/gemini-2.0-flash",
    "gemini-pro-flash": "models/gemini-2.0-flash",
}


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Durable state
    state_key: str = os.getenv("GEMINI_STATE_KEY", "geminiState")

    # Response cache
    cache_prefix: str = os.getenv("GEMINI_CACHE_PREFIX", "geminiResponse_")
    cache_ttl: int = int(os.getenv("GEMINI_CACHE_TTL", "21600"))  # 6 hours
    cache_chunk_size: int = int(os.getenv("GEMINI_CACHE_CHUNK_SIZE", "100000"))

    # Gemini API
    gemini_base_url: str = os.getenv(
        "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
    )
    default_model: str = os.getenv("GEMINI_DEFAULT_MODEL", "models/gemini-2.0-flash")

    # Retry
    retry_max_attempts: int = int(os.getenv("GEMINI_RETRY_MAX_ATTEMPTS", "3"))
    retry_base_delay: float = float(os.getenv("GEMINI_RETRY_BASE_DELAY", "1.0"))
    retry_max_delay: float = float(os.getenv("GEMINI_RETRY_MAX_DELAY", "10.0"))

    # Queue (pause between batches, one quota window)
    batch_delay: float = float(os.getenv("GEMINI_BATCH_DELAY", "60.0"))

    # Tiers
    free_requests_per_minute: int = int(os.getenv("GEMINI_FREE_REQUESTS_PER_MINUTE", "15"))
    free_requests_per_day: int = int(os.getenv("GEMINI_FREE_REQUESTS_PER_DAY", "60"))
    free_timeout: float = float(os.getenv("GEMINI_FREE_TIMEOUT", "30"))
    paid_requests_per_minute: int = int(os.getenv("GEMINI_PAID_REQUESTS_PER_MINUTE", "60"))
    paid_requests_per_day: int = int(os.getenv("GEMINI_PAID_REQUESTS_PER_DAY", "1000"))
    paid_timeout: float = float(os.getenv("GEMINI_PAID_TIMEOUT", "60"))

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format: str = os.getenv("LOG_FORMAT", "text").lower()

    def rate_limit(self, tier: Tier) -> RateLimitProfile:
        """Get the rate-limit profile for a tier.

        Args:
            tier: The tier of the configured API key

        Returns:
            The matching RateLimitProfile
        """
        if tier is Tier.PAID:
            return RateLimitProfile(
                requests_per_minute=self.paid_requests_per_minute,
                requests_per_day=self.paid_requests_per_day,
                timeout_seconds=self.paid_timeout,
                batch_delay_seconds=self.batch_delay,
            )
        return RateLimitProfile(
            requests_per_minute=self.free_requests_per_minute,
            requests_per_day=self.free_requests_per_day,
            timeout_seconds=self.free_timeout,
            batch_delay_seconds=self.batch_delay,
        )

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_chunk_size <= 0:
            raise ValueError("GEMINI_CACHE_CHUNK_SIZE must be positive")

        if self.retry_max_attempts < 1:
            raise ValueError("GEMINI_RETRY_MAX_ATTEMPTS must be at least 1")

        if self.free_requests_per_minute < 1 or self.paid_requests_per_minute < 1:
            raise ValueError("Requests per minute must be at least 1 for every tier")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"LOG_FORMAT must be 'text' or 'json', got {self.log_format!r}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
