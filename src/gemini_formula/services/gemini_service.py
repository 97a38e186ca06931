"""Gemini formula service: the entry point behind ``GEMINI(...)``.

A formula cell is re-evaluated on every recalculation and cannot wait for a
network response. Each call therefore reads state instead of blocking:

1. validate input and the configured API key
2. fingerprint the request
3. processing record exists -> report its status, error or response
4. response cache hit -> return the cached text
5. otherwise enqueue and return a provisional "Loading" string

Every failure is turned into a display string; nothing is raised to the
caller.
"""

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import redis

from gemini_formula.config import get_redis_client
from gemini_formula.entities import ProcessingRecord, QueuedRequest, RequestStatus
from gemini_formula.logging_config import log_error
from gemini_formula.models import RequestStats, SettingsView
from gemini_formula.protocols import CredentialValidator, ExpiringCacheStore, KeyValueStore, TextGenerator
from gemini_formula.services.fingerprint import make_fingerprint
from gemini_formula.services.processing_table import ProcessingTable
from gemini_formula.services.request_queue import RequestQueue, Scheduler, start_worker_thread
from gemini_formula.services.response_cache import ResponseCache
from gemini_formula.services.state_service import GeminiState

if TYPE_CHECKING:
    from gemini_formula.repositories import GeminiClient

logger = logging.getLogger(__name__)

PROMPT_REQUIRED = "⚠️ Error: Prompt is required"
INVALID_TEMPERATURE = "⚠️ Error: Temperature must be a number between 0 and 2"
API_KEY_MISSING = "⚠️ API key not set. Use the setup endpoint to configure your API key."
NO_RESPONSE_FOUND = "❌ Error: No response found"

MAX_TEMPERATURE = 2.0


@dataclass(frozen=True)
class SetupResult:
    """Outcome of the API key setup flow."""

    success: bool
    error: str | None = None


class GeminiService:
    """Entry point service wiring state, queue and cache together.

    Example:
        ```python
        service = GeminiService.create()
        service.setup_api_key("AIza...")
        service.submit_prompt("Explain gravity")  # "⏳ Loading... (#1 in queue, ~60s)"
        service.submit_prompt("Explain gravity")  # the generated text, once drained
        ```
    """

    def __init__(
        self,
        state: GeminiState,
        cache: ResponseCache,
        table: ProcessingTable,
        queue: RequestQueue,
        client: "GeminiClient | None" = None,
    ) -> None:
        """Initialize the service.

        Args:
            state: Durable state (API key, tier, settings, history).
            cache: Response cache.
            table: In-memory processing table.
            queue: Rate-limited request queue writing into ``table`` and ``cache``.
            client: HTTP client owned by this service, closed by close().
        """
        self._state = state
        self._cache = cache
        self._table = table
        self._queue = queue
        self._client = client

    @classmethod
    def create(
        cls,
        generator: TextGenerator | None = None,
        validator: CredentialValidator | None = None,
        state_store: KeyValueStore | None = None,
        cache_store: ExpiringCacheStore | None = None,
        redis_client: redis.Redis | None = None,
        scheduler: Scheduler = start_worker_thread,
        **queue_options: Any,
    ) -> "GeminiService":
        """Factory method to create GeminiService with defaults.

        Missing collaborators default to Redis-backed stores and the Gemini
        REST client.

        Args:
            generator: Text generator. If None, uses GeminiClient.
            validator: API key checker. If None, uses GeminiClient.
            state_store: Durable store. If None, uses RedisStateStore.
            cache_store: Expiring cache. If None, uses RedisExpiringCache.
            redis_client: Client shared by the default Redis stores.
            scheduler: How drains are started. Defaults to a daemon thread.
            **queue_options: Extra RequestQueue arguments (sleep, retry_*).

        Returns:
            Configured GeminiService
        """
        from gemini_formula.repositories import GeminiClient, RedisExpiringCache, RedisStateStore

        if (state_store is None or cache_store is None) and redis_client is None:
            redis_client = get_redis_client()
        if state_store is None:
            state_store = RedisStateStore.create(redis_client=redis_client)
        if cache_store is None:
            cache_store = RedisExpiringCache.create(redis_client=redis_client)

        client = GeminiClient.create(api_key_provider=lambda: state.api_key)
        state = GeminiState(store=state_store, validator=validator if validator is not None else client)

        cache = ResponseCache(store=cache_store)
        table = ProcessingTable()
        queue = RequestQueue(
            table=table,
            cache=cache,
            generator=generator if generator is not None else client,
            rate_limit=lambda: state.rate_limit,
            on_finished=state.add_to_history,
            scheduler=scheduler,
            **queue_options,
        )
        return cls(state=state, cache=cache, table=table, queue=queue, client=client)

    def submit_prompt(
        self,
        prompt: str | None,
        model: str | None = None,
        system_prompt: str | None = "",
        temperature: Any = 0.7,
    ) -> str:
        """Evaluate one ``GEMINI(prompt, model, systemPrompt, temperature)`` call.

        Args:
            prompt: The user prompt (required)
            model: Model name; empty uses the stored default
            system_prompt: Optional system instruction
            temperature: Sampling temperature in [0, 2]

        Returns:
            Generated text, a provisional status, or an error string
        """
        if prompt is None or not str(prompt).strip():
            return PROMPT_REQUIRED
        prompt = str(prompt)

        try:
            temperature_value = _parse_temperature(temperature)
            if temperature_value is None:
                return INVALID_TEMPERATURE

            if not self._state.api_key:
                return API_KEY_MISSING

            resolved_model = self._state.resolve_model(model)
            system = system_prompt or ""
            fingerprint = make_fingerprint(prompt, resolved_model, system, temperature_value)

            record = self._table.get(fingerprint)
            if record is not None:
                return self._describe(record)

            cached = self._cache.get(fingerprint)
            if cached is not None:
                return cached

            request = QueuedRequest(
                id=fingerprint,
                prompt=prompt,
                model=resolved_model,
                system_prompt=system,
                temperature=temperature_value,
            )
            position = self._queue.add(request)
            if position == 0:
                # Another caller enqueued the same request first
                current = self._table.get(fingerprint)
                if current is not None:
                    return self._describe(current)
                position = 1
            wait = self._queue.estimated_wait(position)
            return f"⏳ Loading... (#{position} in queue, ~{math.ceil(wait)}s)"

        except Exception as e:
            log_error(e, {"function": "GEMINI", "prompt": str(prompt)[:100]})
            return f"❌ Error: {e}"

    def fingerprint_for(
        self,
        prompt: str | None,
        model: str | None = None,
        system_prompt: str | None = "",
        temperature: Any = 0.7,
    ) -> str | None:
        """Fingerprint a call the way submit_prompt would, None for invalid input."""
        if prompt is None or not str(prompt).strip():
            return None
        temperature_value = _parse_temperature(temperature)
        if temperature_value is None:
            return None
        resolved_model = self._state.resolve_model(model)
        return make_fingerprint(str(prompt), resolved_model, system_prompt or "", temperature_value)

    def _describe(self, record: ProcessingRecord) -> str:
        if record.status is RequestStatus.ERROR:
            return f"❌ Error: {record.error}"
        if record.status is RequestStatus.COMPLETE:
            if not record.response:
                log_error(
                    RuntimeError("Complete record has no response"),
                    {"function": "GEMINI", "id": record.id, "prompt": record.prompt[:100]},
                    level=logging.CRITICAL,
                )
                return NO_RESPONSE_FOUND
            return record.response
        return f"⏳ Request in progress... (Status: {record.status.value})"

    # Credentials

    def set_api_key(self, api_key: str | None) -> bool:
        return self._state.set_api_key(api_key)

    def validate_api_key(self, api_key: str | None) -> bool:
        return self._state.validate_api_key(api_key)

    def setup_api_key(self, api_key: str | None) -> SetupResult:
        """Store an API key, validate it, and roll it back if rejected."""
        api_key = (api_key or "").strip()
        try:
            if not self._state.set_api_key(api_key):
                return SetupResult(success=False, error="API key is required")
            if not self._state.validate_api_key(api_key):
                raise ValueError("Invalid API key")
            return SetupResult(success=True)
        except Exception as e:
            log_error(e, {"function": "setup_api_key"})
            self._state.clear_api_key()
            return SetupResult(success=False, error=str(e))

    # Stats and settings

    def get_stats(self) -> RequestStats:
        return self._state.get_stats()

    def get_settings(self) -> SettingsView:
        return self._state.get_settings()

    def update_settings(
        self,
        experimental: bool | None = None,
        show_legacy: bool | None = None,
        default_model: str | None = None,
    ) -> SettingsView:
        return self._state.update_settings(
            experimental=experimental,
            show_legacy=show_legacy,
            default_model=default_model,
        )

    def reset(self) -> None:
        """Reset the durable state to defaults."""
        self._state.reset_state()

    def close(self) -> None:
        """Release the HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            self._client.close()

    def is_healthy(self) -> bool:
        return self._state.health_check()

    def get_record(self, fingerprint: str) -> ProcessingRecord | None:
        return self._table.get(fingerprint)

    def get_queue_stats(self) -> dict:
        """Queue and cache counters for the dashboard."""
        return {
            "pending": self._queue.pending_count,
            "draining": self._queue.is_draining,
            "tracked_requests": len(self._table),
            "tier": self._state.tier.value,
            "requests_per_minute": self._state.rate_limit.requests_per_minute,
            "cache": self._cache.get_stats(),
        }

    @property
    def client(self) -> "GeminiClient | None":
        """Get the owned HTTP client (for testing)."""
        return self._client

    @property
    def state(self) -> GeminiState:
        """Get the durable state (for testing)."""
        return self._state

    @property
    def cache(self) -> ResponseCache:
        """Get the response cache (for testing)."""
        return self._cache

    @property
    def table(self) -> ProcessingTable:
        """Get the processing table (for testing)."""
        return self._table

    @property
    def queue(self) -> RequestQueue:
        """Get the request queue (for testing)."""
        return self._queue


def _parse_temperature(value: Any) -> float | None:
    if value is None or value == "":
        return 0.7
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or not 0.0 <= number <= MAX_TEMPERATURE:
        return None
    return number
