"""Durable state service.

Owns the DurableStateSnapshot: API key, validated tier, settings and the
bounded history log. The snapshot is loaded once on construction, merged
field by field over defaults, and rewritten in full on every mutation.
Concurrent processes writing the same key are last-writer-wins.
"""

import json
import logging
import threading
from typing import Any

import redis
from pydantic import ValidationError

from gemini_formula.config import LEGACY_MODEL_MAPPING, MODELS, RateLimitProfile, Settings, Tier, settings
from gemini_formula.entities import ProcessingRecord
from gemini_formula.errors import StateStoreError
from gemini_formula.models import (
    HISTORY_LIMIT,
    DurableStateSnapshot,
    HistoryEntry,
    ModelInfo,
    RequestStats,
    SettingsView,
    now_ms,
)
from gemini_formula.protocols import CredentialValidator, KeyValueStore

logger = logging.getLogger(__name__)


class GeminiState:
    """Durable state of the service, persisted through a KeyValueStore.

    Example:
        ```python
        state = GeminiState(store=RedisStateStore.create(), validator=client)
        state.set_api_key("AIza...")
        state.get_stats().total_requests
        ```
    """

    def __init__(
        self,
        store: KeyValueStore,
        validator: CredentialValidator | None = None,
        state_key: str | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        """Initialize and load the state.

        Args:
            store: Durable key-value store (required).
            validator: Upstream API key checker. Without one, validation always fails.
            state_key: Key of the snapshot blob. Defaults to settings.
            app_settings: Settings providing tier profiles. Defaults to the global settings.
        """
        self._store = store
        self._validator = validator
        self._settings = app_settings or settings
        self._state_key = state_key or self._settings.state_key
        self._lock = threading.RLock()
        self._snapshot = self._load()

    def _load(self) -> DurableStateSnapshot:
        try:
            raw = self._store.get(self._state_key)
        except redis.RedisError as e:
            logger.error("Failed to load state: %s", e)
            return DurableStateSnapshot()
        if not raw:
            return DurableStateSnapshot()

        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Failed to load state: %s", e)
            return DurableStateSnapshot()
        if not isinstance(decoded, dict):
            logger.error("Failed to load state: expected an object, got %s", type(decoded).__name__)
            return DurableStateSnapshot()

        return merge_over_defaults(decoded)

    def save(self) -> None:
        """Write the whole snapshot back to the store.

        Raises:
            StateStoreError: If the store rejects the write
        """
        with self._lock:
            blob = self._snapshot.model_dump_json(by_alias=True)
        try:
            self._store.set(self._state_key, blob)
        except redis.RedisError as e:
            logger.error("Failed to save state: %s", e)
            raise StateStoreError(f"Failed to save state: {e}") from e

    def health_check(self) -> bool:
        """Check if the durable store is reachable."""
        return self._store.health_check()

    # Credentials

    @property
    def api_key(self) -> str | None:
        return self._snapshot.api_key

    def set_api_key(self, api_key: str | None) -> bool:
        """Store an API key without validating it.

        Returns:
            False for an empty key, True once stored
        """
        if not api_key or not api_key.strip():
            return False
        with self._lock:
            self._snapshot.api_key = api_key.strip()
            self._snapshot.api_key_set = True
            self._snapshot.last_key_validation = now_ms()
        self.save()
        return True

    def clear_api_key(self) -> None:
        with self._lock:
            self._snapshot.api_key = None
            self._snapshot.api_key_set = False
        self.save()

    def validate_api_key(self, api_key: str | None) -> bool:
        """Validate an API key against the models listing endpoint.

        Any HTTP 200 upgrades the tier to PAID. The listing carries no quota
        signal, so this is a placeholder policy rather than a real tier check.

        Returns:
            True if the key was accepted
        """
        api_key = (api_key or "").strip()
        if not api_key or self._validator is None:
            return False
        if not self._validator.validate_api_key(api_key, timeout=self.rate_limit.timeout_seconds):
            return False
        with self._lock:
            self._snapshot.tier = Tier.PAID
            self._snapshot.last_key_validation = now_ms()
        self.save()
        return True

    # Tier

    @property
    def tier(self) -> Tier:
        return self._snapshot.tier

    @property
    def rate_limit(self) -> RateLimitProfile:
        """Rate-limit profile of the current tier."""
        return self._settings.rate_limit(self._snapshot.tier)

    # History and statistics

    def add_to_history(self, record: ProcessingRecord) -> HistoryEntry:
        """Append a finished record to the history log.

        The log keeps the newest HISTORY_LIMIT entries.
        """
        entry = HistoryEntry(
            id=record.id,
            status=record.status.value,
            model=record.model,
            start_time=record.start_time,
            end_time=record.end_time,
            error=record.error,
        )
        with self._lock:
            history = [*self._snapshot.history, entry]
            self._snapshot.history = history[-HISTORY_LIMIT:]
        self.save()
        return entry

    @property
    def history(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._snapshot.history)

    def get_stats(self) -> RequestStats:
        """Aggregate counts and mean latency over the history log."""
        history = self.history
        completed = [h for h in history if h.status == "complete"]
        timed = [h for h in completed if h.start_time and h.end_time]
        average = 0.0
        if timed:
            average = sum(h.end_time - h.start_time for h in timed) / len(timed)  # type: ignore[operator]
        return RequestStats(
            total_requests=len(history),
            completed_requests=len(completed),
            error_requests=sum(1 for h in history if h.status == "error"),
            average_time_ms=average,
        )

    # Settings

    @property
    def default_model(self) -> str:
        return self._snapshot.default_model

    def get_settings(self) -> SettingsView:
        """Settings for the settings/dashboard surfaces."""
        snapshot = self._snapshot
        models = [
            ModelInfo(
                name=name,
                display_name=str(info.get("name", name)),
                experimental=bool(info.get("experimental", False)),
            )
            for name, info in MODELS.items()
            if snapshot.experimental or not info.get("experimental", False)
        ]
        if snapshot.show_legacy:
            models.extend(
                ModelInfo(name=legacy, display_name=f"{legacy} (legacy)", legacy=True)
                for legacy in LEGACY_MODEL_MAPPING
            )
        return SettingsView(
            api_key_set=bool(snapshot.api_key),
            tier=snapshot.tier,
            experimental=snapshot.experimental,
            show_legacy=snapshot.show_legacy,
            default_model=snapshot.default_model,
            available_models=models,
        )

    def update_settings(
        self,
        experimental: bool | None = None,
        show_legacy: bool | None = None,
        default_model: str | None = None,
    ) -> SettingsView:
        """Update the provided settings and persist them."""
        with self._lock:
            if experimental is not None:
                self._snapshot.experimental = experimental
            if show_legacy is not None:
                self._snapshot.show_legacy = show_legacy
            if default_model is not None:
                self._snapshot.default_model = self.migrate_model(default_model)
        self.save()
        return self.get_settings()

    def reset_state(self) -> None:
        """Drop every stored setting, the API key and the history."""
        with self._lock:
            self._snapshot = DurableStateSnapshot()
        self.save()

    # Models

    def migrate_model(self, model: str | None) -> str:
        """Map a stored model name onto a supported one.

        Legacy names map to their replacement, known models are kept, and
        anything else falls back to the configured default.
        """
        if not model:
            return self._settings.default_model
        if model in LEGACY_MODEL_MAPPING:
            return LEGACY_MODEL_MAPPING[model]
        if model in MODELS:
            return model
        return self._settings.default_model

    def resolve_model(self, model: str | None) -> str:
        """Resolve the model argument of a formula call.

        Empty means the stored default; legacy names are migrated; other
        names are passed through with the "models/" prefix.
        """
        name = (model or "").strip()
        if not name:
            return self._snapshot.default_model
        if name in LEGACY_MODEL_MAPPING:
            return LEGACY_MODEL_MAPPING[name]
        if not name.startswith("models/"):
            name = f"models/{name}"
        return name

    @property
    def snapshot(self) -> DurableStateSnapshot:
        """Copy of the current snapshot."""
        with self._lock:
            return self._snapshot.model_copy(deep=True)


def merge_over_defaults(decoded: dict[str, Any]) -> DurableStateSnapshot:
    """Merge a decoded blob over a default snapshot, one field at a time.

    Missing fields keep their defaults, fields that fail validation are
    logged and dropped, and unknown fields are ignored.
    """
    merged = DurableStateSnapshot().model_dump(by_alias=True)
    for name, field in DurableStateSnapshot.model_fields.items():
        alias = field.alias or name
        if alias in decoded:
            value = decoded[alias]
        elif name in decoded:
            value = decoded[name]
        else:
            continue
        candidate = {**merged, alias: value}
        try:
            DurableStateSnapshot.model_validate(candidate)
        except ValidationError:
            logger.warning("Ignoring invalid stored value for %s", alias)
            continue
        merged = candidate
    return DurableStateSnapshot.model_validate(merged)
