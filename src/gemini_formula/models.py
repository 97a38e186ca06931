import time
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from gemini_formula.config import Tier, settings

HISTORY_LIMIT = 1000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class HistoryEntry(BaseModel):
    """Immutable snapshot of a finished request, kept for statistics."""

    id: str
    status: str
    model: str = ""
    start_time: int | None = None
    end_time: int | None = None
    error: str | None = None
    timestamp: int = Field(default_factory=now_ms)

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DurableStateSnapshot(BaseModel):
    """State that survives beyond one process.

    Serialized as one JSON blob with camelCase keys. Unknown keys are
    ignored so older and newer blobs both load.
    """

    api_key: str | None = None
    api_key_set: bool = False
    last_key_validation: int | None = None
    tier: Tier = Tier.FREE
    default_model: str = settings.default_model
    experimental: bool = False
    show_legacy: bool = False
    history: list[HistoryEntry] = Field(default_factory=list)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )


class RequestStats(BaseModel):
    """Aggregate statistics over the history log."""

    total_requests: int = 0
    completed_requests: int = 0
    error_requests: int = 0
    average_time_ms: float = 0.0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SingleEnvelope(BaseModel):
    """Cache envelope holding the value inline."""

    type: Literal["single"] = "single"
    data: str


class ChunkedEnvelope(BaseModel):
    """Cache envelope listing the chunk keys of an oversized value, in order."""

    type: Literal["chunked"] = "chunked"
    keys: list[str]
    length: int


CacheEnvelope = Annotated[SingleEnvelope | ChunkedEnvelope, Field(discriminator="type")]

envelope_adapter: TypeAdapter[SingleEnvelope | ChunkedEnvelope] = TypeAdapter(CacheEnvelope)


class ModelInfo(BaseModel):
    """Display entry for one selectable model."""

    name: str
    display_name: str
    experimental: bool = False
    legacy: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SettingsView(BaseModel):
    """User-facing settings, without the API key itself."""

    api_key_set: bool
    tier: Tier
    experimental: bool
    show_legacy: bool
    default_model: str
    available_models: list[ModelInfo] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
