"""Response DTOs for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gemini_formula.models import RequestStats


class GeminiFormulaResponse(BaseModel):
    """Response DTO for one GEMINI(...) evaluation."""

    result: str = Field(..., description="Generated text, status string or error string")
    fingerprint: str | None = Field(None, description="Request fingerprint, for polling")


class ProcessingRecordResponse(BaseModel):
    """Response DTO for a processing record."""

    id: str
    status: str
    model: str
    queue_position: int
    start_time: int
    start_processing: int | None = None
    end_time: int | None = None
    response: str | None = None
    error: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatsResponse(BaseModel):
    """Response DTO for statistics."""

    requests: RequestStats = Field(..., description="Aggregates over the history log")
    queue: dict = Field(default_factory=dict, description="Live queue and cache counters")


class ApiKeySetupResponse(BaseModel):
    """Response DTO for the API key setup flow."""

    success: bool
    error: str | None = None


class ApiKeyValidationResponse(BaseModel):
    """Response DTO for API key validation."""

    valid: bool


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    redis_healthy: bool = Field(..., description="Whether Redis is reachable")
    api_key_set: bool = Field(..., description="Whether an API key is configured")
