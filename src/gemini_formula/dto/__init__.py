"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import (
    ApiKeyRequest,
    GeminiFormulaRequest,
    UpdateSettingsRequest,
)
from .responses import (
    ApiKeySetupResponse,
    ApiKeyValidationResponse,
    GeminiFormulaResponse,
    HealthCheckResponse,
    ProcessingRecordResponse,
    StatsResponse,
)

__all__ = [
    "ApiKeyRequest",
    "GeminiFormulaRequest",
    "UpdateSettingsRequest",
    "ApiKeySetupResponse",
    "ApiKeyValidationResponse",
    "GeminiFormulaResponse",
    "HealthCheckResponse",
    "ProcessingRecordResponse",
    "StatsResponse",
]
