"""Request DTOs for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GeminiFormulaRequest(BaseModel):
    """Request DTO for one GEMINI(...) evaluation.

    Prompt and temperature are validated by the service, which answers
    with a display string instead of a 422, the same as a formula cell.
    """

    prompt: str | None = Field(None, description="The prompt to send to Gemini")
    model: str | None = Field(
        None,
        description="Model name, e.g. models/gemini-2.0-flash; empty uses the default model",
    )
    system_prompt: str | None = Field("", description="Optional system instruction")
    temperature: float | str | None = Field(
        0.7,
        description="Sampling temperature (0.0 = focused, 2.0 = most random)",
    )

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiKeyRequest(BaseModel):
    """Request DTO carrying an API key."""

    api_key: str = Field(..., description="Gemini API key", min_length=1)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UpdateSettingsRequest(BaseModel):
    """Request DTO for updating settings; omitted fields are unchanged."""

    experimental: bool | None = Field(None, description="Show experimental models")
    show_legacy: bool | None = Field(None, description="Show legacy model names")
    default_model: str | None = Field(None, description="Model used when a call names none")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
