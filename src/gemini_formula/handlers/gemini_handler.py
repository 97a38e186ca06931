"""HTTP handlers for the formula, settings and stats surfaces.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging

from fastapi import HTTPException, status

from gemini_formula.dto import (
    ApiKeyRequest,
    ApiKeySetupResponse,
    ApiKeyValidationResponse,
    GeminiFormulaRequest,
    GeminiFormulaResponse,
    HealthCheckResponse,
    ProcessingRecordResponse,
    StatsResponse,
    UpdateSettingsRequest,
)
from gemini_formula.errors import GeminiFormulaError
from gemini_formula.models import SettingsView
from gemini_formula.services import GeminiService

logger = logging.getLogger(__name__)


class GeminiHandler:
    """HTTP handlers delegating to GeminiService.

    The formula endpoint always answers 200 with a display string, because
    a formula cell cannot surface an exception. The other endpoints map
    service failures to HTTP errors.

    Example:
        ```python
        handler = GeminiHandler(service=GeminiService.create())

        @app.post("/gemini", response_model=GeminiFormulaResponse)
        def gemini(request: GeminiFormulaRequest):
            return handler.submit(request)
        ```
    """

    def __init__(self, service: GeminiService) -> None:
        """Initialize the handler.

        Args:
            service: The Gemini service for business logic (required).
        """
        self._service = service

    def submit(self, request: GeminiFormulaRequest) -> GeminiFormulaResponse:
        """Handle POST /gemini requests."""
        result = self._service.submit_prompt(
            prompt=request.prompt,
            model=request.model,
            system_prompt=request.system_prompt,
            temperature=request.temperature,
        )
        fingerprint = self._service.fingerprint_for(
            prompt=request.prompt,
            model=request.model,
            system_prompt=request.system_prompt,
            temperature=request.temperature,
        )
        return GeminiFormulaResponse(result=result, fingerprint=fingerprint)

    def get_record(self, fingerprint: str) -> ProcessingRecordResponse:
        """Handle GET /requests/{fingerprint} requests.

        Raises:
            HTTPException: 404 if the fingerprint is unknown to this process
        """
        record = self._service.get_record(fingerprint)
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No request with fingerprint {fingerprint}",
            )
        return ProcessingRecordResponse(
            id=record.id,
            status=record.status.value,
            model=record.model,
            queue_position=record.queue_position,
            start_time=record.start_time,
            start_processing=record.start_processing,
            end_time=record.end_time,
            response=record.response,
            error=record.error,
        )

    def get_stats(self) -> StatsResponse:
        """Handle GET /stats requests."""
        try:
            return StatsResponse(
                requests=self._service.get_stats(),
                queue=self._service.get_queue_stats(),
            )
        except GeminiFormulaError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get stats: {e}",
            ) from e

    def get_settings(self) -> SettingsView:
        """Handle GET /settings requests."""
        return self._service.get_settings()

    def update_settings(self, request: UpdateSettingsRequest) -> SettingsView:
        """Handle PUT /settings requests."""
        try:
            return self._service.update_settings(
                experimental=request.experimental,
                show_legacy=request.show_legacy,
                default_model=request.default_model,
            )
        except GeminiFormulaError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to update settings: {e}",
            ) from e

    def setup_api_key(self, request: ApiKeyRequest) -> ApiKeySetupResponse:
        """Handle POST /api-key/setup requests."""
        result = self._service.setup_api_key(request.api_key)
        return ApiKeySetupResponse(success=result.success, error=result.error)

    def validate_api_key(self, request: ApiKeyRequest) -> ApiKeyValidationResponse:
        """Handle POST /api-key/validate requests."""
        try:
            return ApiKeyValidationResponse(valid=self._service.validate_api_key(request.api_key))
        except GeminiFormulaError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to validate API key: {e}",
            ) from e

    def reset(self) -> dict:
        """Handle DELETE /state requests."""
        try:
            self._service.reset()
        except GeminiFormulaError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to reset state: {e}",
            ) from e
        return {"success": True, "message": "All settings have been reset to default"}

    def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        is_healthy = self._service.is_healthy()
        return HealthCheckResponse(
            status="healthy" if is_healthy else "unhealthy",
            redis_healthy=is_healthy,
            api_key_set=bool(self._service.state.api_key),
        )
