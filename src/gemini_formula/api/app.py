from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from gemini_formula.api.dependencies import HandlerDep, build_lifespan
from gemini_formula.config import settings
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
from gemini_formula.logging_config import configure_logging
from gemini_formula.models import SettingsView
from gemini_formula.services import GeminiService


def create_app(service_factory: Callable[[], GeminiService] = GeminiService.create) -> FastAPI:
    """Create the FastAPI application.

    Args:
        service_factory: Creates the GeminiService on startup.

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Gemini Formula API",
        description="Rate-limited, cached Gemini text generation for spreadsheet formulas",
        version="0.1.0",
        lifespan=build_lifespan(service_factory),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "Gemini Formula API",
            "version": "0.1.0",
            "description": "Rate-limited, cached Gemini text generation for spreadsheet formulas",
            "endpoints": {
                "formula": "/gemini",
                "requests": "/requests/{fingerprint}",
                "stats": "/stats",
                "settings": "/settings",
                "api_key": "/api-key",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        result = handler.health_check()
        if not result.redis_healthy:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Redis connection failed",
            )
        return result

    @app.post("/gemini", response_model=GeminiFormulaResponse)
    def gemini(request: GeminiFormulaRequest, handler: HandlerDep) -> GeminiFormulaResponse:
        """
        Evaluate GEMINI(prompt, model, systemPrompt, temperature).

        Returns the generated text once available, otherwise a status string.
        Call again with the same arguments to poll.
        """
        return handler.submit(request)

    @app.get("/requests/{fingerprint}", response_model=ProcessingRecordResponse)
    def get_request(fingerprint: str, handler: HandlerDep) -> ProcessingRecordResponse:
        """Get the processing record of a request."""
        return handler.get_record(fingerprint)

    @app.get("/stats", response_model=StatsResponse)
    def get_stats(handler: HandlerDep) -> StatsResponse:
        """Get request statistics and live queue counters."""
        return handler.get_stats()

    @app.get("/settings", response_model=SettingsView)
    def get_settings(handler: HandlerDep) -> SettingsView:
        """Get user-facing settings."""
        return handler.get_settings()

    @app.put("/settings", response_model=SettingsView)
    def update_settings(request: UpdateSettingsRequest, handler: HandlerDep) -> SettingsView:
        """Update user-facing settings."""
        return handler.update_settings(request)

    @app.post("/api-key/setup", response_model=ApiKeySetupResponse)
    def setup_api_key(request: ApiKeyRequest, handler: HandlerDep) -> ApiKeySetupResponse:
        """Store and validate an API key; a rejected key is removed again."""
        return handler.setup_api_key(request)

    @app.post("/api-key/validate", response_model=ApiKeyValidationResponse)
    def validate_api_key(request: ApiKeyRequest, handler: HandlerDep) -> ApiKeyValidationResponse:
        """Check an API key against the models endpoint."""
        return handler.validate_api_key(request)

    @app.delete("/state", response_model=dict[str, Any])
    def reset_state(handler: HandlerDep) -> dict[str, Any]:
        """Reset all settings, the API key and the history."""
        return handler.reset()

    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gemini_formula.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
