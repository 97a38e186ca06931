"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from gemini_formula.config import settings
from gemini_formula.handlers import GeminiHandler
from gemini_formula.services import GeminiService

logger = logging.getLogger(__name__)


def get_gemini_service(request: Request) -> GeminiService:
    """Dependency injection for GeminiService from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The GeminiService instance from app.state

    Raises:
        RuntimeError: If service is not initialized
    """
    service = getattr(request.app.state, "gemini_service", None)
    if service is None:
        raise RuntimeError("GeminiService not initialized. Check lifespan setup.")
    return service


def get_handler(request: Request) -> GeminiHandler:
    """Dependency injection for GeminiHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The GeminiHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "gemini_handler", None)
    if handler is None:
        raise RuntimeError("GeminiHandler not initialized. Check lifespan setup.")
    return handler


def build_lifespan(service_factory: Callable[[], GeminiService] = GeminiService.create):
    """Build the lifespan context manager for the FastAPI app.

    Args:
        service_factory: Creates the GeminiService on startup. Tests pass a
            factory wired to fakeredis and a fake generator.

    Returns:
        Lifespan context manager
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize the service and handler, store them in app.state.

        Cleanup:
            Removes all services from app.state on shutdown
        """
        gemini_service = service_factory()
        app.state.gemini_service = gemini_service
        app.state.gemini_handler = GeminiHandler(service=gemini_service)

        logger.info("Gemini service initialized")
        logger.info("Tier: %s", gemini_service.state.tier.value)
        logger.info("Redis URL: %s", settings.redis_url)
        logger.info("Health: %s", gemini_service.is_healthy())

        yield

        gemini_service.close()
        del app.state.gemini_handler
        del app.state.gemini_service
        logger.info("Gemini service shut down")

    return lifespan


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[GeminiHandler, Depends(get_handler)]
ServiceDep = Annotated[GeminiService, Depends(get_gemini_service)]
