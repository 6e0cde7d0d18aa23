"""
Health Check Routes

FastAPI endpoints for service health and readiness checks.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from paichat import __version__
from paichat.config import get_settings
from paichat.models.api import HealthResponse, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health() -> HealthResponse:
    """
    Basic liveness check.

    Returns 200 OK if the service is running.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness() -> JSONResponse:
    """
    Readiness check for relay configuration.

    Checks:
    - Upstream credential is configured (required)
    - Image project id is configured (reported, image requests only)

    Returns:
        200 OK if the credential is configured
        503 Service Unavailable otherwise
    """
    gemini = get_settings().gemini
    checks = {
        "credential": gemini.api_key is not None,
        "image_project": gemini.project_id is not None,
    }
    ready = checks["credential"]
    if not ready:
        logger.warning("Credential check: FAILED (GEMINI_API_KEY not set)")
    if not checks["image_project"]:
        logger.debug("Image project check: not configured; image requests will fail")

    response_data = ReadinessResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        checks=checks,
    )
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(status_code=status_code, content=response_data.model_dump())
