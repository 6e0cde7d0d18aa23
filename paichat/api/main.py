"""
FastAPI Application

Relay service for the PAI Chat client with:
- Lifespan management for the shared upstream HTTP client
- CORS middleware for browser clients
- Exception handlers rendering every failure as {"error": message}
- Relay and health endpoints

Usage:
    uvicorn paichat.api.main:app --reload --port 8000
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from paichat import __version__
from paichat.api.routes import health, proxy
from paichat.config import get_settings
from paichat.errors import PaiChatError, UpstreamError

logger = logging.getLogger(__name__)

# Process-wide resources; the relay itself keeps no session state
app_state = {
    "http_client": None,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Lifespan context manager for startup and shutdown.

    Initializes the pooled httpx client shared by relay requests.
    """
    config = get_settings()
    logger.info("Starting PAI Chat relay...")
    if config.gemini.api_key is None:
        logger.warning("GEMINI_API_KEY not set; relay requests will fail with 500.")

    client = httpx.AsyncClient(timeout=config.gemini.timeout)
    app_state["http_client"] = client
    try:
        yield
    finally:
        logger.info("Shutting down PAI Chat relay...")
        try:
            await client.aclose()
            logger.info("Upstream HTTP client closed")
        except Exception as e:
            logger.error(f"Error closing upstream HTTP client: {e}")
        app_state["http_client"] = None


app = FastAPI(
    title="PAI Chat Relay",
    description="Credential-injecting relay for Gemini chat and image generation",
    version=__version__,
    lifespan=lifespan,
)

config = get_settings()
cors_origins = config.cors_origin_list or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@app.exception_handler(PaiChatError)
async def paichat_error_handler(request: Request, exc: PaiChatError) -> JSONResponse:
    """Render relay errors with their mapped status."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__}: {exc.message}",
        extra={
            "error_type": exc.__class__.__name__,
            "status_code": exc.status_code,
            "path": request.url.path,
            "upstream_status": exc.upstream_status if isinstance(exc, UpstreamError) else None,
        },
    )
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle routing errors (404, 405) with the uniform error body."""
    return _error_response(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or wrongly typed fields are the caller's fault."""
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    logger.warning(f"Invalid relay request: {detail}", extra={"error_count": len(errors)})
    return _error_response(status.HTTP_400_BAD_REQUEST, f"Invalid request body: {detail}")


app.include_router(proxy.router, prefix="/api", tags=["relay"])
app.include_router(health.router, prefix="/api/v1", tags=["health"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "name": "PAI Chat Relay",
        "version": __version__,
        "description": "Relay for Gemini chat and image generation",
        "docs": "/docs",
    }
