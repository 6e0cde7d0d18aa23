"""
Relay Routes

The single relay endpoint the chat client posts chat and image requests to.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body

from paichat.config import get_settings
from paichat.models.api import ErrorResponse, RelayResponse
from paichat.relay import RelayService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/proxy",
    response_model=RelayResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing required field"},
        405: {"model": ErrorResponse, "description": "Method other than POST"},
        500: {"model": ErrorResponse, "description": "Server misconfigured or upstream failure"},
    },
)
async def proxy(payload: Any = Body(default=None)) -> RelayResponse:
    """
    Forward a chat history or an image prompt to the upstream API.

    The body is taken as raw JSON and validated by the relay service after
    the configuration checks.

    Returns:
        RelayResponse with the reply text (chat) or base64 image bytes (image)

    Raises:
        ConfigurationError: Credential or project id missing (500)
        BadRequest: Body invalid, history or prompt missing (400)
        UpstreamError: Upstream rejected or failed the call (500)
    """
    from paichat.api.main import app_state

    logger.info(
        "Relay request received",
        extra={"body_type": type(payload).__name__},
    )

    relay = RelayService(get_settings().gemini, client=app_state.get("http_client"))
    return await relay.handle(payload)
