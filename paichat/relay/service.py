"""
Relay Service

Stateless request/response relay: validates a relay request against the
server configuration, forwards it to exactly one upstream endpoint with the
injected credential and normalizes the result.
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import ValidationError

from paichat.config import GeminiSettings
from paichat.errors import BadRequest, ConfigurationError
from paichat.llm.base import BaseLLMProvider
from paichat.llm.google import GeminiProvider
from paichat.models.api import RelayRequest, RelayResponse, RequestKind

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[GeminiSettings, httpx.AsyncClient | None], BaseLLMProvider]


class RelayService:
    """
    Relay one client request to the upstream generative-AI API.

    Precondition checks run in a fixed order, configuration first:

    1. missing credential -> ConfigurationError
    2. image request without project id -> ConfigurationError
    3. body that does not fit RelayRequest -> BadRequest
    4. image request without prompt -> BadRequest
    5. chat request without history -> BadRequest

    Only the `type` field is read before the configuration checks, so a
    misconfigured server answers 500 whatever the rest of the body holds.

    Upstream failures propagate as UpstreamError. Nothing is retried.
    """

    def __init__(
        self,
        settings: GeminiSettings,
        client: httpx.AsyncClient | None = None,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        self.settings = settings
        self._client = client
        self._provider_factory = provider_factory or GeminiProvider.from_settings

    async def handle(self, payload: RelayRequest | dict[str, Any] | None) -> RelayResponse:
        kind = self._requested_kind(payload)
        self._check_configuration(kind)
        request = self._parse(payload)
        self._check_fields(request)

        provider = self._provider_factory(self.settings, self._client)
        if kind == "image":
            result = await provider.generate_image(request.prompt)
        else:
            history = [entry.to_upstream() for entry in request.history]
            result = await provider.generate_text(history)

        logger.info(
            "relay_request_completed",
            extra={"kind": kind, "model": result.model, "fallback": result.fallback},
        )
        return RelayResponse(response=result.content, type=kind)

    @staticmethod
    def _requested_kind(payload: RelayRequest | dict[str, Any] | None) -> RequestKind:
        if isinstance(payload, RelayRequest):
            return payload.kind
        if isinstance(payload, dict) and payload.get("type") == "image":
            return "image"
        return "chat"

    def _check_configuration(self, kind: RequestKind) -> None:
        if not self.settings.api_key:
            raise ConfigurationError("API key not configured.")
        if kind == "image" and not self.settings.project_id:
            raise ConfigurationError("Project ID not configured.")

    @staticmethod
    def _parse(payload: RelayRequest | dict[str, Any] | None) -> RelayRequest:
        if isinstance(payload, RelayRequest):
            return payload
        try:
            return RelayRequest.model_validate(payload if payload is not None else {})
        except ValidationError as exc:
            errors = exc.errors()
            detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
            raise BadRequest(
                f"Invalid request body: {detail}", context={"error_count": len(errors)}
            ) from exc

    @staticmethod
    def _check_fields(request: RelayRequest) -> None:
        if request.kind == "image":
            if not request.prompt or not request.prompt.strip():
                raise BadRequest("Image prompt is missing.")
        elif not request.history:
            raise BadRequest("Chat history is missing.")
