"""HTTP client for the relay endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from paichat.errors import RelayRequestError
from paichat.models.api import RelayResponse

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to fetch response."


class RelayClient:
    """Post chat and image requests to a relay and unwrap its responses."""

    def __init__(
        self,
        relay_url: str,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.relay_url = relay_url
        self.timeout = timeout
        self._client = client

    async def chat(self, history: list[dict[str, Any]]) -> str:
        response = await self._post({"type": "chat", "history": history})
        return response.response

    async def image(self, prompt: str) -> str:
        response = await self._post({"type": "image", "prompt": prompt})
        return response.response

    async def _post(self, payload: dict[str, Any]) -> RelayResponse:
        try:
            if self._client is None:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.relay_url, json=payload)
            else:
                response = await self._client.post(self.relay_url, json=payload, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            raise RelayRequestError(
                f"Relay did not answer within {self.timeout:g}s", status_code=504
            ) from exc
        except httpx.HTTPError as exc:
            raise RelayRequestError(f"Could not reach relay: {exc}", status_code=502) from exc

        if not response.is_success:
            message = self._error_message(response)
            logger.warning(
                f"Relay request failed: {message}",
                extra={"status_code": response.status_code, "kind": payload.get("type")},
            )
            raise RelayRequestError(message, status_code=response.status_code)

        try:
            return RelayResponse.model_validate(response.json())
        except ValueError as exc:
            raise RelayRequestError(
                "Relay returned an unexpected response body", status_code=response.status_code
            ) from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return GENERIC_FAILURE
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")
            if isinstance(message, str) and message:
                return message
        return GENERIC_FAILURE
