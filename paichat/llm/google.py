"""
Google LLM Provider

Implementation of BaseLLMProvider for Gemini text generation
(generativelanguage.googleapis.com) and Vertex AI image generation
(aiplatform.googleapis.com), called over plain HTTPS with httpx.
"""

import json
import logging
from typing import Any, Literal

import httpx

from paichat.config import GeminiSettings
from paichat.errors import ConfigurationError, UpstreamError
from paichat.llm.base import BaseLLMProvider
from paichat.llm.models import GenerationResult

logger = logging.getLogger(__name__)

CHAT_FALLBACK_TEXT = "Sorry, I couldn't get a valid chat response."

ImageAuth = Literal["query", "bearer", "header"]


class GeminiProvider(BaseLLMProvider):
    """
    Google (Gemini / Vertex AI) provider implementation.

    The API key is injected into every call. For the text endpoint it is sent
    as the ``key`` query parameter; for the image endpoint its placement is
    configurable because it depends on the upstream product version.
    """

    def __init__(
        self,
        api_key: str,
        project_id: str | None = None,
        api_base: str = "https://generativelanguage.googleapis.com",
        chat_model: str = "gemini-2.5-pro",
        image_model: str = "imagegeneration@006",
        location: str = "us-central1",
        image_auth: ImageAuth = "query",
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize Google provider."""
        super().__init__(provider_name="google", timeout=timeout)

        self.api_key = api_key
        self.project_id = project_id
        self.api_base = api_base.rstrip("/")
        self.chat_model = chat_model
        self.image_model = image_model
        self.location = location
        self.image_auth = image_auth
        self._client = client

        logger.info(
            f"Google provider initialized with model: {chat_model}",
            extra={"model": chat_model, "image_model": image_model, "image_auth": image_auth},
        )

    @classmethod
    def from_settings(
        cls, settings: GeminiSettings, client: httpx.AsyncClient | None = None
    ) -> "GeminiProvider":
        if not settings.api_key:
            raise ConfigurationError("API key not configured.")
        return cls(
            api_key=settings.api_key,
            project_id=settings.project_id,
            api_base=settings.api_base,
            chat_model=settings.chat_model,
            image_model=settings.image_model,
            location=settings.location,
            image_auth=settings.image_auth,
            timeout=settings.timeout,
            client=client,
        )

    @property
    def chat_url(self) -> str:
        return f"{self.api_base}/v1beta/models/{self.chat_model}:generateContent"

    @property
    def image_url(self) -> str:
        return (
            f"https://{self.location}-aiplatform.googleapis.com/v1/projects/{self.project_id}"
            f"/locations/{self.location}/publishers/google/models/{self.image_model}:predict"
        )

    async def generate_text(self, history: list[dict[str, Any]]) -> GenerationResult:
        """Generate a chat reply using the Gemini generateContent endpoint."""
        self._log_request("chat", len(history))

        data = await self._post(
            self.chat_url,
            payload={"contents": history},
            params={"key": self.api_key},
            headers={},
            label="Chat",
        )
        text = self._extract_chat_text(data)
        result = GenerationResult(
            content=text or CHAT_FALLBACK_TEXT,
            kind="chat",
            model=self.chat_model,
            provider=self.provider_name,
            fallback=text is None,
            metadata={"finish_reason": self._extract_finish_reason(data)},
        )

        self._log_response(result)
        return result

    async def generate_image(self, prompt: str) -> GenerationResult:
        """Generate one image using the Vertex AI predict endpoint."""
        if not self.project_id:
            raise ConfigurationError("Project ID not configured.")

        self._log_request("image", len(prompt))

        params, headers = self._image_credentials()
        data = await self._post(
            self.image_url,
            payload={"instances": [{"prompt": prompt}], "parameters": {"sampleCount": 1}},
            params=params,
            headers=headers,
            label="Image",
        )
        result = GenerationResult(
            content=self._extract_image_payload(data),
            kind="image",
            model=self.image_model,
            provider=self.provider_name,
        )

        self._log_response(result)
        return result

    def _image_credentials(self) -> tuple[dict[str, str], dict[str, str]]:
        if self.image_auth == "bearer":
            return {}, {"Authorization": f"Bearer {self.api_key}"}
        if self.image_auth == "header":
            return {}, {"X-Goog-Api-Key": self.api_key}
        return {"key": self.api_key}, {}

    async def _post(
        self,
        url: str,
        *,
        payload: dict[str, Any],
        params: dict[str, str],
        headers: dict[str, str],
        label: str,
    ) -> Any:
        try:
            if self._client is None:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload, params=params, headers=headers)
            else:
                response = await self._client.post(
                    url, json=payload, params=params, headers=headers, timeout=self.timeout
                )
        except httpx.TimeoutException as exc:
            logger.error(f"{label} request timed out", extra={"timeout": self.timeout})
            raise UpstreamError(
                f"{label} API Error: request timed out after {self.timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(f"{label} request failed: {exc}")
            raise UpstreamError(f"{label} API Error: {exc}") from exc

        if not response.is_success:
            body = response.text
            logger.error(
                f"{label} generation failed",
                extra={"status_code": response.status_code, "body": body[:500]},
            )
            raise UpstreamError(
                f"{label} API Error: {body}",
                upstream_status=response.status_code,
                body=body,
            )

        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise UpstreamError(
                f"{label} API Error: upstream returned a non-JSON body",
                upstream_status=response.status_code,
                body=response.text,
            ) from exc

    def _extract_chat_text(self, data: Any) -> str | None:
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        if isinstance(text, str) and text:
            return text
        return None

    def _extract_finish_reason(self, data: Any) -> str:
        try:
            reason = data["candidates"][0].get("finishReason", "")
        except (KeyError, IndexError, TypeError, AttributeError):
            return ""
        return str(reason or "")

    def _extract_image_payload(self, data: Any) -> str:
        predictions = data.get("predictions") if isinstance(data, dict) else None
        if not isinstance(predictions, list) or not predictions:
            raise UpstreamError("API returned no predictions.", body=json.dumps(data))
        first = predictions[0]
        payload = first.get("bytesBase64Encoded") if isinstance(first, dict) else None
        if not isinstance(payload, str) or not payload:
            raise UpstreamError("API returned no image data.", body=json.dumps(data))
        return payload
