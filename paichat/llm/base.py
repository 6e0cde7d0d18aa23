"""
Base LLM Provider

Abstract base class defining the interface for upstream generation providers.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from paichat.llm.models import GenerationResult

logger = logging.getLogger(__name__)


class BaseLLMProvider(ABC):
    """
    Abstract base class for upstream providers.

    A provider turns a chat history or an image prompt into exactly one
    upstream call and a normalized GenerationResult.

    Attributes:
        provider_name: Unique identifier for this provider
        timeout: Request timeout in seconds
    """

    def __init__(self, provider_name: str, timeout: float = 60.0):
        """
        Initialize base provider.

        Args:
            provider_name: Provider identifier (e.g., "google")
            timeout: Request timeout in seconds
        """
        self.provider_name = provider_name
        self.timeout = timeout

        logger.info(
            f"Initialized {provider_name} provider",
            extra={"provider": provider_name, "timeout": timeout},
        )

    @abstractmethod
    async def generate_text(self, history: list[dict[str, Any]]) -> GenerationResult:
        """
        Generate the next model turn for a chat history.

        Args:
            history: Role-tagged entries in upstream wire shape

        Returns:
            GenerationResult with the reply text

        Raises:
            UpstreamError: If the upstream call fails
        """
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def generate_image(self, prompt: str) -> GenerationResult:
        """
        Generate one image for a text prompt.

        Args:
            prompt: Image description

        Returns:
            GenerationResult whose content is base64-encoded image bytes

        Raises:
            UpstreamError: If the upstream call fails or returns no image
        """
        pass  # pragma: no cover - abstract method

    def _log_request(self, kind: str, size: int) -> None:
        """Log request details for debugging."""
        logger.debug(
            f"{self.provider_name} {kind} request",
            extra={"provider": self.provider_name, "kind": kind, "size": size},
        )

    def _log_response(self, result: GenerationResult) -> None:
        """Log response details for debugging."""
        logger.debug(
            f"{self.provider_name} {result.kind} response",
            extra={
                "provider": self.provider_name,
                "model": result.model,
                "content_length": len(result.content),
                "fallback": result.fallback,
            },
        )
