"""
Upstream Generation Models

Pydantic models for results returned by upstream providers.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class GenerationResult(BaseModel):
    """Normalized result of one upstream generation call."""

    content: str = Field(
        ...,
        description="Generated text (chat) or base64-encoded image bytes (image)"
    )
    kind: Literal["chat", "image"] = Field(
        ...,
        description="Kind of generation that produced the content"
    )
    model: str = Field(
        ...,
        description="Model that generated the content"
    )
    provider: str = Field(
        ...,
        description="Provider that handled the request"
    )
    fallback: bool = Field(
        default=False,
        description="True when the upstream payload lacked the expected content path"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional provider-specific response data"
    )
