"""
API Request/Response Models

Pydantic models for the relay endpoint and service health checks.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

RequestKind = Literal["chat", "image"]


class HistoryPart(BaseModel):
    """One part of an upstream history entry (extra upstream fields pass through)."""

    text: str | None = Field(None, description="Text content of the part")

    model_config = ConfigDict(extra="allow")


class HistoryEntry(BaseModel):
    """Role-tagged entry of a chat history forwarded upstream unchanged."""

    role: str = Field(..., description="Message role: 'user' or 'model'")
    parts: list[HistoryPart] = Field(default_factory=list, description="Message parts")

    def to_upstream(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class RelayRequest(BaseModel):
    """Request body for POST /api/proxy."""

    type: Any = Field(
        None,
        description="'image' selects image generation; any other value is a chat request",
    )
    history: list[HistoryEntry] | None = Field(
        None, description="Chat history (required for chat requests)"
    )
    prompt: str | None = Field(None, description="Image prompt (required for image requests)")

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "chat",
                "history": [{"role": "user", "parts": [{"text": "hi"}]}],
            }
        }
    }

    @property
    def kind(self) -> RequestKind:
        return "image" if self.type == "image" else "chat"


class RelayResponse(BaseModel):
    """Successful relay result."""

    response: str = Field(..., description="Plain text (chat) or base64 image bytes (image)")
    type: RequestKind = Field(..., description="Kind of request that produced the response")


class ErrorResponse(BaseModel):
    """Uniform error body returned by the relay."""

    error: str = Field(..., description="Human-readable error message")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""

    status: str = Field(..., description="Service status: 'healthy' or 'unhealthy'")
    version: str = Field(..., description="API version")
    timestamp: str = Field(..., description="Current timestamp (ISO 8601)")


class ReadinessResponse(BaseModel):
    """Response model for readiness check endpoint."""

    status: str = Field(..., description="Readiness status: 'ready' or 'not_ready'")
    version: str = Field(..., description="API version")
    timestamp: str = Field(..., description="Current timestamp (ISO 8601)")
    checks: dict[str, bool] = Field(
        ..., description="Individual readiness checks (credential, image project, ...)"
    )
