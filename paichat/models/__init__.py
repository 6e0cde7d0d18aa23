"""
PAI Chat Models Module

Pydantic models for type-safe data validation throughout the application.

Available Models:
    Conversation Models:
        - Conversation: Pinnable message sequence persisted as a unit
        - Message: Role-tagged message with content parts
        - MessagePart: Text or base64 image payload

    API Models:
        - RelayRequest: Relay request body
        - RelayResponse: Relay success body
        - ErrorResponse: Relay error body
        - HealthResponse / ReadinessResponse: Health checks

Usage:
    from paichat.models import Conversation, Message
    from paichat.models.api import RelayRequest, RelayResponse
"""

from paichat.models.api import (
    ErrorResponse,
    HealthResponse,
    HistoryEntry,
    ReadinessResponse,
    RelayRequest,
    RelayResponse,
)
from paichat.models.conversation import Conversation, Message, MessagePart

__all__ = [
    "Conversation",
    "Message",
    "MessagePart",
    "ErrorResponse",
    "HealthResponse",
    "HistoryEntry",
    "ReadinessResponse",
    "RelayRequest",
    "RelayResponse",
]
