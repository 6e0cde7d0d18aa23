"""
Error taxonomy shared by the relay, the conversation store and the client.

Every error carries a human-readable message, optional debugging context and
the HTTP status it maps to when it crosses the relay boundary.
"""

from typing import Any


class PaiChatError(Exception):
    """
    Base exception for PAI Chat errors.

    Attributes:
        message: Error description shown to the caller
        context: Additional context for debugging
        status_code: HTTP status used when rendered by the relay
    """

    status_code: int = 500

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
        }


class ConfigurationError(PaiChatError):
    """Server is misconfigured (missing credential or project id)."""

    status_code = 500


class BadRequest(PaiChatError):
    """Caller omitted a required field or sent blank input."""

    status_code = 400


class UpstreamError(PaiChatError):
    """The third-party API rejected or failed the call."""

    status_code = 500

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        body: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.upstream_status = upstream_status
        self.body = body
        merged = dict(context or {})
        if upstream_status is not None:
            merged["upstream_status"] = upstream_status
        if body is not None:
            merged["upstream_body"] = body
        super().__init__(message, context=merged)


class NotFound(PaiChatError):
    """A store operation referenced a conversation id that does not exist."""

    status_code = 404

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(
            f"Conversation not found: {conversation_id}",
            context={"conversation_id": conversation_id},
        )


class StorageCorruption(PaiChatError):
    """Persisted conversation state could not be parsed."""


class RequestInProgress(PaiChatError):
    """A relay call is already outstanding for this conversation."""

    status_code = 409

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(
            "A request is already in progress for this conversation.",
            context={"conversation_id": conversation_id},
        )


class RelayRequestError(PaiChatError):
    """The relay answered a client request with a non-success status."""

    def __init__(self, message: str, status_code: int, context: dict[str, Any] | None = None):
        super().__init__(message, context=context)
        self.status_code = status_code
