"""
Conversation Models

Pydantic models for the persisted client-side conversation history.

Persisted shape (one blob under the storage key):

    {
        "chat_1718000000000": {
            "messages": [{"role": "user", "parts": [{"text": "hi", "type": "chat"}]}],
            "isPinned": false
        }
    }

The legacy shape stored a bare message list per conversation id; see
``paichat.conversations.store`` for the migration.

Unknown fields are kept and written back unchanged.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["chat", "image"]
Role = Literal["user", "model"]


class MessagePart(BaseModel):
    """One content part of a message: plain text or a base64 image payload."""

    text: str = Field(..., min_length=1, description="Text, or base64 image bytes")
    type: ContentType = Field(
        default="chat",
        description="How `text` is interpreted (legacy parts default to chat)",
    )

    model_config = ConfigDict(extra="allow")


class Message(BaseModel):
    """Single message owned by exactly one conversation."""

    role: Role = Field(..., description="Message author: 'user' or 'model'")
    parts: list[MessagePart] = Field(..., min_length=1, description="Content parts")

    model_config = ConfigDict(extra="allow")

    @classmethod
    def chat(cls, role: Role, text: str) -> "Message":
        return cls(role=role, parts=[MessagePart(text=text, type="chat")])

    @classmethod
    def image(cls, role: Role, payload: str) -> "Message":
        return cls(role=role, parts=[MessagePart(text=payload, type="image")])

    @property
    def content(self) -> str:
        return self.parts[0].text

    @property
    def content_type(self) -> ContentType:
        return self.parts[0].type

    def to_wire(self) -> dict[str, Any] | None:
        """Upstream history entry with chat parts only; None for image-only messages."""
        parts = [{"text": part.text} for part in self.parts if part.type == "chat"]
        if not parts:
            return None
        return {"role": self.role, "parts": parts}


class Conversation(BaseModel):
    """A named, pinnable sequence of messages persisted as a unit."""

    messages: list[Message] = Field(..., description="Chronological message sequence")
    is_pinned: bool = Field(
        default=False,
        alias="isPinned",
        description="Pinned conversations sort before unpinned ones",
    )

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @classmethod
    def empty(cls) -> "Conversation":
        return cls(messages=[], is_pinned=False)

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
