"""
Chat session controller.

Sits between a front-end and the conversation store: owns the hand-off
rules the store leaves to its caller (what becomes active after a delete)
and guards each conversation against overlapping relay calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from paichat.client.relay_client import RelayClient
from paichat.conversations.store import ConversationStore
from paichat.errors import BadRequest, RelayRequestError, RequestInProgress
from paichat.models.conversation import Conversation, Message

logger = logging.getLogger(__name__)

UNTITLED = "New Chat"


class ChatSession:
    """One client's view of its conversations and the relay."""

    def __init__(self, store: ConversationStore, relay: RelayClient) -> None:
        self.store = store
        self.relay = relay
        self._in_flight: set[str] = set()

    @property
    def active_id(self) -> str | None:
        return self.store.active_id

    def start(self) -> str:
        """Load history and select the top conversation, creating one if none exist."""
        self.store.open()
        return self._select_default()

    def new_conversation(self) -> str:
        return self.store.create_conversation()

    def open_conversation(self, conversation_id: str) -> list[Message]:
        return self.store.select_conversation(conversation_id)

    def toggle_pin(self, conversation_id: str) -> bool:
        return self.store.toggle_pin(conversation_id)

    def delete_conversation(self, conversation_id: str) -> str | None:
        """
        Delete a conversation and keep the active selection valid.

        Returns the id that became active, or None when the active
        conversation did not change.
        """
        was_active = self.store.delete_conversation(conversation_id)
        if not was_active:
            return None
        return self._select_default()

    def is_busy(self, conversation_id: str) -> bool:
        return conversation_id in self._in_flight

    def chat_history(self, conversation_id: str) -> list[dict[str, Any]]:
        """Upstream history for a conversation, image payloads left out."""
        conversation = self.store.get_conversation(conversation_id)
        entries = (message.to_wire() for message in conversation.messages)
        return [entry for entry in entries if entry is not None]

    async def send_chat(self, text: str) -> Message:
        """Append a user message, ask the relay for a reply and append it."""
        text = text.strip()
        if not text:
            raise BadRequest("Message is empty.")

        conversation_id = self._ensure_active()
        with self._in_flight_guard(conversation_id):
            self.store.append_message(conversation_id, Message.chat("user", text))
            reply = await self.relay.chat(self.chat_history(conversation_id))
            self._require_content(reply)
            message = Message.chat("model", reply)
            self.store.append_message(conversation_id, message)
        return message

    async def send_image(self, prompt: str) -> Message:
        """Append the prompt, ask the relay for an image and append it."""
        prompt = prompt.strip()
        if not prompt:
            raise BadRequest("Image prompt is empty.")

        conversation_id = self._ensure_active()
        with self._in_flight_guard(conversation_id):
            self.store.append_message(conversation_id, Message.chat("user", prompt))
            payload = await self.relay.image(prompt)
            self._require_content(payload)
            message = Message.image("model", payload)
            self.store.append_message(conversation_id, message)
        return message

    @staticmethod
    def title(conversation: Conversation) -> str:
        """Label for history listings: the first user chat message."""
        for message in conversation.messages:
            if message.role == "user" and message.content_type == "chat":
                return message.content
        return UNTITLED

    def _ensure_active(self) -> str:
        active_id = self.store.active_id
        if active_id is None or active_id not in self.store.conversations:
            return self.store.create_conversation()
        return active_id

    def _select_default(self) -> str:
        listing = self.store.list_conversations()
        if not listing:
            return self.store.create_conversation()
        conversation_id = listing[0][0]
        self.store.select_conversation(conversation_id)
        return conversation_id

    @staticmethod
    def _require_content(content: str) -> None:
        if not content:
            raise RelayRequestError("Relay returned an empty response.", status_code=502)

    @contextmanager
    def _in_flight_guard(self, conversation_id: str) -> Iterator[None]:
        if conversation_id in self._in_flight:
            raise RequestInProgress(conversation_id)
        self._in_flight.add(conversation_id)
        try:
            yield
        finally:
            self._in_flight.discard(conversation_id)
            logger.debug("request_settled", extra={"conversation_id": conversation_id})
