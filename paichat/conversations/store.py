"""Client-side conversation history backed by a key/value storage."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import TypeAdapter, ValidationError

from paichat.config import DEFAULT_STORAGE_KEY
from paichat.conversations.storage import Storage
from paichat.errors import NotFound, StorageCorruption
from paichat.models.conversation import Conversation, Message

logger = logging.getLogger(__name__)

CONVERSATION_ID_PREFIX = "chat_"

_LEGACY_MESSAGES = TypeAdapter(list[Message])


def _epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def decode_conversation(raw: Any) -> tuple[Conversation, bool]:
    """
    Decode one persisted conversation record.

    Tries the current schema first, then the legacy bare message list.
    Returns the conversation and whether it came from the legacy shape.

    Raises:
        StorageCorruption: If the record matches neither schema
    """
    try:
        return Conversation.model_validate(raw), False
    except ValidationError as current_error:
        try:
            messages = _LEGACY_MESSAGES.validate_python(raw)
        except ValidationError:
            raise StorageCorruption(
                "Conversation record matches neither the current nor the legacy schema",
                context={"errors": current_error.error_count()},
            ) from current_error
    return Conversation(messages=messages, is_pinned=False), True


class ConversationStore:
    """
    Own the conversation set and the active selection for one client.

    The whole set lives under a single storage key and is rewritten after
    every mutation. Records that fail to decode are kept verbatim and written
    back with the rest, so they are never lost by a save.
    """

    def __init__(
        self,
        storage: Storage,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._storage = storage
        self._storage_key = storage_key
        self._clock = clock or _epoch_millis
        self.conversations: dict[str, Conversation] = {}
        self.active_id: str | None = None
        self.migrated_ids: list[str] = []
        self.unreadable: dict[str, Any] = {}

    @property
    def storage_key(self) -> str:
        return self._storage_key

    def open(self) -> dict[str, Conversation]:
        """Load persisted state and write back any entries migrated on read."""
        conversations = self.load()
        if self.migrated_ids:
            self.save()
        return conversations

    def load(self) -> dict[str, Conversation]:
        """Read the conversation set, falling back to empty on unusable data."""
        raw = self._storage.get_item(self._storage_key)
        try:
            conversations, migrated, unreadable = self._parse_blob(raw)
        except StorageCorruption as exc:
            logger.warning(
                f"Discarding unreadable conversation history: {exc}",
                extra={"storage_key": self._storage_key, **exc.context},
            )
            conversations, migrated, unreadable = {}, [], {}

        self.conversations = conversations
        self.migrated_ids = migrated
        self.unreadable = unreadable
        if self.active_id not in conversations:
            self.active_id = None
        return self.conversations

    def save(self, conversations: dict[str, Conversation] | None = None) -> None:
        """Overwrite persisted state with the full conversation set."""
        if conversations is not None:
            self.conversations = conversations
        payload = dict(self.unreadable)
        payload.update(
            (conversation_id, conversation.to_storage())
            for conversation_id, conversation in self.conversations.items()
        )
        self._storage.set_item(self._storage_key, json.dumps(payload))

    def create_conversation(self) -> str:
        """Insert an empty, unpinned conversation and make it active."""
        conversation_id = self._new_id()
        self.conversations[conversation_id] = Conversation.empty()
        self.active_id = conversation_id
        self.save()
        logger.info("conversation_created", extra={"conversation_id": conversation_id})
        return conversation_id

    def get_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise NotFound(conversation_id)
        return conversation

    def select_conversation(self, conversation_id: str) -> list[Message]:
        """Make a conversation active and return its messages for rendering."""
        conversation = self.get_conversation(conversation_id)
        self.active_id = conversation_id
        return list(conversation.messages)

    def append_message(self, conversation_id: str, message: Message) -> None:
        conversation = self.get_conversation(conversation_id)
        conversation.messages.append(message)
        self.save()

    def toggle_pin(self, conversation_id: str) -> bool:
        """Flip the pin flag and return the new value."""
        conversation = self.get_conversation(conversation_id)
        conversation.is_pinned = not conversation.is_pinned
        self.save()
        return conversation.is_pinned

    def delete_conversation(self, conversation_id: str) -> bool:
        """
        Remove a conversation.

        Returns True when the deleted conversation was the active one; the
        caller then has to select or create another conversation.
        """
        self.get_conversation(conversation_id)
        del self.conversations[conversation_id]
        was_active = self.active_id == conversation_id
        if was_active:
            self.active_id = None
        self.save()
        logger.info(
            "conversation_deleted",
            extra={"conversation_id": conversation_id, "was_active": was_active},
        )
        return was_active

    def list_conversations(self) -> list[tuple[str, Conversation]]:
        """Pinned first, then newest identifier first within each group."""
        newest_first = sorted(self.conversations.items(), key=lambda item: item[0], reverse=True)
        return sorted(newest_first, key=lambda item: not item[1].is_pinned)

    def _new_id(self) -> str:
        stamp = self._clock()
        while self._is_taken(f"{CONVERSATION_ID_PREFIX}{stamp}"):
            stamp += 1
        return f"{CONVERSATION_ID_PREFIX}{stamp}"

    def _is_taken(self, conversation_id: str) -> bool:
        return conversation_id in self.conversations or conversation_id in self.unreadable

    def _parse_blob(
        self, raw: str | None
    ) -> tuple[dict[str, Conversation], list[str], dict[str, Any]]:
        if raw is None:
            return {}, [], {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageCorruption("Conversation history is not valid JSON") from exc
        if not isinstance(data, dict):
            raise StorageCorruption(
                "Conversation history is not a JSON object",
                context={"found": type(data).__name__},
            )

        conversations: dict[str, Conversation] = {}
        migrated: list[str] = []
        unreadable: dict[str, Any] = {}
        for conversation_id, record in data.items():
            try:
                conversation, was_legacy = decode_conversation(record)
            except StorageCorruption as exc:
                logger.warning(
                    f"Skipping unreadable conversation {conversation_id}",
                    extra={"conversation_id": conversation_id, **exc.context},
                )
                unreadable[conversation_id] = record
                continue
            if was_legacy:
                logger.info(
                    f"Updating old chat format for ID: {conversation_id}",
                    extra={"conversation_id": conversation_id},
                )
                migrated.append(conversation_id)
            conversations[conversation_id] = conversation
        return conversations, migrated, unreadable
