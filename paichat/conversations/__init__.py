"""Conversation persistence for the terminal client's chat history."""

from .storage import JsonFileStorage, MemoryStorage, Storage
from .store import ConversationStore, decode_conversation

__all__ = [
    "ConversationStore",
    "JsonFileStorage",
    "MemoryStorage",
    "Storage",
    "decode_conversation",
]
