"""Client-side pieces: relay HTTP client and chat session controller."""

from paichat.client.relay_client import RelayClient
from paichat.client.session import ChatSession

__all__ = ["ChatSession", "RelayClient"]
