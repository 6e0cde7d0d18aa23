"""Server-side relay between the chat client and the upstream API."""

from paichat.relay.service import RelayService

__all__ = ["RelayService"]
