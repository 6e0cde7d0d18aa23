"""
LLM Provider Module

Upstream provider abstraction used by the relay.

Usage:
    from paichat.llm import GeminiProvider
    from paichat.config import get_settings

    provider = GeminiProvider.from_settings(get_settings().gemini)
    result = await provider.generate_text([{"role": "user", "parts": [{"text": "hi"}]}])
    print(result.content)
"""

from paichat.llm.base import BaseLLMProvider
from paichat.llm.google import CHAT_FALLBACK_TEXT, GeminiProvider
from paichat.llm.models import GenerationResult

__all__ = [
    "BaseLLMProvider",
    "CHAT_FALLBACK_TEXT",
    "GeminiProvider",
    "GenerationResult",
]
