"""
Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import logging
from unittest.mock import AsyncMock

import httpx
import pytest

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires API keys and external services)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly enabled."""
    if config.getoption("--run-integration"):
        return
    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled (use --run-integration to enable)."
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    """
    Configure logging for tests.

    Sets up log capture and configures log levels.
    This fixture runs automatically for all tests.
    """
    caplog.set_level(logging.DEBUG)
    yield


# ============================================================================
# Environment and Configuration
# ============================================================================


TEST_API_KEY = "test-gemini-key-1234567890"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Ensure a clean, file-system isolated configuration for each test.

    Sets a test credential, removes the image project id, keeps history and
    CLI preferences inside tmp_path and clears the settings cache.
    """
    from paichat import settings_store
    from paichat.config import get_settings

    get_settings.cache_clear()

    monkeypatch.setenv("PAICHAT_ENV_SOURCE", "environment")
    monkeypatch.setenv("GEMINI_API_KEY", TEST_API_KEY)
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT_ID", raising=False)
    monkeypatch.delenv("GEMINI_IMAGE_AUTH", raising=False)
    monkeypatch.delenv("PAICHAT_RELAY_URL", raising=False)
    monkeypatch.setenv("PAICHAT_HISTORY_PATH", str(tmp_path / "history.json"))
    monkeypatch.setenv("PAICHAT_IMAGES_DIR", str(tmp_path / "images"))

    config_dir = tmp_path / ".paichat"
    monkeypatch.setattr(settings_store, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(settings_store, "CONFIG_PATH", config_dir / "config.json")

    yield

    get_settings.cache_clear()


@pytest.fixture
def api_key() -> str:
    """The credential configured by isolated_environment."""
    return TEST_API_KEY


@pytest.fixture
def project_id(monkeypatch):
    """Configure the Google Cloud project id needed for image generation."""
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT_ID", "test-project")
    from paichat.config import clear_settings_cache

    clear_settings_cache()
    return "test-project"


# ============================================================================
# Conversation Store
# ============================================================================


@pytest.fixture
def memory_storage():
    """Empty in-memory key/value storage."""
    from paichat.conversations import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def clock():
    """Deterministic millisecond clock advancing by 1000 per call."""

    class _Clock:
        def __init__(self):
            self.now = 1_700_000_000_000

        def __call__(self) -> int:
            self.now += 1000
            return self.now

    return _Clock()


@pytest.fixture
def store(memory_storage, clock):
    """Conversation store over in-memory storage with a deterministic clock."""
    from paichat.conversations import ConversationStore

    return ConversationStore(memory_storage, clock=clock)


# ============================================================================
# Relay / Upstream Doubles
# ============================================================================


@pytest.fixture
def mock_relay():
    """
    Relay client double.

    Usage:
        mock_relay.chat.return_value = "hello"
        mock_relay.image.return_value = "aGVsbG8="
    """
    relay = AsyncMock()
    relay.chat = AsyncMock(return_value="Hello from the model")
    relay.image = AsyncMock(return_value="aGVsbG8=")
    return relay


@pytest.fixture
def upstream():
    """
    Recording httpx.MockTransport for upstream calls.

    Usage:
        upstream.respond(200, {"candidates": [...]})
        client = upstream.client()
        ...
        assert upstream.requests[0].url.params["key"] == TEST_API_KEY
    """

    class _Upstream:
        def __init__(self):
            self.requests: list[httpx.Request] = []
            self.status_code = 200
            self.payload = {}
            self.text: str | None = None
            self.error: Exception | None = None

        def respond(self, status_code: int, payload=None, text: str | None = None):
            self.status_code = status_code
            self.payload = payload if payload is not None else {}
            self.text = text

        def raise_error(self, error: Exception):
            self.error = error

        def _handle(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if self.error is not None:
                raise self.error
            if self.text is not None:
                return httpx.Response(self.status_code, text=self.text)
            return httpx.Response(self.status_code, json=self.payload)

        def client(self) -> httpx.AsyncClient:
            return httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    return _Upstream()


@pytest.fixture
def chat_payload():
    """Factory for an upstream generateContent body with a single candidate."""

    def _payload(text: str) -> dict:
        return {
            "candidates": [
                {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
            ]
        }

    return _payload
