"""
Unit Tests for the Relay Endpoint

Exercises POST /api/proxy end to end with a mocked upstream transport.
"""

import pytest
from fastapi.testclient import TestClient

from paichat.api.main import app, app_state

HISTORY = [{"role": "user", "parts": [{"text": "hi"}]}]


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def mocked_upstream(upstream):
    """Route relay upstream calls through the recording mock transport."""
    original_state = app_state.copy()
    app_state["http_client"] = upstream.client()
    try:
        yield upstream
    finally:
        app_state.update(original_state)


class TestChatRequests:
    def test_chat_round_trip(self, client, mocked_upstream, chat_payload, api_key):
        mocked_upstream.respond(200, chat_payload("Hello there"))

        response = client.post("/api/proxy", json={"type": "chat", "history": HISTORY})

        assert response.status_code == 200
        assert response.json() == {"response": "Hello there", "type": "chat"}
        assert mocked_upstream.requests[0].url.params["key"] == api_key

    def test_type_defaults_to_chat(self, client, mocked_upstream, chat_payload):
        mocked_upstream.respond(200, chat_payload("ok"))

        response = client.post("/api/proxy", json={"history": HISTORY})

        assert response.status_code == 200
        assert response.json()["type"] == "chat"

    def test_missing_history_returns_400(self, client, mocked_upstream):
        response = client.post("/api/proxy", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Chat history is missing."}
        assert mocked_upstream.requests == []

    def test_empty_body_returns_400(self, client, mocked_upstream):
        response = client.post("/api/proxy")

        assert response.status_code == 400
        assert response.json() == {"error": "Chat history is missing."}

    def test_upstream_failure_returns_500_with_detail(self, client, mocked_upstream):
        mocked_upstream.respond(429, text="quota exceeded")

        response = client.post("/api/proxy", json={"history": HISTORY})

        assert response.status_code == 500
        assert response.json() == {"error": "Chat API Error: quota exceeded"}

    def test_placeholder_when_upstream_shape_unexpected(self, client, mocked_upstream):
        mocked_upstream.respond(200, {"candidates": []})

        response = client.post("/api/proxy", json={"history": HISTORY})

        assert response.status_code == 200
        assert response.json()["response"] == "Sorry, I couldn't get a valid chat response."


class TestImageRequests:
    def test_missing_project_reported_before_missing_prompt(self, client, mocked_upstream):
        response = client.post("/api/proxy", json={"type": "image"})

        assert response.status_code == 500
        assert response.json() == {"error": "Project ID not configured."}

    def test_missing_project_with_prompt(self, client, mocked_upstream):
        response = client.post("/api/proxy", json={"type": "image", "prompt": "a cat"})

        assert response.status_code == 500
        assert response.json() == {"error": "Project ID not configured."}
        assert mocked_upstream.requests == []

    def test_missing_prompt_returns_400(self, client, mocked_upstream, project_id):
        response = client.post("/api/proxy", json={"type": "image"})

        assert response.status_code == 400
        assert response.json() == {"error": "Image prompt is missing."}

    def test_image_round_trip(self, client, mocked_upstream, project_id):
        mocked_upstream.respond(200, {"predictions": [{"bytesBase64Encoded": "aGVsbG8="}]})

        response = client.post("/api/proxy", json={"type": "image", "prompt": "a cat"})

        assert response.status_code == 200
        assert response.json() == {"response": "aGVsbG8=", "type": "image"}
        assert project_id in mocked_upstream.requests[0].url.path

    def test_no_predictions_returns_500(self, client, mocked_upstream, project_id):
        mocked_upstream.respond(200, {"predictions": []})

        response = client.post("/api/proxy", json={"type": "image", "prompt": "a cat"})

        assert response.status_code == 500
        assert response.json() == {"error": "API returned no predictions."}


class TestConfigurationAndProtocol:
    def test_missing_credential_returns_500(self, client, mocked_upstream, monkeypatch):
        from paichat.config import clear_settings_cache

        monkeypatch.delenv("GEMINI_API_KEY")
        clear_settings_cache()

        response = client.post("/api/proxy", json={})

        assert response.status_code == 500
        assert response.json() == {"error": "API key not configured."}

    @pytest.mark.parametrize("method", ["get", "put", "delete", "patch"])
    def test_other_methods_return_405(self, client, method):
        response = client.request(method.upper(), "/api/proxy")

        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}

    def test_malformed_json_returns_400(self, client):
        response = client.post(
            "/api/proxy",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request body")

    def test_wrong_history_type_returns_400(self, client):
        response = client.post("/api/proxy", json={"history": "hi"})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request body")

    def test_missing_credential_reported_before_body_errors(self, client, monkeypatch):
        from paichat.config import clear_settings_cache

        monkeypatch.delenv("GEMINI_API_KEY")
        clear_settings_cache()

        response = client.post("/api/proxy", json={"history": "hi"})

        assert response.status_code == 500
        assert response.json() == {"error": "API key not configured."}

    def test_missing_project_reported_before_body_errors(self, client, mocked_upstream):
        response = client.post("/api/proxy", json={"type": "image", "prompt": 123})

        assert response.status_code == 500
        assert response.json() == {"error": "Project ID not configured."}
        assert mocked_upstream.requests == []

    def test_non_string_type_falls_through_to_chat(self, client, mocked_upstream, chat_payload):
        mocked_upstream.respond(200, chat_payload("ok"))

        response = client.post("/api/proxy", json={"type": 7, "history": HISTORY})

        assert response.status_code == 200
        assert response.json() == {"response": "ok", "type": "chat"}

    def test_root_describes_service(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "PAI Chat Relay"
