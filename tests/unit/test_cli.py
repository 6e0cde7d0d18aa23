"""
Unit tests for the command line interface.

Commands run through click's CliRunner with the session factory patched to
an in-memory store and a relay double.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from paichat import settings_store
from paichat.cli import _resolve_conversation, _should_exit_chat, cli
from paichat.client import ChatSession
from paichat.errors import NotFound, RelayRequestError
from paichat.models.conversation import Message


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def session(store, mock_relay):
    return ChatSession(store, mock_relay)


@pytest.fixture
def patched_session(session):
    with patch("paichat.cli._build_session", return_value=session):
        yield session


class TestHelpers:
    @pytest.mark.parametrize("query", ["exit", "QUIT", " /exit ", ":q"])
    def test_exit_words(self, query):
        assert _should_exit_chat(query) is True

    def test_regular_text_does_not_exit(self):
        assert _should_exit_chat("exit strategy for this bug?") is False

    def test_resolve_by_position_follows_listing(self, session):
        older = session.new_conversation()
        newer = session.new_conversation()
        session.toggle_pin(older)

        assert _resolve_conversation(session, "1") == older
        assert _resolve_conversation(session, "2") == newer

    def test_resolve_by_id_and_current(self, session):
        conversation_id = session.new_conversation()

        assert _resolve_conversation(session, conversation_id) == conversation_id
        assert _resolve_conversation(session, None) == conversation_id

    @pytest.mark.parametrize("reference", ["9", "chat_missing"])
    def test_resolve_unknown_raises(self, session, reference):
        session.new_conversation()

        with pytest.raises(NotFound):
            _resolve_conversation(session, reference)


class TestBasicCommands:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "chat" in result.output
        assert "connect" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_connect_saves_relay_url(self, runner):
        result = runner.invoke(cli, ["connect", "https://relay.example.com/api/proxy"])

        assert result.exit_code == 0
        assert "Relay URL saved" in result.output
        assert settings_store.get_value(settings_store.RELAY_URL_KEY) == (
            "https://relay.example.com/api/proxy"
        )

    def test_connect_rejects_invalid_url(self, runner):
        result = runner.invoke(cli, ["connect", "relay.example.com"])

        assert result.exit_code == 1
        assert "Invalid relay URL" in result.output
        assert settings_store.get_value(settings_store.RELAY_URL_KEY) is None


class TestHistoryCommand:
    def test_empty_history(self, runner, patched_session):
        result = runner.invoke(cli, ["history"])

        assert result.exit_code == 0
        assert "No conversations yet." in result.output

    def test_lists_saved_conversations(self, runner, patched_session):
        conversation_id = patched_session.new_conversation()
        patched_session.store.append_message(conversation_id, Message.chat("user", "hello there"))

        result = runner.invoke(cli, ["history"])

        assert result.exit_code == 0
        assert conversation_id in result.output
        assert "hello there" in result.output


class TestAskCommand:
    def test_prints_reply_and_persists(self, runner, patched_session, mock_relay):
        result = runner.invoke(cli, ["ask", "What is TCP?"])

        assert result.exit_code == 0
        assert "Hello from the model" in result.output
        mock_relay.chat.assert_awaited_once_with(
            [{"role": "user", "parts": [{"text": "What is TCP?"}]}]
        )
        messages = patched_session.store.get_conversation(patched_session.active_id).messages
        assert [m.role for m in messages] == ["user", "model"]

    def test_fresh_history_gets_exactly_one_conversation(self, runner, patched_session):
        result = runner.invoke(cli, ["ask", "What is TCP?"])

        assert result.exit_code == 0
        assert list(patched_session.store.conversations) == [patched_session.active_id]

    def test_relay_error_exits_nonzero(self, runner, patched_session, mock_relay):
        mock_relay.chat.side_effect = RelayRequestError("Chat API Error: boom", status_code=500)

        result = runner.invoke(cli, ["ask", "What is TCP?"])

        assert result.exit_code == 1
        assert "Chat API Error: boom" in result.output


class TestImageCommand:
    def test_writes_decoded_image(self, runner, patched_session, mock_relay, tmp_path):
        output = tmp_path / "cat.png"

        result = runner.invoke(cli, ["image", "a cat", "--output", str(output)])

        assert result.exit_code == 0
        assert output.read_bytes() == b"hello"
        mock_relay.image.assert_awaited_once_with("a cat")
        assert len(patched_session.store.conversations) == 1

    def test_invalid_payload_reported(self, runner, patched_session, mock_relay, tmp_path):
        mock_relay.image.return_value = "not base64!!"

        result = runner.invoke(cli, ["image", "a cat", "--output", str(tmp_path / "x.png")])

        assert result.exit_code == 1
        assert "invalid image data" in result.output


class TestChatCommand:
    def test_repl_round_trip(self, runner, patched_session, mock_relay):
        result = runner.invoke(cli, ["chat"], input="hi\n/list\nexit\n")

        assert result.exit_code == 0
        assert "Hello from the model" in result.output
        assert "Conversations" in result.output
        assert "Goodbye!" in result.output
        mock_relay.chat.assert_awaited_once()

    def test_repl_reports_errors_and_continues(self, runner, patched_session, mock_relay):
        mock_relay.chat.side_effect = RelayRequestError("Failed to fetch response.", 502)

        result = runner.invoke(cli, ["chat"], input="hi\n/open 42\n")

        assert result.exit_code == 0
        assert "Error: Failed to fetch response." in result.output
        assert "Conversation not found: 42" in result.output
        assert "Goodbye!" in result.output

    def test_repl_new_and_pin(self, runner, patched_session):
        result = runner.invoke(cli, ["chat"], input="/new\n/pin\n/exit\n")

        assert result.exit_code == 0
        assert "New conversation" in result.output
        assert "Pinned" in result.output
        assert any(c.is_pinned for c in patched_session.store.conversations.values())


class TestStatusCommand:
    def test_shows_relay_and_counts(self, runner, patched_session):
        patched_session.new_conversation()

        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "http://localhost:8000/api/proxy" in result.output
        assert "Conversations" in result.output


class TestReplImageCommand:
    def test_invalid_image_payload_does_not_end_session(self, runner, patched_session, mock_relay):
        mock_relay.image.return_value = "not base64!!"

        result = runner.invoke(cli, ["chat"], input="/image a cat\nhi\nexit\n")

        assert result.exit_code == 0
        assert "invalid image data" in result.output
        assert "Hello from the model" in result.output
        assert "Goodbye!" in result.output


class TestConnectHistoryOption:
    def test_saves_history_path(self, runner, tmp_path):
        history_file = tmp_path / "elsewhere" / "chats.json"

        result = runner.invoke(
            cli,
            ["connect", "https://relay.example.com/api/proxy", "--history", str(history_file)],
        )

        assert result.exit_code == 0
        assert settings_store.get_value(settings_store.HISTORY_PATH_KEY) == str(history_file)


class TestResetCommand:
    def _seed(self, tmp_path):
        settings_store.set_value(settings_store.RELAY_URL_KEY, "https://relay.example.com")
        history_file = tmp_path / "history.json"
        history_file.write_text("{}", encoding="utf-8")
        return history_file

    def test_clears_config_and_history(self, runner, tmp_path):
        history_file = self._seed(tmp_path)

        result = runner.invoke(cli, ["reset", "--yes"])

        assert result.exit_code == 0
        assert "Reset complete." in result.output
        assert not settings_store.CONFIG_PATH.exists()
        assert not history_file.exists()

    def test_keep_history(self, runner, tmp_path):
        history_file = self._seed(tmp_path)

        result = runner.invoke(cli, ["reset", "--yes", "--keep-history"])

        assert result.exit_code == 0
        assert not settings_store.CONFIG_PATH.exists()
        assert history_file.exists()

    def test_cancelled_without_confirmation(self, runner, tmp_path):
        history_file = self._seed(tmp_path)

        result = runner.invoke(cli, ["reset"], input="n\n")

        assert result.exit_code == 0
        assert "Reset cancelled." in result.output
        assert settings_store.CONFIG_PATH.exists()
        assert history_file.exists()
