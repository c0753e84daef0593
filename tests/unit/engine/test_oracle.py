"""Tests for the decision oracle adapter."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from doubles import decision
from lostworld.core.config import OracleSettings
from lostworld.core.exceptions import (
    OracleConnectionError,
    OracleRateLimitError,
    OracleResponseError,
    OracleTimeoutError,
    OracleTransportError,
)
from lostworld.engine.oracle import OpenAIDecisionOracle, parse_decision_text
from lostworld.engine.snapshot import WorldSnapshot, build_snapshot
from lostworld.models import PlayerState
from lostworld.store import AttributeSchemaLibrary, EntityMemoryStore
from lostworld.timeline import TimelineLog


REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _oracle(client: MagicMock) -> OpenAIDecisionOracle:
    settings = OracleSettings(model="test/model", timeout_seconds=5)
    return OpenAIDecisionOracle(settings=settings, max_generations=10, client=client)


@pytest.fixture
def snapshot(
    store: EntityMemoryStore,
    timeline: TimelineLog,
    library: AttributeSchemaLibrary,
    player: PlayerState,
) -> WorldSnapshot:
    return build_snapshot(turn=1, timeline=timeline, store=store, library=library, player=player)


class TestParseDecisionText:
    """Tests for parse_decision_text."""

    def test_plain_json(self) -> None:
        """Test a bare JSON object parses into a payload."""
        payload = parse_decision_text(json.dumps(decision()))

        assert payload.turn_goal is not None
        assert payload.turn_goal.text == "Find the smith"
        assert payload.turn_progression == "The market wakes up."

    def test_code_fence(self) -> None:
        """Test a markdown fence around the JSON is tolerated."""
        text = "```json\n" + json.dumps(decision()) + "\n```"

        assert parse_decision_text(text).turn_progression == "The market wakes up."

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty(self, text: str) -> None:
        """Test empty answers are rejected."""
        with pytest.raises(OracleResponseError, match="empty"):
            parse_decision_text(text)

    def test_not_json(self) -> None:
        """Test prose answers are rejected."""
        with pytest.raises(OracleResponseError, match="not valid JSON"):
            parse_decision_text("The market wakes up.")

    def test_not_object(self) -> None:
        """Test non-object JSON is rejected."""
        with pytest.raises(OracleResponseError, match="not a JSON object") as exc_info:
            parse_decision_text("[1, 2]")

        assert exc_info.value.details["json_type"] == "list"

    def test_wrong_shape(self) -> None:
        """Test an object with mistyped fields is rejected."""
        with pytest.raises(OracleResponseError, match="decision shape"):
            parse_decision_text(json.dumps({"entityMoves": "north"}))

    def test_response_errors_are_transport_errors(self) -> None:
        """Test parse failures count as transport failures."""
        with pytest.raises(OracleTransportError):
            parse_decision_text("nope")


class TestOpenAIDecisionOracle:
    """Tests for OpenAIDecisionOracle."""

    def test_single_request(self, snapshot: WorldSnapshot) -> None:
        """Test one request is sent with the snapshot and timeout."""
        client = MagicMock()
        client.chat.completions.create.return_value = _completion(json.dumps(decision()))

        payload = _oracle(client).decide(snapshot)

        assert payload.turn_goal.change_reason == "The sword needs sharpening"
        client.chat.completions.create.assert_called_once()
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test/model"
        assert kwargs["timeout"] == 5
        assert kwargs["response_format"] == {"type": "json_object"}
        system, user = kwargs["messages"]
        assert "At most 10 entries in entityGeneration" in system["content"]
        assert user["content"] == snapshot.to_prompt_text()

    def test_timeout(self, snapshot: WorldSnapshot) -> None:
        """Test SDK timeouts map to OracleTimeoutError."""
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APITimeoutError(request=REQUEST)

        with pytest.raises(OracleTimeoutError):
            _oracle(client).decide(snapshot)

        assert client.chat.completions.create.call_count == 1

    def test_connection_error(self, snapshot: WorldSnapshot) -> None:
        """Test unreachable providers map to OracleConnectionError."""
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APIConnectionError(request=REQUEST)

        with pytest.raises(OracleConnectionError):
            _oracle(client).decide(snapshot)

    def test_rate_limit(self, snapshot: WorldSnapshot) -> None:
        """Test rate limits carry the retry-after hint."""
        response = httpx.Response(429, request=REQUEST, headers={"retry-after": "3"})
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.RateLimitError(
            "slow down", response=response, body=None
        )

        with pytest.raises(OracleRateLimitError) as exc_info:
            _oracle(client).decide(snapshot)

        assert exc_info.value.details["retry_after_seconds"] == 3.0

    def test_status_error(self, snapshot: WorldSnapshot) -> None:
        """Test other API errors map to OracleTransportError with the status."""
        response = httpx.Response(500, request=REQUEST)
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.InternalServerError(
            "boom", response=response, body=None
        )

        with pytest.raises(OracleTransportError) as exc_info:
            _oracle(client).decide(snapshot)

        assert exc_info.value.details["status_code"] == 500

    def test_no_choices(self, snapshot: WorldSnapshot) -> None:
        """Test an answer without choices is a response error."""
        client = MagicMock()
        client.chat.completions.create.return_value = SimpleNamespace(choices=[])

        with pytest.raises(OracleResponseError, match="no choices"):
            _oracle(client).decide(snapshot)

    def test_null_content(self, snapshot: WorldSnapshot) -> None:
        """Test a null message content is treated as empty."""
        client = MagicMock()
        client.chat.completions.create.return_value = _completion(None)

        with pytest.raises(OracleResponseError, match="empty"):
            _oracle(client).decide(snapshot)
