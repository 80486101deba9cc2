"""Tests for LLMClient (Claude API wrapper) and ChatSession."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from line_optimizer.clients.llm_client import ChatSession, LLMClient, LLMResponse


def _make_api_message(text: str, input_tokens: int = 100, output_tokens: int = 50) -> MagicMock:
    """Build a mock anthropic Message-like object."""
    message = MagicMock()
    message.usage.input_tokens = input_tokens
    message.usage.output_tokens = output_tokens
    message.content = [MagicMock(type="text", text=text)]
    return message


def _auth_error() -> anthropic.AuthenticationError:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    return anthropic.AuthenticationError(
        "invalid x-api-key", response=httpx.Response(401, request=request), body=None
    )


@pytest.fixture
def api():
    """Patch AsyncAnthropic and expose the mocked messages.create."""
    with patch("line_optimizer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(return_value=_make_api_message("hello world"))
        mock_cls.return_value = mock_client
        yield mock_client.messages.create


class TestLLMClientInit:
    def test_init_default_creates_client_with_no_kwargs(self):
        """Creates AsyncAnthropic with no extra kwargs when no args supplied."""
        with patch("line_optimizer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient()
            mock_cls.assert_called_once_with()

    def test_init_with_both_params_passes_both(self):
        """Passes both api_key and timeout when both are supplied."""
        with patch("line_optimizer.clients.llm_client.anthropic.AsyncAnthropic") as mock_cls:
            LLMClient(api_key="test-key", timeout=30.0)
            mock_cls.assert_called_once_with(api_key="test-key", timeout=30.0)


class TestLLMClientGenerate:
    async def test_generate_returns_llm_response(self, api):
        """generate() wraps API response fields into an LLMResponse dataclass."""
        llm = LLMClient()
        result = await llm.generate("say hello")

        assert isinstance(result, LLMResponse)
        assert result.text == "hello world"
        assert result.input_tokens == 100
        assert result.output_tokens == 50

    async def test_generate_sends_single_user_message(self, api):
        llm = LLMClient()
        await llm.generate("prompt text", model="test-model", temperature=0.2, max_tokens=512)

        kwargs = api.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "prompt text"}]
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 512
        assert "system" not in kwargs

    async def test_generate_passes_system(self, api):
        llm = LLMClient()
        await llm.generate("prompt", system="be brief")
        assert api.call_args.kwargs["system"] == "be brief"

    async def test_joins_text_blocks(self, api):
        message = _make_api_message("")
        message.content = [
            MagicMock(type="text", text="前半"),
            MagicMock(type="thinking", text="ignored"),
            MagicMock(type="text", text="後半"),
        ]
        api.return_value = message

        result = await LLMClient().generate("prompt")

        assert result.text == "前半後半"

    async def test_auth_error_not_retried(self, api):
        api.side_effect = _auth_error()
        llm = LLMClient()

        with pytest.raises(anthropic.AuthenticationError):
            await llm.generate("prompt")

        assert api.call_count == 1

    async def test_token_log_stores_model_and_counts(self, api):
        """_token_log entries are (model, input_tokens, output_tokens) tuples."""
        api.return_value = _make_api_message("resp", input_tokens=20, output_tokens=8)
        llm = LLMClient()
        await llm.generate("prompt", model="claude-haiku-4-5-20251001")

        model, inp, out = llm._token_log[0]
        assert model == "claude-haiku-4-5-20251001"
        assert inp == 20
        assert out == 8


class TestLLMClientTokenSummary:
    def test_get_token_summary_returns_correct_totals(self):
        """get_token_summary() sums input and output tokens across all log entries."""
        with patch("line_optimizer.clients.llm_client.anthropic.AsyncAnthropic"):
            llm = LLMClient()
            llm._token_log = [
                ("claude-haiku-4-5-20251001", 100, 50),
                ("claude-haiku-4-5-20251001", 200, 80),
            ]

        summary = llm.get_token_summary()

        assert summary["input"] == 300
        assert summary["output"] == 130
        assert len(summary["calls"]) == 2

    def test_get_token_summary_clears_log_after_return(self):
        with patch("line_optimizer.clients.llm_client.anthropic.AsyncAnthropic"):
            llm = LLMClient()
            llm._token_log = [("claude-haiku-4-5-20251001", 50, 25)]

        llm.get_token_summary()
        second_summary = llm.get_token_summary()

        assert second_summary["input"] == 0
        assert second_summary["calls"] == []


class TestChatSession:
    def test_start_chat_makes_no_request(self, api):
        llm = LLMClient()
        chat = llm.start_chat(system="instruction", model="test-model")

        assert isinstance(chat, ChatSession)
        assert chat.system == "instruction"
        assert chat.messages == []
        api.assert_not_called()

    async def test_send_carries_full_history(self, api):
        api.side_effect = [_make_api_message("first reply"), _make_api_message("second reply")]
        chat = LLMClient().start_chat(system="instruction")

        await chat.send("turn one")
        result = await chat.send("turn two")

        assert result.text == "second reply"
        second_call = api.call_args_list[1].kwargs
        assert second_call["system"] == "instruction"
        assert second_call["messages"] == [
            {"role": "user", "content": "turn one"},
            {"role": "assistant", "content": "first reply"},
            {"role": "user", "content": "turn two"},
        ]
        assert chat.turns == 2

    async def test_failed_send_rolls_back_user_turn(self, api):
        api.side_effect = [_make_api_message("ok"), _auth_error()]
        chat = LLMClient().start_chat(system="instruction")
        await chat.send("turn one")

        with pytest.raises(anthropic.AuthenticationError):
            await chat.send("turn two")

        assert [m["role"] for m in chat.messages] == ["user", "assistant"]

    async def test_empty_reply_not_recorded(self, api):
        api.return_value = _make_api_message("   ")
        chat = LLMClient().start_chat(system="instruction")

        result = await chat.send("turn one")

        assert result.text == "   "
        assert chat.messages == []
