"""Shared test fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from line_optimizer.clients.llm_client import LLMClient, LLMResponse
from line_optimizer.models.artifact import Artifact


def make_response(text: str, input_tokens: int = 100, output_tokens: int = 50) -> LLMResponse:
    return LLMResponse(text=text, input_tokens=input_tokens, output_tokens=output_tokens)


class FakeChat:
    """Stand-in for ChatSession that returns scripted replies in order.

    A reply that is an exception instance is raised instead of returned.
    Once the script runs out every turn is answered with an acknowledgement.
    """

    def __init__(self, replies: list | None = None):
        self.replies = list(replies or [])
        self.sent: list[str] = []

    async def send(self, text: str) -> LLMResponse:
        self.sent.append(text)
        reply = self.replies.pop(0) if self.replies else "了解しました"
        if isinstance(reply, BaseException):
            raise reply
        return make_response(reply)

    @property
    def turns(self) -> int:
        return len(self.sent)


@pytest.fixture
def sample_source_text() -> str:
    return """いつもご利用いただきありがとうございます(^_^)

★☆★ 春の大感謝セール開催のお知らせ ★☆★

3月1日から3月15日までの期間、全商品が最大30%オフになります！！
さらに、期間中に5,000円以上お買い上げのお客様には、オリジナルエコバッグをプレゼント♪
数量限定ですので、お早めにご来店ください m(_ _)m

店舗スタッフ一同、皆さまのご来店を心よりお待ちしております。
"""


@pytest.fixture
def sample_artifact() -> Artifact:
    return Artifact(text="✨春の大感謝セール✨\n3月1日から15日まで全商品最大30%オフ")


@pytest.fixture
def fake_chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def mock_llm_client(fake_chat) -> LLMClient:
    """Create a mock LLM client whose conversations are served by ``fake_chat``."""
    client = AsyncMock(spec=LLMClient)
    client.generate = AsyncMock(return_value=make_response("生成されたメッセージ"))
    client.start_chat = MagicMock(return_value=fake_chat)
    return client
