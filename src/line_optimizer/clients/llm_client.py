"""Claude API wrapper with async support and retry logic."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import anthropic
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-haiku-4-5-20251001"

# Only transport hiccups are retried; auth and request errors surface at once.
TRANSIENT_ERRORS = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.InternalServerError,
)


@dataclass
class LLMResponse:
    """Response from the LLM including usage metadata."""

    text: str
    input_tokens: int
    output_tokens: int


class LLMClient:
    """Async Claude API client with exponential-backoff retries."""

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        kwargs: dict = {}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.AsyncAnthropic(**kwargs)
        self._token_log: list[tuple[str, int, int]] = []  # (model, input_tokens, output_tokens)

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    async def _call_api(
        self,
        messages: list[dict],
        system: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> anthropic.types.Message:
        """Make the actual API call with retry logic."""
        kwargs: dict = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        return await self.client.messages.create(**kwargs)

    async def complete(
        self,
        messages: list[dict],
        system: str = "",
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """Send a full message list and return the text of the reply with usage."""
        logger.debug("LLM call: model=%s, messages=%d", model, len(messages))
        try:
            message = await self._call_api(
                messages=messages,
                system=system,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception:
            logger.error("LLM call failed", exc_info=True)
            raise
        input_tokens = message.usage.input_tokens
        output_tokens = message.usage.output_tokens
        logger.debug("LLM response: %d input, %d output tokens", input_tokens, output_tokens)
        self._token_log.append((model, input_tokens, output_tokens))
        text = "".join(
            block.text for block in message.content if getattr(block, "type", "text") == "text"
        )
        return LLMResponse(
            text=text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    async def generate(
        self,
        prompt: str,
        system: str = "",
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """Send a single prompt to Claude and return the text response with usage."""
        return await self.complete(
            messages=[{"role": "user", "content": prompt}],
            system=system,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    def start_chat(
        self,
        system: str,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> ChatSession:
        """Create a multi-turn conversation. No request is made until the first send."""
        return ChatSession(
            llm=self,
            system=system,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    def get_token_summary(self) -> dict:
        """Return accumulated token usage and reset the log."""
        summary = {
            "input": sum(t[1] for t in self._token_log),
            "output": sum(t[2] for t in self._token_log),
            "calls": list(self._token_log),
        }
        self._token_log.clear()
        return summary


@dataclass
class ChatSession:
    """A conversation with a fixed system instruction.

    The Messages API keeps no state between requests, so every send carries
    the whole exchange so far.
    """

    llm: LLMClient
    system: str
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_tokens: int = 2048
    messages: list[dict] = field(default_factory=list)

    async def send(self, text: str) -> LLMResponse:
        """Append a user turn, request a reply and record it.

        If the request fails the user turn is removed again so the message
        list still alternates between user and assistant.
        """
        self.messages.append({"role": "user", "content": text})
        try:
            response = await self.llm.complete(
                messages=list(self.messages),
                system=self.system,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception:
            self.messages.pop()
            raise
        if not response.text.strip():
            self.messages.pop()
            return response
        self.messages.append({"role": "assistant", "content": response.text})
        return response

    @property
    def turns(self) -> int:
        return sum(1 for m in self.messages if m["role"] == "user")
