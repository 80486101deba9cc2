"""Refinement loop: apply follow-up instructions to a generated message."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Literal

from line_optimizer.clients.llm_client import DEFAULT_MODEL, ChatSession, LLMClient
from line_optimizer.config import PolicyConfig
from line_optimizer.errors import (
    EmptyResponseError,
    RefinementFailedError,
    SessionStateError,
    ValidationError,
    ValidationReason,
    classify_llm_error,
)
from line_optimizer.models.artifact import Artifact, ArtifactOrigin, ChatTurn
from line_optimizer.pipeline.policy import (
    build_priming_prompt,
    build_refine_instruction,
    build_refine_prompt,
)
from line_optimizer.pipeline.transformer import enforce_length
from line_optimizer.utils.text_cleaner import clean_reply

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    SEEDED = "seeded"
    REFINING = "refining"


class RefinementSession:
    """Conversation state backing the edits of one message.

    The character limit and fixed fragments are set at construction and
    cannot change; a different limit needs a new session.
    """

    def __init__(
        self,
        max_length: int,
        fixed_instruction: str,
        chat: ChatSession,
        *,
        title: str | None = None,
        cta: str | None = None,
    ):
        self._max_length = max_length
        self._title = title
        self._cta = cta
        self.fixed_instruction = fixed_instruction
        self.history: list[ChatTurn] = []
        self.state = SessionState.IDLE
        self._chat: ChatSession | None = chat

    @property
    def max_length(self) -> int:
        return self._max_length

    @property
    def title(self) -> str | None:
        return self._title

    @property
    def cta(self) -> str | None:
        return self._cta

    @property
    def chat(self) -> ChatSession:
        if self._chat is None:
            raise SessionStateError("session has been reset")
        return self._chat

    @property
    def accepts_instructions(self) -> bool:
        return self.state in (SessionState.SEEDED, SessionState.REFINING)

    def record(
        self,
        role: Literal["user", "assistant"],
        display_text: str,
        prompt_text: str = "",
        is_error: bool = False,
    ) -> ChatTurn:
        turn = ChatTurn(
            role=role,
            display_text=display_text,
            prompt_text=prompt_text,
            is_error=is_error,
        )
        self.history.append(turn)
        return turn

    def reset(self) -> None:
        """Discard history and the conversation; the session returns to IDLE."""
        self.history.clear()
        self._chat = None
        self.state = SessionState.IDLE


class RefinementLoop:
    """Drive refinement sessions against a conversational model."""

    def __init__(
        self,
        llm: LLMClient,
        model: str = DEFAULT_MODEL,
        *,
        policy: PolicyConfig | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ):
        self.llm = llm
        self.model = model
        self.policy = policy or PolicyConfig()
        self.temperature = temperature
        self.max_tokens = max_tokens

    def start_session(
        self,
        max_length: int,
        title: str | None = None,
        cta: str | None = None,
    ) -> RefinementSession:
        """Build a new IDLE session. Makes no request."""
        instruction = build_refine_instruction(
            max_length,
            max_symbols=self.policy.max_symbols,
            title=title,
            cta=cta,
        )
        chat = self.llm.start_chat(
            system=instruction,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return RefinementSession(max_length, instruction, chat, title=title, cta=cta)

    async def seed(self, session: RefinementSession, artifact: Artifact, prime: bool = True) -> None:
        """Move an IDLE session to SEEDED.

        With ``prime`` the generated message is sent as the opening turn so the
        conversation starts with it in context. A failed priming exchange
        leaves the session IDLE.
        """
        if session.state is not SessionState.IDLE:
            raise SessionStateError(f"cannot seed a session in state {session.state.value}")
        if prime:
            chat = session.chat
            prompt = build_priming_prompt(artifact.text)
            try:
                response = await chat.send(prompt)
            except Exception as e:
                raise classify_llm_error(e, RefinementFailedError) from e
            session.record("user", artifact.text, prompt_text=prompt)
            session.record("assistant", clean_reply(response.text))
        session.state = SessionState.SEEDED
        logger.debug("Refinement session seeded (limit=%d, primed=%s)", session.max_length, prime)

    async def apply_instruction(
        self,
        session: RefinementSession,
        current: Artifact,
        instruction: str,
    ) -> Artifact:
        """Apply one instruction and return the full replacement message.

        ``current`` is restated in the turn because the user may have edited
        it since the last reply.

        Raises:
            ValidationError: blank instruction.
            SessionStateError: the session has not been seeded.
            AuthError / EmptyResponseError / RefinementFailedError: the turn
                failed; the session stays usable and the failure is noted in
                its history.
        """
        if not instruction or not instruction.strip():
            raise ValidationError(ValidationReason.EMPTY_INSTRUCTION, "instruction must not be empty")
        if not session.accepts_instructions:
            raise SessionStateError(f"cannot refine in state {session.state.value}")

        chat = session.chat
        prompt = build_refine_prompt(current.text, instruction, session.max_length)
        session.record("user", instruction.strip(), prompt_text=prompt)
        session.state = SessionState.REFINING

        try:
            response = await chat.send(prompt)
        except Exception as e:
            error = classify_llm_error(e, RefinementFailedError)
            session.record("assistant", f"修正に失敗しました: {error}", is_error=True)
            raise error from e

        text = clean_reply(response.text)
        if not text:
            session.record("assistant", "AIからの応答が空でした。", is_error=True)
            raise EmptyResponseError("the model returned an empty response")

        text, truncated = enforce_length(text, session.max_length)
        session.record("assistant", text)
        logger.debug("Refinement turn %d applied (truncated=%s)", chat.turns, truncated)
        return Artifact(
            text=text,
            version=current.version + 1,
            origin=ArtifactOrigin.REFINED,
            truncated=truncated,
        )
