"""Main orchestrator - owns the current message and its refinement session."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from line_optimizer.clients.llm_client import DEFAULT_MODEL, LLMClient
from line_optimizer.config import AppConfig, LimitsConfig, PolicyConfig
from line_optimizer.errors import (
    OperationInProgressError,
    OptimizerError,
    SessionStateError,
    ValidationError,
    ValidationReason,
)
from line_optimizer.models.artifact import Artifact, ChatTurn
from line_optimizer.models.request import TransformRequest
from line_optimizer.pipeline.refiner import RefinementLoop, RefinementSession, SessionState
from line_optimizer.pipeline.transformer import BoundedTransformer

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[str, str], None]


class MessageOptimizer:
    """Coordinates the transformer and the refinement loop for one editor.

    Holds at most one message and one session. Starting a new optimization
    throws both away. Only one call may be in flight at a time.
    """

    def __init__(
        self,
        llm: LLMClient,
        *,
        model: str = DEFAULT_MODEL,
        limits: LimitsConfig | None = None,
        policy: PolicyConfig | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        prime_sessions: bool = True,
    ):
        self.limits = limits or LimitsConfig()
        self.transformer = BoundedTransformer(
            llm,
            model=model,
            limits=self.limits,
            policy=policy,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        self.refiner = RefinementLoop(
            llm,
            model=model,
            policy=policy,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        self.prime_sessions = prime_sessions
        self._request: TransformRequest | None = None
        self._artifact: Artifact | None = None
        self._session: RefinementSession | None = None
        self._busy = False
        self.seed_error: OptimizerError | None = None

    @classmethod
    def from_config(cls, llm: LLMClient, config: AppConfig) -> MessageOptimizer:
        return cls(
            llm,
            model=config.llm.model,
            limits=config.limits,
            policy=config.policy,
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
        )

    @property
    def artifact(self) -> Artifact | None:
        return self._artifact

    @property
    def session(self) -> RefinementSession | None:
        return self._session

    @property
    def request(self) -> TransformRequest | None:
        return self._request

    @property
    def history(self) -> list[ChatTurn]:
        return list(self._session.history) if self._session else []

    @property
    def is_busy(self) -> bool:
        return self._busy

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if self._busy:
            raise OperationInProgressError("another request is still running")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def reset(self) -> None:
        """Drop the current message and session."""
        if self._busy:
            raise OperationInProgressError("cannot reset while a request is running")
        self._discard()

    def _discard(self) -> None:
        if self._session is not None:
            self._session.reset()
        self._session = None
        self._artifact = None
        self._request = None
        self.seed_error = None

    async def optimize(
        self,
        source_text: str,
        max_length: int | None = None,
        title: str | None = None,
        cta: str | None = None,
        *,
        on_phase: PhaseCallback | None = None,
    ) -> Artifact:
        """Generate a new message, replacing any previous one and its session.

        Args:
            source_text: Text to rewrite.
            max_length: Character limit; defaults to ``limits.default_limit``.
            title: Optional fixed fragment placed first.
            cta: Optional fixed fragment placed last.
            on_phase: Optional callback(phase_name, detail) for progress.
        """
        def _notify(phase: str, detail: str = "") -> None:
            if on_phase:
                on_phase(phase, detail)

        with self._exclusive():
            start = time.monotonic()
            self._discard()
            request = TransformRequest(
                source_text=source_text,
                max_length=self.limits.default_limit if max_length is None else max_length,
                title=title,
                cta=cta,
            )

            _notify("transform", "メッセージを生成中")
            artifact = await self.transformer.transform_request(request)
            self._request = request
            self._artifact = artifact

            self._session = self.refiner.start_session(
                request.max_length, title=request.title, cta=request.cta,
            )
            _notify("seed", "修正セッションを準備中")
            await self._seed()

            elapsed = time.monotonic() - start
            _notify("done", f"完了: {artifact.length}/{request.max_length}字 ({elapsed:.1f}秒)")
            return artifact

    async def _seed(self) -> None:
        # A failed priming exchange does not discard the generated message;
        # refine() retries the seeding.
        try:
            await self.refiner.seed(self._session, self._artifact, prime=self.prime_sessions)
            self.seed_error = None
        except OptimizerError as e:
            logger.warning("Could not start refinement session: %s", e)
            self.seed_error = e

    async def refine(
        self,
        instruction: str,
        *,
        on_phase: PhaseCallback | None = None,
    ) -> Artifact:
        """Apply an instruction to the current message and return the new version."""
        with self._exclusive():
            if self._artifact is None or self._session is None:
                raise SessionStateError("nothing to refine; call optimize() first")
            if not instruction or not instruction.strip():
                raise ValidationError(ValidationReason.EMPTY_INSTRUCTION, "instruction must not be empty")
            if self._session.state is SessionState.IDLE:
                await self.refiner.seed(self._session, self._artifact, prime=self.prime_sessions)
                self.seed_error = None
            if on_phase:
                on_phase("refine", "修正を反映中")
            artifact = await self.refiner.apply_instruction(self._session, self._artifact, instruction)
            self._artifact = artifact
            return artifact

    def edit(self, text: str) -> Artifact:
        """Record a manual edit of the current message."""
        if self._busy:
            raise OperationInProgressError("cannot edit while a request is running")
        if self._artifact is None:
            raise SessionStateError("nothing to edit; call optimize() first")
        self._artifact = self._artifact.edited(text)
        return self._artifact
