"""Bounded transformer: rewrite source text into one LINE message under a hard limit."""

from __future__ import annotations

import logging

from line_optimizer.clients.llm_client import DEFAULT_MODEL, LLMClient
from line_optimizer.config import LimitsConfig, PolicyConfig
from line_optimizer.errors import EmptyResponseError, TransformFailedError, classify_llm_error
from line_optimizer.models.artifact import Artifact, ArtifactOrigin
from line_optimizer.models.request import TransformRequest
from line_optimizer.pipeline.policy import build_transform_prompt
from line_optimizer.utils.char_count import exceeds, logical_length, truncate
from line_optimizer.utils.text_cleaner import clean_reply

logger = logging.getLogger(__name__)


def enforce_length(text: str, max_length: int) -> tuple[str, bool]:
    """Cut *text* to *max_length* logical characters.

    Returns the text and whether it had to be cut. Over-long output is
    corrected here rather than reported, so no caller ever sees it.
    """
    if not exceeds(text, max_length):
        return text, False
    logger.warning(
        "Response exceeded character limit (limit=%d, got=%d); truncating",
        max_length,
        logical_length(text),
    )
    return truncate(text, max_length), True


class BoundedTransformer:
    """Produce the first version of a message from the user's source text."""

    def __init__(
        self,
        llm: LLMClient,
        model: str = DEFAULT_MODEL,
        *,
        limits: LimitsConfig | None = None,
        policy: PolicyConfig | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ):
        self.llm = llm
        self.model = model
        self.limits = limits or LimitsConfig()
        self.policy = policy or PolicyConfig()
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def transform(
        self,
        source_text: str,
        max_length: int,
        title: str | None = None,
        cta: str | None = None,
    ) -> Artifact:
        """Rewrite *source_text* into a message of at most *max_length* characters.

        Raises:
            ValidationError: blank source or limit out of range (no call made).
            AuthError: the API rejected the credentials.
            EmptyResponseError: the model returned nothing usable.
            TransformFailedError: any other failure; ``cause`` holds the original.
        """
        request = TransformRequest(
            source_text=source_text,
            max_length=max_length,
            title=title,
            cta=cta,
        )
        return await self.transform_request(request)

    async def transform_request(self, request: TransformRequest) -> Artifact:
        request.validate_for(self.limits)
        prompt = build_transform_prompt(request, max_symbols=self.policy.max_symbols)

        logger.info(
            "Transforming %d chars into a message of at most %d",
            logical_length(request.source_text),
            request.max_length,
        )
        try:
            response = await self.llm.generate(
                prompt=prompt,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            raise classify_llm_error(e, TransformFailedError) from e

        text = clean_reply(response.text)
        if not text:
            raise EmptyResponseError("the model returned an empty response")

        text, truncated = enforce_length(text, request.max_length)
        return Artifact(text=text, version=0, origin=ArtifactOrigin.GENERATED, truncated=truncated)
