"""Pydantic model for a transformation request."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from line_optimizer.config import LimitsConfig
from line_optimizer.errors import ValidationError, ValidationReason


class TransformRequest(BaseModel):
    """Inputs for one run of the transformer.

    Title and CTA are fixed fragments: they are placed first and last and
    reproduced as given, minus surrounding whitespace. Blank fragments are
    treated as absent.
    """

    source_text: str
    max_length: int
    title: str | None = None
    cta: str | None = None

    @field_validator("title", "cta")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    def validate_for(self, limits: LimitsConfig) -> None:
        """Reject the request before dispatch if it cannot be processed."""
        if not self.source_text.strip():
            raise ValidationError(
                ValidationReason.EMPTY_SOURCE,
                "source_text must not be empty",
            )
        if not limits.contains(self.max_length):
            raise ValidationError(
                ValidationReason.LIMIT_OUT_OF_RANGE,
                f"max_length must be between {limits.min_limit} and "
                f"{limits.max_limit}, got {self.max_length}",
            )
