"""Pydantic models for generated messages and refinement history."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from line_optimizer.utils.char_count import logical_length


class ArtifactOrigin(str, Enum):
    GENERATED = "generated"  # first output of the transformer
    REFINED = "refined"      # full replacement from a refinement turn
    EDITED = "edited"        # hand edit by the user


class Artifact(BaseModel):
    """One version of the message being edited."""

    model_config = ConfigDict(frozen=True)

    text: str
    version: int = 0
    origin: ArtifactOrigin = ArtifactOrigin.GENERATED
    truncated: bool = False  # client-side length backstop was applied

    @property
    def length(self) -> int:
        """Length in logical characters."""
        return logical_length(self.text)

    def fits(self, max_length: int) -> bool:
        return self.length <= max_length

    def edited(self, text: str) -> Artifact:
        """Return the successor produced by a manual edit.

        Manual edits are the user's own text, so no length limit is applied.
        """
        return Artifact(text=text, version=self.version + 1, origin=ArtifactOrigin.EDITED)


class ChatTurn(BaseModel):
    """A single entry in a refinement session's history."""

    role: Literal["user", "assistant"]
    display_text: str
    prompt_text: str = ""  # what was actually sent; empty for assistant turns
    timestamp: datetime = Field(default_factory=datetime.now)
    is_error: bool = False  # explanatory entry standing in for a failed reply
