"""Data models for the message optimizer."""

from line_optimizer.models.artifact import Artifact, ArtifactOrigin, ChatTurn
from line_optimizer.models.request import TransformRequest

__all__ = [
    "Artifact",
    "ArtifactOrigin",
    "ChatTurn",
    "TransformRequest",
]
