"""Tests for Pydantic data models."""

import pytest

from line_optimizer.config import LimitsConfig
from line_optimizer.errors import ValidationError, ValidationReason
from line_optimizer.models import Artifact, ArtifactOrigin, ChatTurn, TransformRequest


class TestTransformRequest:
    def test_create_minimal(self):
        request = TransformRequest(source_text="本文", max_length=100)
        assert request.title is None
        assert request.cta is None

    def test_blank_fragments_become_none(self):
        request = TransformRequest(source_text="本文", max_length=100, title="  ", cta="")
        assert request.title is None
        assert request.cta is None

    def test_fragments_trimmed(self):
        request = TransformRequest(
            source_text="本文", max_length=100, title=" ✨お知らせ✨ ", cta="詳しくはこちら👉\n"
        )
        assert request.title == "✨お知らせ✨"
        assert request.cta == "詳しくはこちら👉"

    def test_validate_empty_source(self):
        request = TransformRequest(source_text=" \n ", max_length=100)
        with pytest.raises(ValidationError) as exc_info:
            request.validate_for(LimitsConfig())
        assert exc_info.value.reason is ValidationReason.EMPTY_SOURCE

    @pytest.mark.parametrize("max_length", [29, 501, 0, -5])
    def test_validate_limit_out_of_range(self, max_length):
        request = TransformRequest(source_text="hello", max_length=max_length)
        with pytest.raises(ValidationError) as exc_info:
            request.validate_for(LimitsConfig())
        assert exc_info.value.reason is ValidationReason.LIMIT_OUT_OF_RANGE

    @pytest.mark.parametrize("max_length", [30, 250, 500])
    def test_validate_accepts_bounds(self, max_length):
        TransformRequest(source_text="hello", max_length=max_length).validate_for(LimitsConfig())


class TestArtifact:
    def test_defaults(self):
        artifact = Artifact(text="hello")
        assert artifact.version == 0
        assert artifact.origin is ArtifactOrigin.GENERATED
        assert artifact.truncated is False

    def test_length_counts_emoji_once(self):
        assert Artifact(text="✨セール✨").length == 5

    def test_fits(self):
        artifact = Artifact(text="✨" * 10)
        assert artifact.fits(10)
        assert not artifact.fits(9)

    def test_edited(self, sample_artifact):
        edited = sample_artifact.edited("手で直した文章")
        assert edited.text == "手で直した文章"
        assert edited.version == sample_artifact.version + 1
        assert edited.origin is ArtifactOrigin.EDITED
        assert sample_artifact.text != edited.text

    def test_frozen(self, sample_artifact):
        with pytest.raises(Exception):
            sample_artifact.text = "changed"


class TestChatTurn:
    def test_defaults(self):
        turn = ChatTurn(role="assistant", display_text="了解しました")
        assert turn.prompt_text == ""
        assert turn.is_error is False
        assert turn.timestamp is not None

    def test_rejects_unknown_role(self):
        with pytest.raises(Exception):
            ChatTurn(role="system", display_text="x")
