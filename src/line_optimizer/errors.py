"""Error taxonomy for message optimization and refinement.

Every error the core raises derives from :class:`OptimizerError`. Callers
decide whether to retry; nothing in the core retries on its own.
"""

from __future__ import annotations

from enum import Enum

import anthropic

_AUTH_MARKERS = ("api key", "api_key", "permission denied", "authentication")


class ValidationReason(str, Enum):
    EMPTY_SOURCE = "empty_source"
    LIMIT_OUT_OF_RANGE = "limit_out_of_range"
    EMPTY_INSTRUCTION = "empty_instruction"


class OptimizerError(RuntimeError):
    """Base class for all errors raised by line_optimizer."""


class ValidationError(OptimizerError):
    """Caller input was rejected before any request was made."""

    def __init__(self, reason: ValidationReason, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason.value)


class AuthError(OptimizerError):
    """The API key is missing or invalid, or lacks permission."""


class EmptyResponseError(OptimizerError):
    """The model replied with no usable text."""


class _WrappedError(OptimizerError):
    def __init__(self, cause: BaseException, message: str | None = None):
        self.cause = cause
        super().__init__(message or f"{type(cause).__name__}: {cause}")


class TransformFailedError(_WrappedError):
    """Initial transformation failed for a reason other than auth or empty output."""


class RefinementFailedError(_WrappedError):
    """A refinement turn failed for a reason other than auth or empty output."""


class SessionStateError(OptimizerError):
    """The refinement session is not in a state that accepts the operation."""


class OperationInProgressError(OptimizerError):
    """Another transform or refinement call has not finished yet."""


def is_auth_error(exc: BaseException) -> bool:
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _AUTH_MARKERS)


def classify_llm_error(
    exc: BaseException,
    wrapper: type[_WrappedError] = TransformFailedError,
) -> OptimizerError:
    """Map an exception from the LLM layer onto the error taxonomy."""
    if is_auth_error(exc):
        return AuthError(str(exc))
    return wrapper(exc)


_VALIDATION_MESSAGES = {
    ValidationReason.EMPTY_SOURCE: "元の文章を入力してください。",
    ValidationReason.EMPTY_INSTRUCTION: "修正指示を入力してください。",
}


def user_message(exc: OptimizerError, min_limit: int = 30, max_limit: int = 500) -> str:
    """Japanese message for showing *exc* to the user."""
    if isinstance(exc, ValidationError):
        if exc.reason is ValidationReason.LIMIT_OUT_OF_RANGE:
            return f"文字数制限は{min_limit}字から{max_limit}字の間で指定してください。"
        return _VALIDATION_MESSAGES[exc.reason]
    if isinstance(exc, AuthError):
        return "APIキーが無効か、必要な権限がありません。設定を確認してください。"
    if isinstance(exc, EmptyResponseError):
        return "AIからの応答が空でした。もう一度お試しください。"
    if isinstance(exc, TransformFailedError):
        return f"AIによる初回処理に失敗しました。詳細: {exc.cause}"
    if isinstance(exc, RefinementFailedError):
        return f"AIによる修正に失敗しました。詳細: {exc.cause}"
    if isinstance(exc, OperationInProgressError):
        return "処理中です。完了までお待ちください。"
    return str(exc)
