"""
Error types shared by the study, test and tutor services.

Session objects convert these into explicit error state; only the store and
the assist helpers let them reach a caller, where routers map them to HTTP
status codes.
"""
from __future__ import annotations

from enum import Enum


class FlashstudyError(Exception):
    """Base class for all flashstudy errors."""


class EmptyInputError(FlashstudyError):
    """The (optionally starred-filtered) card set is empty."""

    def __init__(self, starred_only: bool, empty_message: str = "Set has no cards.") -> None:
        self.starred_only = starred_only
        message = "No starred cards found." if starred_only else empty_message
        super().__init__(message)


class NoQuestionTypeSelected(FlashstudyError):
    def __init__(self) -> None:
        super().__init__("Select at least one question type.")


class GenerationFailure(FlashstudyError):
    """The generative capability failed or returned nothing usable."""


class LLMUnavailableError(GenerationFailure):
    """Raised when the LLM backend cannot be reached or is disabled."""


class GradingFailure(FlashstudyError):
    """An AI grading call failed; callers fall back to exact match."""


class ParseErrorKind(str, Enum):
    NOT_AN_ARRAY = "not_an_array"
    INVALID_JSON = "invalid_json"
    MALFORMED_QUESTION = "malformed_question"
    MALFORMED_VERDICT = "malformed_verdict"


class ParseError(FlashstudyError):
    def __init__(self, kind: ParseErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class DuplicateCardError(FlashstudyError):
    def __init__(self, question: str) -> None:
        self.question = question
        super().__init__("Error: Duplicate card.")
