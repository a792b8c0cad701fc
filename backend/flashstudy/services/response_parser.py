"""
Parsing of LLM text responses into domain values.

The model is asked for bare JSON but regularly wraps it in markdown fences or
drops fields, so each field has an explicit fallback:

  type     unknown/missing        -> SHORT_ANSWER
  bloom    missing                -> "Level 1: Recall"
  options  missing                -> ()
  answer   single letter A-D (MC) -> option text at that index, if in range

Failures raise ParseError with a ParseErrorKind; callers decide whether the
failure is terminal (test generation) or recoverable (short-answer grading).
"""
from __future__ import annotations

import json
import re
from typing import Any

from flashstudy.errors import ParseError, ParseErrorKind
from flashstudy.models.test import DEFAULT_BLOOM_LEVEL, QuestionType, TestQuestion

_FENCE_OPEN = re.compile(r"^```[\w-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")

_LETTER_ANSWERS = "ABCD"


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = _FENCE_OPEN.sub("", cleaned)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


def _parse_type(raw: Any) -> QuestionType:
    try:
        return QuestionType(str(raw).strip().upper())
    except ValueError:
        return QuestionType.SHORT_ANSWER


def _resolve_letter_answer(answer: str, options: tuple[str, ...]) -> str:
    letter = answer.strip()
    if len(letter) == 1 and letter in _LETTER_ANSWERS:
        index = _LETTER_ANSWERS.index(letter)
        if index < len(options):
            return options[index]
    return answer


def _parse_question(index: int, obj: Any) -> TestQuestion:
    if not isinstance(obj, dict):
        raise ParseError(ParseErrorKind.MALFORMED_QUESTION, f"element {index} is not an object")

    question_text = obj.get("question")
    answer = obj.get("answer")
    if not isinstance(question_text, str) or not isinstance(answer, (str, bool, int, float)):
        raise ParseError(
            ParseErrorKind.MALFORMED_QUESTION, f"element {index} lacks question/answer"
        )
    if isinstance(answer, bool):
        # TRUE_FALSE answers sometimes arrive as JSON booleans
        answer = "True" if answer else "False"

    qtype = _parse_type(obj.get("type"))
    bloom = obj.get("bloom")
    raw_options = obj.get("options") or []
    options = tuple(str(o) for o in raw_options) if isinstance(raw_options, list) else ()

    correct_answer = str(answer)
    if qtype is QuestionType.MULTIPLE_CHOICE and options:
        correct_answer = _resolve_letter_answer(correct_answer, options)

    return TestQuestion(
        id=str(index),
        type=qtype,
        question_text=question_text,
        options=options if qtype is QuestionType.MULTIPLE_CHOICE else (),
        correct_answer=correct_answer,
        bloom_level=bloom if isinstance(bloom, str) and bloom else DEFAULT_BLOOM_LEVEL,
    )


def parse_question_array(text: str) -> list[TestQuestion]:
    """Parse a JSON array of generated questions, preserving order."""
    cleaned = strip_code_fences(text)
    if not cleaned.startswith("["):
        raise ParseError(ParseErrorKind.NOT_AN_ARRAY, cleaned[:80])
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(ParseErrorKind.INVALID_JSON, str(e)) from e
    if not isinstance(data, list):
        raise ParseError(ParseErrorKind.NOT_AN_ARRAY)
    return [_parse_question(i, obj) for i, obj in enumerate(data)]


def parse_grading_verdict(text: str) -> tuple[bool, str]:
    """Parse {"isCorrect": bool, "feedback": str}."""
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ParseError(ParseErrorKind.MALFORMED_VERDICT, str(e)) from e
    if not isinstance(data, dict):
        raise ParseError(ParseErrorKind.MALFORMED_VERDICT, "not an object")

    is_correct = data.get("isCorrect")
    feedback = data.get("feedback")
    if not isinstance(is_correct, bool) or not isinstance(feedback, str):
        raise ParseError(ParseErrorKind.MALFORMED_VERDICT, "isCorrect/feedback missing")
    return is_correct, feedback
