"""
AI assists shared by the test, write-mode and card screens: short-answer
grading with an exact-match fallback, mnemonics and plain-language
explanations.
"""
from __future__ import annotations

import logging
from typing import NamedTuple

from flashstudy.errors import GenerationFailure, GradingFailure, ParseError
from flashstudy.services.llm_service import TextGenerator
from flashstudy.services.prompt_builder import (
    build_explanation_prompt,
    build_mnemonic_prompt,
    build_short_answer_grading_prompt,
)
from flashstudy.services.response_parser import parse_grading_verdict

logger = logging.getLogger(__name__)


class GradeResult(NamedTuple):
    is_correct: bool
    feedback: str


def exact_match(user_answer: str, correct_answer: str) -> bool:
    return user_answer.strip().casefold() == correct_answer.strip().casefold()


async def _ai_verdict(
    llm: TextGenerator, question: str, correct_answer: str, user_answer: str
) -> GradeResult:
    prompt = build_short_answer_grading_prompt(question, correct_answer, user_answer)
    try:
        text = await llm.generate(prompt)
        is_correct, feedback = parse_grading_verdict(text)
    except ParseError as e:
        raise GradingFailure(f"unreadable verdict: {e}") from e
    except Exception as e:
        raise GradingFailure(str(e)) from e
    return GradeResult(is_correct, feedback)


async def grade_short_answer(
    llm: TextGenerator,
    question: str,
    correct_answer: str,
    user_answer: str,
    ai_enabled: bool = True,
) -> GradeResult:
    """
    Grade a free-text answer with the LLM.

    Never raises: a disabled AI, a failed call or an unparseable verdict all
    fall back to a case-insensitive exact match.
    """
    if not ai_enabled:
        match = exact_match(user_answer, correct_answer)
        return GradeResult(match, f"AI Disabled. Exact match: {str(match).lower()}")
    try:
        return await _ai_verdict(llm, question, correct_answer, user_answer)
    except GradingFailure as e:
        logger.warning("AI grading failed, using exact match: %s", e)
        match = exact_match(user_answer, correct_answer)
        return GradeResult(match, f"AI unavailable. Exact match: {str(match).lower()}")


async def _complete(llm: TextGenerator, prompt: str, what: str) -> str:
    text = await llm.generate(prompt)
    if not text.strip():
        raise GenerationFailure(f"Could not generate {what}.")
    return text.strip()


async def generate_mnemonic(llm: TextGenerator, question: str, answer: str) -> str:
    return await _complete(llm, build_mnemonic_prompt(question, answer), "mnemonic")


async def generate_explanation(llm: TextGenerator, question: str, answer: str) -> str:
    return await _complete(llm, build_explanation_prompt(question, answer), "explanation")
