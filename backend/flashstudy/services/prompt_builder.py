"""
Prompt templates for test generation, short-answer grading, card assists and
the tutor chat.

Every function here is pure string construction.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence

from flashstudy.models.card import Card
from flashstudy.models.test import QuestionType

_TYPE_LABELS = {
    QuestionType.MULTIPLE_CHOICE: "Multiple Choice",
    QuestionType.TRUE_FALSE: "True/False",
    QuestionType.SHORT_ANSWER: "Short Answer",
}

QUESTION_SCHEMA_EXAMPLE = (
    '[{"type": "MULTIPLE_CHOICE", "bloom": "Level 1: Recall", '
    '"question": "...", "options": ["A", "B", "C", "D"], "answer": "C"}]'
)


def format_card_context(cards: Iterable[Card]) -> str:
    return "\n".join(f"Term: {c.question} | Def: {c.answer}" for c in cards)


def build_test_generation_prompt(
    cards: Sequence[Card],
    question_count: int,
    allowed_types: Iterable[QuestionType],
) -> str:
    if not cards:
        raise ValueError("cards must not be empty")
    if question_count < 1:
        raise ValueError("question_count must be >= 1")

    allowed = set(allowed_types)
    # Keep enum declaration order so the prompt is deterministic
    formats = "\n".join(
        f"- {_TYPE_LABELS[t]} (type: {t.value})" for t in QuestionType if t in allowed
    )
    return (
        "You are an expert teacher creating a rigorous exam. "
        f"Create exactly {question_count} questions based ONLY on this material:\n"
        f"{format_card_context(cards)}\n"
        "CRITICAL INSTRUCTION: Vary the Bloom's Taxonomy levels.\n"
        "Allowed Formats (Mix these):\n"
        f"{formats}\n"
        "Return a JSON ARRAY only.\n"
        f"Format: {QUESTION_SCHEMA_EXAMPLE}"
    )


def build_short_answer_grading_prompt(
    question: str, correct_answer: str, user_answer: str
) -> str:
    return (
        f'Grade this student answer. Question: "{question}" '
        f'Correct Definition: "{correct_answer}" '
        f'Student Answer: "{user_answer}"\n'
        'Output ONLY a JSON object: { "isCorrect": true/false, "feedback": "Your feedback here..." }'
    )


def build_mnemonic_prompt(question: str, answer: str) -> str:
    return (
        f"Create a short, catchy mnemonic to help remember that '{question}' "
        f"means '{answer}'. Keep it brief."
    )


def build_explanation_prompt(question: str, answer: str) -> str:
    return (
        "Explain this concept like I am learning this for the first time: "
        f"'{question}' is '{answer}'. Use simple words and maybe an analogy."
    )


def build_tutor_system_prompt(cards: Sequence[Card], student_name: str) -> str:
    return (
        f"You are a friendly and Socratic tutor helping {student_name} study.\n"
        "THE MATERIAL TO STUDY IS STRICTLY LIMITED TO:\n"
        f"{format_card_context(cards)}\n"
        "RULES:\n"
        "1. ONLY ask questions about the terms defined above.\n"
        "2. Do NOT bring in outside knowledge or unrelated topics.\n"
        "3. Act like a tutor. Ask the student a question about one of the terms to start.\n"
        "4. If they get it right, praise them and ask another.\n"
        "5. If they get it wrong, give a hint.\n"
        "6. Keep responses short and conversational."
    )
