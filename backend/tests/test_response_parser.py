import json

import pytest

from flashstudy.errors import ParseError, ParseErrorKind
from flashstudy.models.test import QuestionType
from flashstudy.services.response_parser import (
    parse_grading_verdict,
    parse_question_array,
    strip_code_fences,
)

SAMPLE = [
    {
        "type": "MULTIPLE_CHOICE",
        "bloom": "Level 2: Understand",
        "question": "Which one?",
        "options": ["x", "y", "z", "w"],
        "answer": "B",
    },
    {"type": "TRUE_FALSE", "question": "Sky is blue?", "answer": "True"},
    {"type": "SHORT_ANSWER", "bloom": "Level 3: Apply", "question": "Define x", "answer": "x"},
]


def test_strip_code_fences():
    assert strip_code_fences("```json\n[1]\n```") == "[1]"
    assert strip_code_fences("  ```\n{}\n```  ") == "{}"
    assert strip_code_fences("[2]") == "[2]"


def test_parse_preserves_order_and_assigns_positional_ids():
    questions = parse_question_array(json.dumps(SAMPLE))
    assert [q.id for q in questions] == ["0", "1", "2"]
    assert [q.question_text for q in questions] == ["Which one?", "Sky is blue?", "Define x"]
    assert [q.type for q in questions] == [
        QuestionType.MULTIPLE_CHOICE,
        QuestionType.TRUE_FALSE,
        QuestionType.SHORT_ANSWER,
    ]


def test_letter_answer_resolves_to_option_text():
    questions = parse_question_array(json.dumps(SAMPLE))
    assert questions[0].correct_answer == "y"
    assert questions[0].options == ("x", "y", "z", "w")


def test_out_of_range_letter_is_left_unchanged():
    raw = [{"type": "MULTIPLE_CHOICE", "question": "q", "options": ["a", "b"], "answer": "D"}]
    assert parse_question_array(json.dumps(raw))[0].correct_answer == "D"


def test_letter_answer_not_remapped_for_other_types():
    raw = [{"type": "SHORT_ANSWER", "question": "q", "options": ["a", "b"], "answer": "A"}]
    question = parse_question_array(json.dumps(raw))[0]
    assert question.correct_answer == "A"
    assert question.options == ()


def test_defaults_for_missing_and_unknown_fields():
    raw = [{"type": "ESSAY", "question": "q", "answer": "a"}, {"question": "q2", "answer": "b"}]
    questions = parse_question_array(json.dumps(raw))
    assert all(q.type is QuestionType.SHORT_ANSWER for q in questions)
    assert all(q.bloom_level == "Level 1: Recall" for q in questions)
    assert all(q.options == () for q in questions)
    assert all(q.user_answer == "" and not q.is_graded for q in questions)


def test_boolean_answer_becomes_text():
    raw = [{"type": "TRUE_FALSE", "question": "q", "answer": False}]
    assert parse_question_array(json.dumps(raw))[0].correct_answer == "False"


def test_fenced_array_parses():
    text = "```json\n" + json.dumps(SAMPLE) + "\n```"
    assert len(parse_question_array(text)) == 3


def test_parse_is_idempotent():
    text = json.dumps(SAMPLE)
    assert parse_question_array(text) == parse_question_array(text)


@pytest.mark.parametrize(
    "text, kind",
    [
        ('{"questions": []}', ParseErrorKind.NOT_AN_ARRAY),
        ("Sure! Here is your test: [...]", ParseErrorKind.NOT_AN_ARRAY),
        ("[{broken", ParseErrorKind.INVALID_JSON),
        ('["just a string"]', ParseErrorKind.MALFORMED_QUESTION),
        ('[{"type": "TRUE_FALSE", "answer": "True"}]', ParseErrorKind.MALFORMED_QUESTION),
    ],
)
def test_question_array_failures(text, kind):
    with pytest.raises(ParseError) as exc:
        parse_question_array(text)
    assert exc.value.kind is kind


def test_parse_grading_verdict():
    assert parse_grading_verdict('{"isCorrect": true, "feedback": "Nice"}') == (True, "Nice")
    fenced = '```json\n{"isCorrect": false, "feedback": "Close"}\n```'
    assert parse_grading_verdict(fenced) == (False, "Close")


@pytest.mark.parametrize(
    "text",
    [
        '{"feedback": "no verdict"}',
        '{"isCorrect": "yes", "feedback": "wrong type"}',
        '{"isCorrect": true}',
        '{"isCorrect": true, "feedback": 3}',
        "[true]",
        "not json",
    ],
)
def test_malformed_verdicts(text):
    with pytest.raises(ParseError) as exc:
        parse_grading_verdict(text)
    assert exc.value.kind is ParseErrorKind.MALFORMED_VERDICT
