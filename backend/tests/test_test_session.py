import asyncio
import json

from flashstudy.errors import LLMUnavailableError
from flashstudy.models.test import QuestionType, TestStatus
from flashstudy.services.test_session import TestSession, total_pages
from tests.fakes import FakeLLM, GatedLLM, make_card

ALL_TYPES = list(QuestionType)


def tf_questions(n: int) -> str:
    return json.dumps(
        [
            {"type": "TRUE_FALSE", "question": f"Statement {i}?", "answer": "True"}
            for i in range(n)
        ]
    )


async def ready_session(n: int, per_page: int, llm: FakeLLM | None = None) -> TestSession:
    llm = llm or FakeLLM()
    llm.responses.insert(0, tf_questions(n))
    session = TestSession(llm)
    await session.generate([make_card(0)], n, per_page, ALL_TYPES)
    assert session.state.status is TestStatus.READY
    return session


def test_total_pages():
    assert total_pages(7, 3) == 3
    assert total_pages(6, 3) == 2
    assert total_pages(1, 0) == 1


async def test_generate_success_fixes_questions_and_page_size():
    session = await ready_session(7, 3)
    state = session.state
    assert len(state.questions) == 7
    assert state.items_per_page == 3
    assert state.total_pages == 3
    assert state.current_page == 0
    assert not state.is_loading


async def test_generate_with_no_cards_never_calls_llm():
    llm = FakeLLM()
    session = TestSession(llm)
    state = await session.generate([], 5, 1, ALL_TYPES)
    assert state.status is TestStatus.ERROR
    assert state.error == "Set has no cards."
    assert llm.prompts == []


async def test_generate_starred_only_without_starred_cards():
    llm = FakeLLM()
    session = TestSession(llm)
    state = await session.generate([make_card(0), make_card(1)], 5, 1, ALL_TYPES, starred_only=True)
    assert state.error == "No starred cards found."
    assert llm.prompts == []


async def test_generate_starred_only_sends_only_starred_cards():
    llm = FakeLLM([tf_questions(1)])
    session = TestSession(llm)
    await session.generate([make_card(0, starred=True), make_card(1)], 1, 1, ALL_TYPES, True)
    assert "term 0" in llm.prompts[0]
    assert "term 1" not in llm.prompts[0]


async def test_generate_without_question_types():
    llm = FakeLLM()
    state = await TestSession(llm).generate([make_card(0)], 5, 1, [])
    assert state.error == "Select at least one question type."
    assert llm.prompts == []


async def test_generate_with_ai_disabled():
    llm = FakeLLM()
    state = await TestSession(llm, ai_enabled=False).generate([make_card(0)], 5, 1, ALL_TYPES)
    assert state.error == "AI features are currently disabled."
    assert llm.prompts == []


async def test_generate_llm_failure_is_error_state():
    session = TestSession(FakeLLM([LLMUnavailableError("connection refused")]))
    state = await session.generate([make_card(0)], 3, 1, ALL_TYPES)
    assert state.status is TestStatus.ERROR
    assert state.error == "AI Error: connection refused"


async def test_generate_unparseable_response_is_error_state():
    session = TestSession(FakeLLM(["I cannot do that."]))
    state = await session.generate([make_card(0)], 3, 1, ALL_TYPES)
    assert state.error == "Failed to parse test data."


async def test_generate_empty_array_is_error_state():
    state = await TestSession(FakeLLM(["[]"])).generate([make_card(0)], 3, 1, ALL_TYPES)
    assert state.error == "Failed to parse test data."


async def test_items_per_page_is_clamped():
    session = await ready_session(2, 10)
    assert session.state.items_per_page == 2
    session = TestSession(FakeLLM([tf_questions(2)]))
    await session.generate([make_card(0)], 2, 0, ALL_TYPES)
    assert session.state.items_per_page == 1


async def test_record_answer_overwrites_without_grading():
    session = await ready_session(2, 1)
    session.record_answer(1, "False")
    session.record_answer(1, "True")
    question = session.state.questions[1]
    assert question.user_answer == "True"
    assert not question.is_graded


async def test_record_answer_out_of_range_is_noop():
    session = await ready_session(2, 1)
    before = session.state
    assert session.record_answer(5, "x") == before
    assert session.record_answer(-1, "x") == before


async def test_record_answer_ignored_when_not_ready():
    session = TestSession(FakeLLM())
    assert session.record_answer(0, "x").status is TestStatus.IDLE


async def test_pagination_seven_by_three():
    session = await ready_session(7, 3)
    for i in range(7):
        session.record_answer(i, "true" if i % 2 == 0 else "false")

    pages = [session.state.current_page]
    state = await session.submit_page()
    assert state.status is TestStatus.READY
    pages.append(state.current_page)
    state = await session.submit_page()
    pages.append(state.current_page)
    assert pages == [0, 1, 2]
    assert [q.is_graded for q in state.questions] == [True] * 6 + [False]

    state = await session.submit_page()
    assert state.status is TestStatus.COMPLETE
    assert state.is_complete
    assert all(q.is_graded for q in state.questions)
    assert state.score == 4
    assert state.score == sum(q.is_correct for q in state.questions)


async def test_choice_grading_is_trimmed_and_case_insensitive():
    raw = json.dumps([{"type": "MULTIPLE_CHOICE", "question": "Capital?", "options": ["Paris", "Rome"], "answer": "A"}])
    session = TestSession(FakeLLM([raw]))
    await session.generate([make_card(0)], 1, 1, ALL_TYPES)
    session.record_answer(0, " paris ")
    state = await session.submit_page()
    assert state.questions[0].is_correct
    assert state.questions[0].ai_feedback == "Correct!"
    assert state.score == 1


async def test_wrong_choice_feedback_names_answer():
    session = await ready_session(1, 1)
    session.record_answer(0, "False")
    state = await session.submit_page()
    assert not state.questions[0].is_correct
    assert state.questions[0].ai_feedback == "Incorrect. Answer: True"


async def test_short_answer_uses_ai_verdict():
    raw = json.dumps([{"type": "SHORT_ANSWER", "question": "Define cell", "answer": "basic unit of life"}])
    llm = FakeLLM([raw, '{"isCorrect": true, "feedback": "Good paraphrase"}'])
    session = TestSession(llm)
    await session.generate([make_card(0)], 1, 1, ALL_TYPES)
    session.record_answer(0, "smallest living unit")
    state = await session.submit_page()
    assert state.questions[0].is_correct
    assert state.questions[0].ai_feedback == "Good paraphrase"
    assert "smallest living unit" in llm.prompts[1]


async def test_short_answer_falls_back_to_exact_match():
    raw = json.dumps(
        [
            {"type": "SHORT_ANSWER", "question": "Capital of France", "answer": "Paris"},
            {"type": "SHORT_ANSWER", "question": "Capital of Italy", "answer": "Rome"},
        ]
    )
    llm = FakeLLM([raw, LLMUnavailableError("down"), "not json at all"])
    session = TestSession(llm)
    await session.generate([make_card(0)], 2, 2, ALL_TYPES)
    session.record_answer(0, " paris ")
    session.record_answer(1, "Milan")
    state = await session.submit_page()
    assert state.is_complete
    assert [q.is_correct for q in state.questions] == [True, False]
    assert state.questions[0].ai_feedback == "AI unavailable. Exact match: true"
    assert state.score == 1


async def test_submit_rejected_unless_ready():
    session = TestSession(FakeLLM())
    state = await session.submit_page()
    assert state.status is TestStatus.IDLE


async def test_submit_after_complete_is_rejected():
    session = await ready_session(1, 1)
    done = await session.submit_page()
    assert await session.submit_page() == done


async def test_generate_rejected_while_loading():
    llm = GatedLLM([tf_questions(1)])
    session = TestSession(llm)
    first = asyncio.create_task(session.generate([make_card(0)], 1, 1, ALL_TYPES))
    await asyncio.sleep(0)
    assert session.state.is_loading

    state = await session.generate([make_card(0)], 1, 1, ALL_TYPES)
    assert state.is_loading
    assert len(llm.prompts) == 1

    llm.release()
    await first
    assert session.state.status is TestStatus.READY


async def test_reset_discards_late_generation_result():
    llm = GatedLLM([tf_questions(3)])
    session = TestSession(llm)
    pending = asyncio.create_task(session.generate([make_card(0)], 3, 1, ALL_TYPES))
    await asyncio.sleep(0)

    session.reset()
    llm.release()
    await pending
    assert session.state.status is TestStatus.IDLE
    assert session.state.questions == ()


async def test_reset_discards_late_grading_result():
    raw = json.dumps([{"type": "SHORT_ANSWER", "question": "q", "answer": "a"}])
    llm = GatedLLM([raw, '{"isCorrect": true, "feedback": "ok"}'])
    session = TestSession(llm)
    llm.release()
    await session.generate([make_card(0)], 1, 1, ALL_TYPES)

    llm.gate.clear()
    grading = asyncio.create_task(session.submit_page())
    await asyncio.sleep(0)
    assert session.state.is_grading

    session.reset()
    llm.release()
    await grading
    assert session.state.status is TestStatus.IDLE


async def test_reset_returns_to_idle():
    session = await ready_session(2, 1)
    session.record_answer(0, "True")
    state = session.reset()
    assert state.status is TestStatus.IDLE
    assert state.questions == ()
    assert state.score == 0
