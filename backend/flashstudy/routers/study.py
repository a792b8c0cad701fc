"""
Flip-card and write-mode study router.

Endpoints:
  POST   /sets/{set_id}/study      start a session (mode: flip | write)
  GET    /study/{id}               current queue snapshot
  POST   /study/{id}/result        self-reported result for the head card
  POST   /study/{id}/answer        write mode: grade a typed answer for the head card
  POST   /study/{id}/restart       reshuffle the full card set, counters reset
  DELETE /study/{id}               close the session

Flip-mode results also persist mastery (MASTERED / NEEDS_IMPROVEMENT) on the
card; in write mode mastery is set explicitly through the card endpoints.
"""
from __future__ import annotations

import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from flashstudy.db.sqlite import get_cards, get_db, touch_set_studied, update_card_field
from flashstudy.deps import get_ai_enabled, get_llm, get_owner_id
from flashstudy.models.card import MasteryLevel
from flashstudy.models.study import (
    StudyMode,
    StudyResult,
    StudySessionView,
    StudyStart,
    WriteAnswer,
    WriteGrade,
)
from flashstudy.routers.sets import require_set
from flashstudy.services.assist import grade_short_answer
from flashstudy.services.llm_service import TextGenerator
from flashstudy.services.session_registry import SessionEntry, study_sessions
from flashstudy.services.study_queue import StudyQueue

logger = logging.getLogger(__name__)
router = APIRouter()


def _view(entry: SessionEntry) -> StudySessionView:
    return StudySessionView(id=entry.id, set_id=entry.set_id, state=entry.session.state)


def _require_session(session_id: str, owner_id: str) -> SessionEntry:
    entry = study_sessions.get(session_id, owner_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Study session not found")
    return entry


def _require_head(queue: StudyQueue):
    card = queue.current_card
    if card is None:
        raise HTTPException(status_code=409, detail="No card to study")
    return card


@router.post("/sets/{set_id}/study", response_model=StudySessionView, status_code=201)
async def start(
    set_id: str,
    body: StudyStart,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> StudySessionView:
    await require_set(db, owner_id, set_id)
    queue = StudyQueue()
    state = queue.start(await get_cards(db, set_id), body.starred_only, body.mode)
    entry = study_sessions.add(set_id, owner_id, queue)
    if state.error is None:
        await touch_set_studied(db, set_id)
    return _view(entry)


@router.get("/study/{session_id}", response_model=StudySessionView)
async def get_study(session_id: str, owner_id: str = Depends(get_owner_id)) -> StudySessionView:
    return _view(_require_session(session_id, owner_id))


@router.post("/study/{session_id}/result", response_model=StudySessionView)
async def result(
    session_id: str,
    body: StudyResult,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
) -> StudySessionView:
    entry = _require_session(session_id, owner_id)
    queue: StudyQueue = entry.session
    card = _require_head(queue)
    queue.record_result(body.correct)

    if queue.state.mode is StudyMode.FLIP:
        level = MasteryLevel.MASTERED if body.correct else MasteryLevel.NEEDS_IMPROVEMENT
        # Best-effort; the queue has already advanced
        try:
            await update_card_field(db, entry.set_id, card.id, "mastery_level", level)
        except aiosqlite.Error:
            logger.warning("Mastery update failed for card %s", card.id)
    return _view(entry)


@router.post("/study/{session_id}/answer", response_model=WriteGrade)
async def answer(
    session_id: str,
    body: WriteAnswer,
    owner_id: str = Depends(get_owner_id),
    llm: TextGenerator = Depends(get_llm),
    ai_enabled: bool = Depends(get_ai_enabled),
) -> WriteGrade:
    entry = _require_session(session_id, owner_id)
    queue: StudyQueue = entry.session
    if queue.state.mode is not StudyMode.WRITE:
        raise HTTPException(status_code=409, detail="Session is not in write mode")
    card = _require_head(queue)

    grade = await grade_short_answer(
        llm, card.question, card.answer, body.answer, ai_enabled=ai_enabled
    )
    # The head may have moved while grading was in flight
    if queue.current_card is not None and queue.current_card.id == card.id:
        queue.record_result(grade.is_correct)
    return WriteGrade(is_correct=grade.is_correct, feedback=grade.feedback, state=queue.state)


@router.post("/study/{session_id}/restart", response_model=StudySessionView)
async def restart(session_id: str, owner_id: str = Depends(get_owner_id)) -> StudySessionView:
    entry = _require_session(session_id, owner_id)
    entry.session.restart()
    return _view(entry)


@router.delete("/study/{session_id}", status_code=204)
async def close(session_id: str, owner_id: str = Depends(get_owner_id)) -> None:
    _require_session(session_id, owner_id)
    study_sessions.remove(session_id)
