"""
AI practice test router.

Endpoints:
  POST   /sets/{set_id}/tests           open a session and generate in the background
  GET    /tests/{id}                    current session snapshot
  PUT    /tests/{id}/answers/{index}    record an answer on the current page
  POST   /tests/{id}/submit             grade the current page and advance
  POST   /tests/{id}/reset              back to idle, discarding late results
  DELETE /tests/{id}                    close the session
"""
from __future__ import annotations

import asyncio
import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from flashstudy.db.sqlite import get_cards, get_db, touch_set_studied
from flashstudy.deps import get_ai_enabled, get_llm, get_owner_id
from flashstudy.models.test import AnswerUpdate, TestCreate, TestSessionView, TestStatus
from flashstudy.routers.sets import require_set
from flashstudy.services.llm_service import TextGenerator
from flashstudy.services.session_registry import SessionEntry, test_sessions
from flashstudy.services.test_session import TestSession

logger = logging.getLogger(__name__)
router = APIRouter()


def _view(entry: SessionEntry) -> TestSessionView:
    return TestSessionView(id=entry.id, set_id=entry.set_id, state=entry.session.state)


def _require_session(session_id: str, owner_id: str) -> SessionEntry:
    entry = test_sessions.get(session_id, owner_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Test session not found")
    return entry


@router.post("/sets/{set_id}/tests", response_model=TestSessionView, status_code=202)
async def create_test(
    set_id: str,
    body: TestCreate,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
    llm: TextGenerator = Depends(get_llm),
    ai_enabled: bool = Depends(get_ai_enabled),
) -> TestSessionView:
    await require_set(db, owner_id, set_id)
    cards = await get_cards(db, set_id)

    session = TestSession(llm, ai_enabled=ai_enabled)
    entry = test_sessions.add(set_id, owner_id, session)
    test_sessions.start_task(
        entry,
        session.generate(
            cards,
            question_count=body.question_count,
            items_per_page=body.items_per_page,
            allowed_types=body.allowed_types(),
            starred_only=body.starred_only,
        ),
    )
    # Let generation run up to its first suspension so the snapshot is LOADING or terminal
    await asyncio.sleep(0)
    if session.state.status is not TestStatus.ERROR:
        await touch_set_studied(db, set_id)
    return _view(entry)


@router.get("/tests/{session_id}", response_model=TestSessionView)
async def get_test(session_id: str, owner_id: str = Depends(get_owner_id)) -> TestSessionView:
    return _view(_require_session(session_id, owner_id))


@router.put("/tests/{session_id}/answers/{index}", response_model=TestSessionView)
async def answer(
    session_id: str,
    index: int,
    body: AnswerUpdate,
    owner_id: str = Depends(get_owner_id),
) -> TestSessionView:
    entry = _require_session(session_id, owner_id)
    session: TestSession = entry.session
    if session.state.status is not TestStatus.READY:
        raise HTTPException(status_code=409, detail="Test is not accepting answers")
    session.record_answer(index, body.answer)
    return _view(entry)


@router.post("/tests/{session_id}/submit", response_model=TestSessionView)
async def submit(session_id: str, owner_id: str = Depends(get_owner_id)) -> TestSessionView:
    entry = _require_session(session_id, owner_id)
    session: TestSession = entry.session
    if session.state.status is not TestStatus.READY:
        raise HTTPException(status_code=409, detail="Test is not ready for submission")
    await session.submit_page()
    return _view(entry)


@router.post("/tests/{session_id}/reset", response_model=TestSessionView)
async def reset(session_id: str, owner_id: str = Depends(get_owner_id)) -> TestSessionView:
    entry = _require_session(session_id, owner_id)
    entry.session.reset()
    return _view(entry)


@router.delete("/tests/{session_id}", status_code=204)
async def close(session_id: str, owner_id: str = Depends(get_owner_id)) -> None:
    _require_session(session_id, owner_id)
    test_sessions.remove(session_id)
