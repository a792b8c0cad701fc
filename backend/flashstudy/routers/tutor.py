from __future__ import annotations

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from flashstudy.db.sqlite import get_cards, get_db
from flashstudy.deps import get_ai_enabled, get_llm, get_owner_id
from flashstudy.models.tutor import TutorMessage, TutorSessionView, TutorStart
from flashstudy.routers.sets import require_set
from flashstudy.services.llm_service import ChatCapability
from flashstudy.services.session_registry import SessionEntry, tutor_sessions
from flashstudy.services.tutor_session import TutorSession

router = APIRouter()


def _view(entry: SessionEntry) -> TutorSessionView:
    return TutorSessionView(id=entry.id, set_id=entry.set_id, state=entry.session.state)


def _require_session(session_id: str, owner_id: str) -> SessionEntry:
    entry = tutor_sessions.get(session_id, owner_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Tutor session not found")
    return entry


@router.post("/sets/{set_id}/tutor", response_model=TutorSessionView, status_code=201)
async def start(
    set_id: str,
    body: TutorStart,
    owner_id: str = Depends(get_owner_id),
    db: aiosqlite.Connection = Depends(get_db),
    llm: ChatCapability = Depends(get_llm),
    ai_enabled: bool = Depends(get_ai_enabled),
) -> TutorSessionView:
    await require_set(db, owner_id, set_id)
    session = TutorSession(llm, ai_enabled=ai_enabled)
    entry = tutor_sessions.add(set_id, owner_id, session)
    await session.start(await get_cards(db, set_id), body.student_name, body.starred_only)
    return _view(entry)


@router.get("/tutor/{session_id}", response_model=TutorSessionView)
async def get_tutor(session_id: str, owner_id: str = Depends(get_owner_id)) -> TutorSessionView:
    return _view(_require_session(session_id, owner_id))


@router.post("/tutor/{session_id}/messages", response_model=TutorSessionView)
async def send(
    session_id: str,
    body: TutorMessage,
    owner_id: str = Depends(get_owner_id),
) -> TutorSessionView:
    entry = _require_session(session_id, owner_id)
    session: TutorSession = entry.session
    if session.state.is_loading:
        raise HTTPException(status_code=409, detail="Tutor is still replying")
    await session.send_message(body.text)
    return _view(entry)


@router.delete("/tutor/{session_id}", status_code=204)
async def end(session_id: str, owner_id: str = Depends(get_owner_id)) -> None:
    entry = _require_session(session_id, owner_id)
    entry.session.end()
    tutor_sessions.remove(session_id)
