from __future__ import annotations

import time
import uuid

from pydantic import BaseModel, Field


def _now_millis() -> int:
    return int(time.time() * 1000)


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str
    is_user: bool
    timestamp: int = Field(default_factory=_now_millis)

    model_config = {"frozen": True}


class TutorSessionState(BaseModel):
    is_loading: bool = False
    messages: tuple[ChatMessage, ...] = ()
    error: str | None = None

    model_config = {"frozen": True}


class TutorStart(BaseModel):
    student_name: str = "Student"
    starred_only: bool = False


class TutorMessage(BaseModel):
    text: str


class TutorSessionView(BaseModel):
    id: str
    set_id: str
    state: TutorSessionState
