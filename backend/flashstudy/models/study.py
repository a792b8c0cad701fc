from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, computed_field

from flashstudy.models.card import Card


class StudyMode(str, Enum):
    FLIP = "flip"
    WRITE = "write"


class StudyQueueState(BaseModel):
    mode: StudyMode = StudyMode.FLIP
    cards: tuple[Card, ...] = ()   # full filtered set the session started from
    queue: tuple[Card, ...] = ()   # remaining cards, head first
    correct_count: int = 0
    incorrect_count: int = 0
    error: str | None = None

    model_config = {"frozen": True}

    @computed_field
    @property
    def is_complete(self) -> bool:
        return self.error is None and not self.queue

    @computed_field
    @property
    def progress(self) -> float:
        if not self.cards:
            return 0.0
        return 1 - len(self.queue) / len(self.cards)

    @property
    def current_card(self) -> Card | None:
        return self.queue[0] if self.queue else None


class StudyStart(BaseModel):
    mode: StudyMode = StudyMode.FLIP
    starred_only: bool = False


class StudyResult(BaseModel):
    correct: bool


class WriteAnswer(BaseModel):
    answer: str


class WriteGrade(BaseModel):
    is_correct: bool
    feedback: str
    state: StudyQueueState


class StudySessionView(BaseModel):
    id: str
    set_id: str
    state: StudyQueueState
