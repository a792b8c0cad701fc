from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class MasteryLevel(str, Enum):
    NOT_STUDIED = "NOT_STUDIED"
    NEEDS_IMPROVEMENT = "NEEDS_IMPROVEMENT"
    MASTERED = "MASTERED"


class SortOption(str, Enum):
    CREATION_DATE_DESC = "CREATION_DATE_DESC"
    CREATION_DATE_ASC = "CREATION_DATE_ASC"
    ALPHABETICAL_AZ = "ALPHABETICAL_AZ"
    ALPHABETICAL_ZA = "ALPHABETICAL_ZA"


class Card(BaseModel):
    id: str
    set_id: str
    question: str
    answer: str
    question_image_uri: str | None = None
    answer_image_uri: str | None = None
    mastery_level: MasteryLevel = MasteryLevel.NOT_STUDIED
    is_starred: bool = False
    created_at: str = ""

    model_config = {"frozen": True}


class CardCreate(BaseModel):
    question: str
    answer: str
    question_image_uri: str | None = None
    answer_image_uri: str | None = None


class CardUpdate(BaseModel):
    question: str | None = None
    answer: str | None = None
    question_image_uri: str | None = None
    answer_image_uri: str | None = None
    mastery_level: MasteryLevel | None = None
    is_starred: bool | None = None


class MasteryCounts(BaseModel):
    """Per-level card counts for a whole set, independent of any list filter."""

    mastered: int = 0
    learning: int = 0   # NEEDS_IMPROVEMENT
    new: int = 0        # NOT_STUDIED


class CardList(BaseModel):
    items: list[Card]
    total: int
    counts: MasteryCounts = MasteryCounts()


class QuizSet(BaseModel):
    id: str
    owner_id: str
    title: str
    description: str = ""
    is_ai_graded: bool = False   # persisted, not consulted by grading
    is_starred: bool = False
    created_at: str
    last_studied: int = 0        # epoch millis, 0 = never


class QuizSetCreate(BaseModel):
    title: str
    description: str = ""
    is_ai_graded: bool = False


class QuizSetUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    is_ai_graded: bool | None = None
    is_starred: bool | None = None


class QuizSetList(BaseModel):
    items: list[QuizSet]
    total: int


class ImportRequest(BaseModel):
    title: str
    raw_text: str
    delimiter: str = "auto"   # "auto" | "\t" | "," | any literal separator


class ImportResult(BaseModel):
    set: QuizSet
    imported: int
    message: str


class AssistResponse(BaseModel):
    text: str
