from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, computed_field

DEFAULT_BLOOM_LEVEL = "Level 1: Recall"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"


class TestStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    GRADING = "grading"
    COMPLETE = "complete"
    ERROR = "error"


class TestQuestion(BaseModel):
    id: str
    type: QuestionType
    question_text: str
    options: tuple[str, ...] = ()
    correct_answer: str
    bloom_level: str = DEFAULT_BLOOM_LEVEL
    user_answer: str = ""
    ai_feedback: str = ""
    is_correct: bool = False
    is_graded: bool = False

    model_config = {"frozen": True}


class TestSessionState(BaseModel):
    """Immutable snapshot of a test session; transitions build new snapshots."""

    status: TestStatus = TestStatus.IDLE
    questions: tuple[TestQuestion, ...] = ()
    items_per_page: int = 1
    current_page: int = 0
    score: int = 0
    error: str | None = None

    model_config = {"frozen": True}

    @computed_field
    @property
    def is_loading(self) -> bool:
        return self.status is TestStatus.LOADING

    @computed_field
    @property
    def is_grading(self) -> bool:
        return self.status is TestStatus.GRADING

    @computed_field
    @property
    def is_complete(self) -> bool:
        return self.status is TestStatus.COMPLETE

    @computed_field
    @property
    def total_pages(self) -> int:
        if not self.questions:
            return 0
        per_page = max(1, self.items_per_page)
        return (len(self.questions) + per_page - 1) // per_page


# --- HTTP payloads ---


class TestCreate(BaseModel):
    question_count: int = Field(default=5, ge=1, le=50)
    items_per_page: int = Field(default=1, ge=1)
    include_multiple_choice: bool = True
    include_true_false: bool = True
    include_short_answer: bool = True
    starred_only: bool = False

    def allowed_types(self) -> list[QuestionType]:
        types = []
        if self.include_multiple_choice:
            types.append(QuestionType.MULTIPLE_CHOICE)
        if self.include_true_false:
            types.append(QuestionType.TRUE_FALSE)
        if self.include_short_answer:
            types.append(QuestionType.SHORT_ANSWER)
        return types


class AnswerUpdate(BaseModel):
    answer: str


class TestSessionView(BaseModel):
    id: str
    set_id: str
    state: TestSessionState
