from flashstudy.models.card import (
    Card,
    CardCreate,
    CardList,
    CardUpdate,
    MasteryCounts,
    MasteryLevel,
    QuizSet,
    QuizSetCreate,
    QuizSetList,
    QuizSetUpdate,
    SortOption,
)
from flashstudy.models.study import StudyMode, StudyQueueState
from flashstudy.models.test import (
    QuestionType,
    TestQuestion,
    TestSessionState,
    TestStatus,
)
from flashstudy.models.tutor import ChatMessage, TutorSessionState

__all__ = [
    "Card",
    "CardCreate",
    "CardList",
    "CardUpdate",
    "ChatMessage",
    "MasteryCounts",
    "MasteryLevel",
    "QuestionType",
    "QuizSet",
    "QuizSetCreate",
    "QuizSetList",
    "QuizSetUpdate",
    "SortOption",
    "StudyMode",
    "StudyQueueState",
    "TestQuestion",
    "TestSessionState",
    "TestStatus",
    "TutorSessionState",
]
