from cissp_mastery.models.audit import AuditEvent
from cissp_mastery.models.content import Deck, Flashcard, QuizQuestion, StudyClass
from cissp_mastery.models.progress import MASTERY_STATUSES, UserCardProgress
from cissp_mastery.models.study import (
    BookmarkedFlashcard,
    QuizSession,
    QuizSessionAnswer,
    SessionCard,
    StudySession,
    UserQuizProgress,
)
from cissp_mastery.models.user import PLAN_TYPES, SUBSCRIPTION_STATUSES, Subscription, User, UserStats

__all__ = [
    "AuditEvent",
    "BookmarkedFlashcard",
    "Deck",
    "Flashcard",
    "MASTERY_STATUSES",
    "PLAN_TYPES",
    "QuizQuestion",
    "QuizSession",
    "QuizSessionAnswer",
    "SessionCard",
    "StudyClass",
    "StudySession",
    "SUBSCRIPTION_STATUSES",
    "Subscription",
    "User",
    "UserCardProgress",
    "UserQuizProgress",
    "UserStats",
]
