from datetime import datetime
from typing import List, Optional

from sqlalchemy import TIMESTAMP, Boolean, Enum, Float, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cissp_mastery.db.base import Base, new_id
from cissp_mastery.models.progress import MASTERY_STATUSES


# ---------------- Study Sessions ----------------
class StudySession(Base):
    __tablename__ = "study_sessions"
    __table_args__ = (Index("idx_study_sessions_user_started", "user_id", "started_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id", ondelete="CASCADE"), nullable=False)
    deck_id: Mapped[Optional[str]] = mapped_column(ForeignKey("decks.id", ondelete="SET NULL"), nullable=True)
    started_at: Mapped[datetime] = mapped_column(TIMESTAMP, nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP, nullable=True)
    cards_studied: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    study_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # in seconds
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())

    cards: Mapped[List["SessionCard"]] = relationship(back_populates="session", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return self.ended_at is None


class SessionCard(Base):
    __tablename__ = "session_cards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    session_id: Mapped[str] = mapped_column(ForeignKey("study_sessions.id", ondelete="CASCADE"), nullable=False)
    flashcard_id: Mapped[str] = mapped_column(ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False)
    confidence_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    response_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # in seconds
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())

    session: Mapped["StudySession"] = relationship(back_populates="cards")


# ---------------- Quiz Sessions ----------------
class QuizSession(Base):
    __tablename__ = "quiz_sessions"
    __table_args__ = (Index("idx_quiz_sessions_user_flashcard", "user_id", "flashcard_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id", ondelete="CASCADE"), nullable=False)
    flashcard_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("flashcards.id", ondelete="SET NULL"), nullable=True
    )
    started_at: Mapped[datetime] = mapped_column(TIMESTAMP, nullable=False)
    ended_at: Mapped[datetime] = mapped_column(TIMESTAMP, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False)
    score_percentage: Mapped[float] = mapped_column(Float, nullable=False)
    quiz_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # in seconds
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())

    answers: Mapped[List["QuizSessionAnswer"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="QuizSessionAnswer.question_order",
    )


class QuizSessionAnswer(Base):
    __tablename__ = "quiz_session_answers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    session_id: Mapped[str] = mapped_column(ForeignKey("quiz_sessions.id", ondelete="CASCADE"), nullable=False)
    quiz_question_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("quiz_questions.id", ondelete="SET NULL"), nullable=True
    )
    selected_option_index: Mapped[int] = mapped_column(Integer, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    question_order: Mapped[int] = mapped_column(Integer, nullable=False)

    session: Mapped["QuizSession"] = relationship(back_populates="answers")


class UserQuizProgress(Base):
    __tablename__ = "user_quiz_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "flashcard_id", name="uq_user_quiz_progress_user_flashcard"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id", ondelete="CASCADE"), nullable=False)
    flashcard_id: Mapped[str] = mapped_column(ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False)
    times_taken: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    best_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_taken: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP, nullable=True)
    mastery_status: Mapped[str] = mapped_column(
        Enum(*MASTERY_STATUSES, name="quiz_mastery_status"), nullable=False, default="new"
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())


# ---------------- Bookmarks ----------------
class BookmarkedFlashcard(Base):
    __tablename__ = "bookmarked_flashcards"
    __table_args__ = (
        UniqueConstraint("user_id", "flashcard_id", name="uq_bookmarked_flashcards_user_flashcard"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id", ondelete="CASCADE"), nullable=False)
    flashcard_id: Mapped[str] = mapped_column(ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
