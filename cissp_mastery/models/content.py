from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, TIMESTAMP, Boolean, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cissp_mastery.db.base import Base, new_id


# ---------------- Classes ----------------
class StudyClass(Base):
    __tablename__ = "classes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    decks: Mapped[List["Deck"]] = relationship(
        back_populates="study_class",
        cascade="all, delete-orphan",
        order_by="Deck.position_index",
    )


# ---------------- Decks ----------------
class Deck(Base):
    __tablename__ = "decks"
    __table_args__ = (Index("idx_decks_class_order", "class_id", "position_index"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    class_id: Mapped[str] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)  # requires paid access
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    study_class: Mapped["StudyClass"] = relationship(back_populates="decks")
    flashcards: Mapped[List["Flashcard"]] = relationship(
        back_populates="deck",
        cascade="all, delete-orphan",
        order_by="Flashcard.position_index",
    )


# ---------------- Flashcards ----------------
class Flashcard(Base):
    __tablename__ = "flashcards"
    __table_args__ = (Index("idx_flashcards_deck_order", "deck_id", "position_index"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    deck_id: Mapped[str] = mapped_column(ForeignKey("decks.id", ondelete="CASCADE"), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    deck: Mapped["Deck"] = relationship(back_populates="flashcards")
    quiz_questions: Mapped[List["QuizQuestion"]] = relationship(
        back_populates="flashcard",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.position_index",
    )


# ---------------- Quiz Questions ----------------
class QuizQuestion(Base):
    __tablename__ = "quiz_questions"
    __table_args__ = (Index("idx_quiz_questions_flashcard_order", "flashcard_id", "position_index"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    flashcard_id: Mapped[str] = mapped_column(ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list] = mapped_column(JSON, nullable=False)  # [{"text": ..., "is_correct": ...}]
    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    justifications: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # versioned, see schemas.quiz
    position_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    flashcard: Mapped["Flashcard"] = relationship(back_populates="quiz_questions")
