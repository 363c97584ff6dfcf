from datetime import datetime
from typing import Optional

from sqlalchemy import TIMESTAMP, Enum, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from cissp_mastery.db.base import Base, new_id

MASTERY_STATUSES = ("new", "learning", "mastered")


# ---------------- Per-user Card Progress ----------------
class UserCardProgress(Base):
    __tablename__ = "user_card_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "flashcard_id", name="uq_user_card_progress_user_flashcard"),
        Index("idx_user_card_progress_mastery", "user_id", "mastery_status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.auth_user_id", ondelete="CASCADE"), nullable=False)
    flashcard_id: Mapped[str] = mapped_column(ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False)
    confidence_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0 = not yet rated
    times_seen: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_seen: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP, nullable=True)
    next_review_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP, nullable=True)
    mastery_status: Mapped[str] = mapped_column(
        Enum(*MASTERY_STATUSES, name="mastery_status"), nullable=False, default="new"
    )
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())
