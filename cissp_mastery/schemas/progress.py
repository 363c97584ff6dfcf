from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, StrictInt

MasteryStatus = Literal["new", "learning", "mastered"]


class RatingSubmit(BaseModel):
    flashcard_id: str = Field(..., min_length=1)
    # StrictInt keeps true/false and "3" from passing as a rating
    confidence_level: StrictInt = Field(..., ge=1, le=5)
    study_time_seconds: int = Field(0, ge=0)
    session_id: Optional[str] = None


class UserStatsRead(BaseModel):
    user_id: str
    total_cards_studied: int = 0
    study_streak_days: int = 0
    total_study_time: int = 0
    daily_cards_studied_today: int = 0
    last_active_date: Optional[date] = None
    last_reset_date: Optional[date] = None

    class Config:
        from_attributes = True


class RatingResult(BaseModel):
    flashcard_id: str
    confidence_level: int
    mastery_status: MasteryStatus
    times_seen: int
    next_review_date: datetime
    stats: UserStatsRead


class CardProgressRead(BaseModel):
    flashcard_id: str
    confidence_level: int
    times_seen: int
    last_seen: Optional[datetime] = None
    next_review_date: Optional[datetime] = None
    mastery_status: MasteryStatus

    class Config:
        from_attributes = True


class DeckProgress(BaseModel):
    deck_id: str
    total_cards: int
    new: int
    learning: int
    mastered: int
    mastery_percentage: float
