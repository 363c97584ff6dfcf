from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictInt

from cissp_mastery.schemas.progress import MasteryStatus


# ---------- Study sessions ----------

class StudySessionCreate(BaseModel):
    deck_id: str = Field(..., min_length=1)


class StudySessionRead(BaseModel):
    id: str
    deck_id: Optional[str] = None
    started_at: datetime
    ended_at: Optional[datetime] = None
    cards_studied: int = 0
    average_confidence: Optional[float] = None
    study_duration: Optional[int] = None

    class Config:
        from_attributes = True


# ---------- Quiz sessions ----------

class QuizAnswerSubmit(BaseModel):
    question_id: str = Field(..., min_length=1)
    selected_option_index: StrictInt = Field(..., ge=0)
    time_spent: int = Field(0, ge=0)


class QuizSessionComplete(BaseModel):
    flashcard_id: str = Field(..., min_length=1)
    started_at: datetime
    answers: list[QuizAnswerSubmit] = Field(..., min_length=1)


class QuizSessionResult(BaseModel):
    success: bool = True
    session_id: str
    total_questions: int
    correct_answers: int
    score_percentage: float
    mastery_status: MasteryStatus


# ---------- Bookmarks ----------

class BookmarkCreate(BaseModel):
    flashcard_id: str = Field(..., min_length=1)


class BookmarkStatus(BaseModel):
    bookmarked: bool
    message: Optional[str] = None


class BookmarkRead(BaseModel):
    id: str
    flashcard_id: str
    question: str
    answer: str
    deck_id: str
    deck_name: str
    class_id: str
    class_name: str
    bookmarked_at: Optional[datetime] = None


class BookmarkList(BaseModel):
    bookmarks: list[BookmarkRead] = []
    total: int = 0
