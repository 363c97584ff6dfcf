from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ---------- Classes ----------

class ClassBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    is_published: bool = True


class ClassCreate(ClassBase):
    position_index: Optional[int] = Field(None, ge=0)


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    is_published: Optional[bool] = None


class ClassRead(ClassBase):
    id: str
    position_index: int
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------- Decks ----------

class DeckBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    is_premium: bool = False
    is_published: bool = True


class DeckCreate(DeckBase):
    position_index: Optional[int] = Field(None, ge=0)


class DeckUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    is_premium: Optional[bool] = None
    is_published: Optional[bool] = None


class DeckRead(DeckBase):
    id: str
    class_id: str
    position_index: int
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DeckWithCount(DeckRead):
    card_count: int = 0


class ClassDetail(BaseModel):
    study_class: ClassRead = Field(..., serialization_alias="class")
    decks: list[DeckWithCount] = []


# ---------- Flashcards ----------

class FlashcardBase(BaseModel):
    question: str = Field(..., min_length=1, max_length=5000)
    answer: str = Field(..., min_length=1, max_length=5000)
    explanation: Optional[str] = Field(None, max_length=2000)
    is_published: bool = True


class FlashcardCreate(FlashcardBase):
    position_index: Optional[int] = Field(None, ge=0)


class FlashcardUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=1, max_length=5000)
    answer: Optional[str] = Field(None, min_length=1, max_length=5000)
    explanation: Optional[str] = Field(None, max_length=2000)
    is_published: Optional[bool] = None


class FlashcardRead(FlashcardBase):
    id: str
    deck_id: str
    position_index: int
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------- Ordering ----------

class MoveRequest(BaseModel):
    position_index: int = Field(..., ge=0)


class DeleteResult(BaseModel):
    message: str
    deleted: dict[str, int] = {}
