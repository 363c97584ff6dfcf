"""Structured quiz question payloads.

Options and justifications used to be stored as opaque JSON text and parsed
ad hoc at read time. They are now explicit models: ``options`` is a list of
:class:`QuizOption`, and ``justifications`` is a :class:`QuizJustifications`
object carrying a ``schema_version``. Payloads written before versioning
(version 1: every justification field held a JSON-encoded string) are
upgraded transparently when validated, so stored rows and admin uploads in
either shape end up as version 2.
"""
import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

JUSTIFICATION_SCHEMA_VERSION = 2
JUSTIFICATION_FIELDS = (
    "elimination_tactics",
    "correct_answer_with_justification",
    "compare_remaining_options_with_justification",
    "correct_options_justification",
)


class QuizOption(BaseModel):
    text: str = Field(..., min_length=1)
    is_correct: bool


def _upgrade_v1_field(name: str, raw: Any) -> dict[str, str]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{name} is not valid JSON") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"{name} must be an object mapping option text to justification")
    return {str(key): str(value) for key, value in raw.items()}


class QuizJustifications(BaseModel):
    schema_version: int = JUSTIFICATION_SCHEMA_VERSION
    elimination_tactics: dict[str, str] = Field(default_factory=dict)
    correct_answer_with_justification: dict[str, str] = Field(default_factory=dict)
    compare_remaining_options_with_justification: dict[str, str] = Field(default_factory=dict)
    correct_options_justification: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def upgrade_legacy_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        version = data.get("schema_version", 1)
        if version > JUSTIFICATION_SCHEMA_VERSION:
            raise ValueError(f"Unsupported justification schema version {version}")
        if version == JUSTIFICATION_SCHEMA_VERSION:
            return data
        upgraded = {name: _upgrade_v1_field(name, data.get(name)) for name in JUSTIFICATION_FIELDS}
        upgraded["schema_version"] = JUSTIFICATION_SCHEMA_VERSION
        return upgraded

    @field_validator("schema_version")
    @classmethod
    def pin_version(cls, value: int) -> int:
        if value != JUSTIFICATION_SCHEMA_VERSION:
            raise ValueError("justifications were not upgraded to the current schema version")
        return value

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in JUSTIFICATION_FIELDS)


def _check_options(options: list[QuizOption]) -> list[QuizOption]:
    if not any(option.is_correct for option in options):
        raise ValueError("At least one correct answer is required")
    return options


class QuizQuestionCreate(BaseModel):
    question_text: str = Field(..., min_length=1)
    options: list[QuizOption] = Field(..., min_length=2, max_length=6)
    explanation: Optional[str] = None
    justifications: Optional[QuizJustifications] = None
    position_index: Optional[int] = Field(None, ge=0)

    @field_validator("options")
    @classmethod
    def validate_options(cls, value: list[QuizOption]) -> list[QuizOption]:
        return _check_options(value)


class QuizQuestionUpdate(BaseModel):
    """All fields optional for PATCH; ordering changes go through move."""
    question_text: Optional[str] = Field(None, min_length=1)
    options: Optional[list[QuizOption]] = Field(None, min_length=2, max_length=6)
    explanation: Optional[str] = None
    justifications: Optional[QuizJustifications] = None

    @field_validator("options")
    @classmethod
    def validate_options(cls, value: Optional[list[QuizOption]]) -> Optional[list[QuizOption]]:
        return value if value is None else _check_options(value)


class QuizQuestionRead(BaseModel):
    id: str
    flashcard_id: str
    question_text: str
    options: list[QuizOption]
    explanation: Optional[str] = None
    justifications: Optional[QuizJustifications] = None
    position_index: int
    created_by: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuizQuestionList(BaseModel):
    success: bool = True
    questions: list[QuizQuestionRead] = []
