import logging
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cissp_mastery.core.exceptions import InternalError, InvalidInput, NotFound, Unauthorized
from cissp_mastery.models import Deck, Flashcard, QuizQuestion, StudyClass, UserCardProgress
from cissp_mastery.schemas.content import (
    ClassCreate,
    ClassDetail,
    ClassRead,
    ClassUpdate,
    DeckCreate,
    DeckUpdate,
    DeckWithCount,
    FlashcardCreate,
    FlashcardUpdate,
)
from cissp_mastery.schemas.quiz import QuizQuestionCreate, QuizQuestionRead, QuizQuestionUpdate
from cissp_mastery.services import ordering
from cissp_mastery.services.audit import AuditLogger

logger = logging.getLogger(__name__)


def _changes(data: BaseModel, *required: str) -> dict[str, Any]:
    """Fields the caller actually sent; ``required`` ones may not be cleared."""
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise InvalidInput("No fields to update")
    cleared = [field for field in required if field in changes and changes[field] is None]
    if cleared:
        raise InvalidInput(f"{cleared[0]} cannot be null")
    return changes


async def _commit(db: AsyncSession, action: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError(f"Failed to {action}") from exc


# ---------- Classes ----------

async def list_classes(db: AsyncSession, published_only: bool = False) -> list[StudyClass]:
    stmt = select(StudyClass).order_by(StudyClass.position_index)
    if published_only:
        stmt = stmt.where(StudyClass.is_published.is_(True))
    result = await db.scalars(stmt)
    return list(result)


async def _get_class_or_404(db: AsyncSession, class_id: str) -> StudyClass:
    study_class = await db.get(StudyClass, class_id)
    if not study_class:
        raise NotFound("Class not found")
    return study_class


async def create_class(db: AsyncSession, admin_id: str, data: ClassCreate) -> StudyClass:
    study_class = StudyClass(created_by=admin_id, **data.model_dump(exclude={"position_index"}))
    await ordering.insert_ordered(db, study_class, position=data.position_index)
    await _commit(db, "create class")
    await db.refresh(study_class)
    logger.info("Class %s created by %s", study_class.id, admin_id)
    return study_class


async def get_class_detail(db: AsyncSession, class_id: str) -> ClassDetail:
    study_class = await _get_class_or_404(db, class_id)
    card_count = (
        select(func.count(Flashcard.id))
        .where(Flashcard.deck_id == Deck.id)
        .correlate(Deck)
        .scalar_subquery()
    )
    rows = await db.execute(
        select(Deck, card_count).where(Deck.class_id == class_id).order_by(Deck.position_index)
    )
    decks = [
        DeckWithCount.model_validate(deck).model_copy(update={"card_count": count})
        for deck, count in rows.all()
    ]
    return ClassDetail(study_class=ClassRead.model_validate(study_class), decks=decks)


async def update_class(db: AsyncSession, class_id: str, data: ClassUpdate) -> StudyClass:
    changes = _changes(data, "name", "is_published")
    study_class = await _get_class_or_404(db, class_id)
    for field, value in changes.items():
        setattr(study_class, field, value)
    await _commit(db, "update class")
    await db.refresh(study_class)
    return study_class


async def delete_class(
    db: AsyncSession,
    class_id: str,
    audit: Optional[AuditLogger] = None,
    context: Optional[dict[str, Any]] = None,
) -> dict[str, int]:
    """Delete a class and everything under it in one transaction.

    Children go first: quiz questions, card progress, flashcards, decks, then
    the class itself. Any store failure rolls the whole delete back.
    """
    await _get_class_or_404(db, class_id)

    deck_ids = select(Deck.id).where(Deck.class_id == class_id)
    flashcard_ids = select(Flashcard.id).where(Flashcard.deck_id.in_(deck_ids))
    steps = [
        ("quiz_questions", delete(QuizQuestion).where(QuizQuestion.flashcard_id.in_(flashcard_ids))),
        ("card_progress", delete(UserCardProgress).where(UserCardProgress.flashcard_id.in_(flashcard_ids))),
        ("flashcards", delete(Flashcard).where(Flashcard.deck_id.in_(deck_ids))),
        ("decks", delete(Deck).where(Deck.class_id == class_id)),
        ("classes", delete(StudyClass).where(StudyClass.id == class_id)),
    ]

    counts: dict[str, int] = {}
    try:
        for name, stmt in steps:
            result = await db.execute(stmt.execution_options(synchronize_session=False))
            counts[name] = result.rowcount
        await ordering.compact(db, StudyClass)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Cascade delete of class %s failed after %s", class_id, list(counts))
        raise InternalError("Failed to delete class") from exc

    logger.info("Class %s deleted: %s", class_id, counts)
    if audit is not None:
        await audit.log_data_deletion(context, "class", class_id, counts)
    return counts


# ---------- Decks ----------

async def list_decks(db: AsyncSession, class_id: str) -> list[Deck]:
    await _get_class_or_404(db, class_id)
    result = await db.scalars(select(Deck).where(Deck.class_id == class_id).order_by(Deck.position_index))
    return list(result)


async def get_deck(db: AsyncSession, class_id: str, deck_id: str) -> Deck:
    deck = await db.get(Deck, deck_id)
    if not deck or deck.class_id != class_id:
        raise NotFound("Deck not found")
    return deck


async def create_deck(db: AsyncSession, class_id: str, admin_id: str, data: DeckCreate) -> Deck:
    await _get_class_or_404(db, class_id)
    deck = Deck(class_id=class_id, created_by=admin_id, **data.model_dump(exclude={"position_index"}))
    await ordering.insert_ordered(db, deck, Deck.class_id, class_id, data.position_index)
    await _commit(db, "create deck")
    await db.refresh(deck)
    return deck


async def update_deck(db: AsyncSession, class_id: str, deck_id: str, data: DeckUpdate) -> Deck:
    changes = _changes(data, "name", "is_premium", "is_published")
    deck = await get_deck(db, class_id, deck_id)
    for field, value in changes.items():
        setattr(deck, field, value)
    await _commit(db, "update deck")
    await db.refresh(deck)
    return deck


async def move_deck(db: AsyncSession, class_id: str, deck_id: str, position: int) -> Deck:
    deck = await get_deck(db, class_id, deck_id)
    await ordering.move_ordered(db, deck, position, Deck.class_id, class_id)
    await _commit(db, "move deck")
    await db.refresh(deck)
    return deck


async def delete_deck(
    db: AsyncSession,
    class_id: str,
    deck_id: str,
    audit: Optional[AuditLogger] = None,
    context: Optional[dict[str, Any]] = None,
) -> dict[str, int]:
    await get_deck(db, class_id, deck_id)

    flashcard_ids = select(Flashcard.id).where(Flashcard.deck_id == deck_id)
    steps = [
        ("quiz_questions", delete(QuizQuestion).where(QuizQuestion.flashcard_id.in_(flashcard_ids))),
        ("card_progress", delete(UserCardProgress).where(UserCardProgress.flashcard_id.in_(flashcard_ids))),
        ("flashcards", delete(Flashcard).where(Flashcard.deck_id == deck_id)),
        ("decks", delete(Deck).where(Deck.id == deck_id)),
    ]

    counts: dict[str, int] = {}
    try:
        for name, stmt in steps:
            result = await db.execute(stmt.execution_options(synchronize_session=False))
            counts[name] = result.rowcount
        await ordering.compact(db, Deck, Deck.class_id, class_id)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to delete deck") from exc

    if audit is not None:
        await audit.log_data_deletion(context, "deck", deck_id, counts)
    return counts


# ---------- Flashcards ----------

async def _get_deck_by_id_or_404(db: AsyncSession, deck_id: str) -> Deck:
    deck = await db.get(Deck, deck_id)
    if not deck:
        raise NotFound("Deck not found")
    return deck


async def list_flashcards(db: AsyncSession, deck_id: str) -> list[Flashcard]:
    await _get_deck_by_id_or_404(db, deck_id)
    result = await db.scalars(
        select(Flashcard).where(Flashcard.deck_id == deck_id).order_by(Flashcard.position_index)
    )
    return list(result)


async def get_flashcard(db: AsyncSession, deck_id: str, flashcard_id: str) -> Flashcard:
    flashcard = await db.get(Flashcard, flashcard_id)
    if not flashcard or flashcard.deck_id != deck_id:
        raise NotFound("Flashcard not found")
    return flashcard


async def create_flashcard(db: AsyncSession, deck_id: str, admin_id: str, data: FlashcardCreate) -> Flashcard:
    await _get_deck_by_id_or_404(db, deck_id)
    flashcard = Flashcard(deck_id=deck_id, created_by=admin_id, **data.model_dump(exclude={"position_index"}))
    await ordering.insert_ordered(db, flashcard, Flashcard.deck_id, deck_id, data.position_index)
    await _commit(db, "create flashcard")
    await db.refresh(flashcard)
    return flashcard


async def update_flashcard(db: AsyncSession, deck_id: str, flashcard_id: str, data: FlashcardUpdate) -> Flashcard:
    changes = _changes(data, "question", "answer", "is_published")
    flashcard = await get_flashcard(db, deck_id, flashcard_id)
    for field, value in changes.items():
        setattr(flashcard, field, value)
    await _commit(db, "update flashcard")
    await db.refresh(flashcard)
    return flashcard


async def move_flashcard(db: AsyncSession, deck_id: str, flashcard_id: str, position: int) -> Flashcard:
    flashcard = await get_flashcard(db, deck_id, flashcard_id)
    await ordering.move_ordered(db, flashcard, position, Flashcard.deck_id, deck_id)
    await _commit(db, "move flashcard")
    await db.refresh(flashcard)
    return flashcard


async def delete_flashcard(
    db: AsyncSession,
    deck_id: str,
    flashcard_id: str,
    audit: Optional[AuditLogger] = None,
    context: Optional[dict[str, Any]] = None,
) -> dict[str, int]:
    await get_flashcard(db, deck_id, flashcard_id)

    steps = [
        ("quiz_questions", delete(QuizQuestion).where(QuizQuestion.flashcard_id == flashcard_id)),
        ("card_progress", delete(UserCardProgress).where(UserCardProgress.flashcard_id == flashcard_id)),
        ("flashcards", delete(Flashcard).where(Flashcard.id == flashcard_id)),
    ]

    counts: dict[str, int] = {}
    try:
        for name, stmt in steps:
            result = await db.execute(stmt.execution_options(synchronize_session=False))
            counts[name] = result.rowcount
        await ordering.compact(db, Flashcard, Flashcard.deck_id, deck_id)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to delete flashcard") from exc

    if audit is not None:
        await audit.log_data_deletion(context, "flashcard", flashcard_id, counts)
    return counts


# ---------- Quiz Questions ----------

async def _get_flashcard_by_id_or_404(db: AsyncSession, flashcard_id: str) -> Flashcard:
    flashcard = await db.get(Flashcard, flashcard_id)
    if not flashcard:
        raise NotFound("Flashcard not found")
    return flashcard


async def list_quiz_questions(db: AsyncSession, flashcard_id: str) -> list[QuizQuestionRead]:
    await _get_flashcard_by_id_or_404(db, flashcard_id)
    result = await db.scalars(
        select(QuizQuestion)
        .where(QuizQuestion.flashcard_id == flashcard_id)
        .order_by(QuizQuestion.position_index)
    )
    return [QuizQuestionRead.model_validate(question) for question in result]


async def _get_question_or_404(db: AsyncSession, flashcard_id: str, question_id: str) -> QuizQuestion:
    question = await db.get(QuizQuestion, question_id)
    if not question or question.flashcard_id != flashcard_id:
        raise NotFound("Quiz question not found")
    return question


async def create_quiz_question(
    db: AsyncSession, flashcard_id: str, admin_id: str, data: QuizQuestionCreate
) -> QuizQuestionRead:
    await _get_flashcard_by_id_or_404(db, flashcard_id)
    question = QuizQuestion(
        flashcard_id=flashcard_id,
        question_text=data.question_text,
        options=[option.model_dump() for option in data.options],
        explanation=data.explanation,
        justifications=data.justifications.model_dump() if data.justifications else None,
        created_by=admin_id,
    )
    await ordering.insert_ordered(db, question, QuizQuestion.flashcard_id, flashcard_id, data.position_index)
    await _commit(db, "create quiz question")
    await db.refresh(question)
    return QuizQuestionRead.model_validate(question)


async def update_quiz_question(
    db: AsyncSession, flashcard_id: str, question_id: str, data: QuizQuestionUpdate
) -> QuizQuestionRead:
    _changes(data, "question_text", "options")
    question = await _get_question_or_404(db, flashcard_id, question_id)
    fields = data.model_fields_set
    if "question_text" in fields:
        question.question_text = data.question_text
    if "options" in fields:
        question.options = [option.model_dump() for option in data.options]
    if "explanation" in fields:
        question.explanation = data.explanation
    if "justifications" in fields:
        question.justifications = data.justifications.model_dump() if data.justifications else None
    await _commit(db, "update quiz question")
    await db.refresh(question)
    return QuizQuestionRead.model_validate(question)


async def move_quiz_question(db: AsyncSession, flashcard_id: str, question_id: str, position: int) -> QuizQuestionRead:
    question = await _get_question_or_404(db, flashcard_id, question_id)
    await ordering.move_ordered(db, question, position, QuizQuestion.flashcard_id, flashcard_id)
    await _commit(db, "move quiz question")
    await db.refresh(question)
    return QuizQuestionRead.model_validate(question)


async def delete_quiz_question(
    db: AsyncSession,
    flashcard_id: str,
    question_id: str,
    audit: Optional[AuditLogger] = None,
    context: Optional[dict[str, Any]] = None,
) -> None:
    await _get_question_or_404(db, flashcard_id, question_id)
    try:
        await db.execute(
            delete(QuizQuestion)
            .where(QuizQuestion.id == question_id)
            .execution_options(synchronize_session=False)
        )
        await ordering.compact(db, QuizQuestion, QuizQuestion.flashcard_id, flashcard_id)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to delete quiz question") from exc

    if audit is not None:
        await audit.log_data_deletion(context, "quiz_question", question_id)


# ---------- Study views ----------

async def list_study_flashcards(db: AsyncSession, deck_id: str, has_paid_access: bool) -> list[Flashcard]:
    deck = await db.get(Deck, deck_id)
    if not deck or not deck.is_published:
        raise NotFound("Deck not found")
    if deck.is_premium and not has_paid_access:
        raise Unauthorized("Premium subscription required")
    result = await db.scalars(
        select(Flashcard)
        .where(Flashcard.deck_id == deck_id, Flashcard.is_published.is_(True))
        .order_by(Flashcard.position_index)
    )
    return list(result)


async def list_study_quiz(db: AsyncSession, flashcard_id: str, has_paid_access: bool) -> list[QuizQuestionRead]:
    flashcard = await db.get(Flashcard, flashcard_id)
    if not flashcard or not flashcard.is_published:
        raise NotFound("Flashcard not found")
    deck = await db.get(Deck, flashcard.deck_id)
    if not deck or not deck.is_published:
        raise NotFound("Flashcard not found")
    if deck.is_premium and not has_paid_access:
        raise Unauthorized("Premium subscription required")
    return await list_quiz_questions(db, flashcard_id)
