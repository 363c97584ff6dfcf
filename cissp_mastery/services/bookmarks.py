import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cissp_mastery.core.exceptions import InternalError, NotFound
from cissp_mastery.db.base import new_id
from cissp_mastery.db.upsert import insert_if_absent
from cissp_mastery.models import BookmarkedFlashcard, Deck, Flashcard, StudyClass
from cissp_mastery.schemas.study import BookmarkList, BookmarkRead, BookmarkStatus

logger = logging.getLogger(__name__)


async def is_bookmarked(db: AsyncSession, user_id: str, flashcard_id: str) -> bool:
    found = await db.scalar(
        select(BookmarkedFlashcard.id).where(
            BookmarkedFlashcard.user_id == user_id,
            BookmarkedFlashcard.flashcard_id == flashcard_id,
        )
    )
    return found is not None


async def add_bookmark(db: AsyncSession, user_id: str, flashcard_id: str) -> BookmarkStatus:
    """Bookmark a flashcard; bookmarking it twice is not an error."""
    if await db.get(Flashcard, flashcard_id) is None:
        raise NotFound("Flashcard not found")
    if await is_bookmarked(db, user_id, flashcard_id):
        return BookmarkStatus(bookmarked=True, message="Already bookmarked")

    try:
        await insert_if_absent(
            db,
            BookmarkedFlashcard,
            {"id": new_id(), "user_id": user_id, "flashcard_id": flashcard_id},
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to add bookmark") from exc
    logger.info("User %s bookmarked flashcard %s", user_id, flashcard_id)
    return BookmarkStatus(bookmarked=True, message="Bookmark added")


async def list_bookmarks(db: AsyncSession, user_id: str) -> BookmarkList:
    rows = await db.execute(
        select(BookmarkedFlashcard, Flashcard, Deck, StudyClass)
        .join(Flashcard, Flashcard.id == BookmarkedFlashcard.flashcard_id)
        .join(Deck, Deck.id == Flashcard.deck_id)
        .join(StudyClass, StudyClass.id == Deck.class_id)
        .where(BookmarkedFlashcard.user_id == user_id)
        .order_by(BookmarkedFlashcard.created_at.desc(), BookmarkedFlashcard.id)
    )
    bookmarks = [
        BookmarkRead(
            id=bookmark.id,
            flashcard_id=flashcard.id,
            question=flashcard.question,
            answer=flashcard.answer,
            deck_id=deck.id,
            deck_name=deck.name,
            class_id=study_class.id,
            class_name=study_class.name,
            bookmarked_at=bookmark.created_at,
        )
        for bookmark, flashcard, deck, study_class in rows.all()
    ]
    return BookmarkList(bookmarks=bookmarks, total=len(bookmarks))


async def remove_bookmark(db: AsyncSession, user_id: str, flashcard_id: str) -> BookmarkStatus:
    try:
        result = await db.execute(
            delete(BookmarkedFlashcard)
            .where(
                BookmarkedFlashcard.user_id == user_id,
                BookmarkedFlashcard.flashcard_id == flashcard_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFound("Bookmark not found")
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to remove bookmark") from exc
    logger.info("User %s removed bookmark on flashcard %s", user_id, flashcard_id)
    return BookmarkStatus(bookmarked=False, message="Bookmark removed")
