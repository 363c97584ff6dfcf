"""Confidence ratings, mastery transitions and study statistics.

A rating touches two rows in one transaction: the caller's
``UserCardProgress`` for the card (upserted on the unique user/card pair) and
their ``UserStats`` row (a single UPDATE whose new values are computed by the
database). Neither write reads a value into Python and writes it back, so
concurrent ratings from the same user never lose an increment.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cissp_mastery.core.exceptions import Conflict, InternalError, InvalidInput, NotFound
from cissp_mastery.db.base import new_id
from cissp_mastery.db.upsert import insert_if_absent, upsert
from cissp_mastery.models import Deck, Flashcard, SessionCard, StudySession, UserCardProgress, UserStats
from cissp_mastery.schemas.progress import CardProgressRead, DeckProgress, RatingResult, UserStatsRead

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 5

REVIEW_INTERVALS = {
    5: timedelta(days=7),
    4: timedelta(days=3),
    3: timedelta(days=1),
}
SHORT_REVIEW_INTERVAL = timedelta(hours=12)


def validate_confidence(confidence) -> int:
    # bool is an int subclass; True must not count as a rating of 1
    if isinstance(confidence, bool) or not isinstance(confidence, int):
        raise InvalidInput("Confidence level must be an integer between 1 and 5")
    if not MIN_CONFIDENCE <= confidence <= MAX_CONFIDENCE:
        raise InvalidInput("Confidence level must be an integer between 1 and 5")
    return confidence


def next_mastery_status(current: Optional[str], confidence: int) -> str:
    """
    1-2 -> learning
    3-4 -> learning when the card is new (or unseen), otherwise unchanged
    5   -> mastered
    """
    confidence = validate_confidence(confidence)
    if confidence == MAX_CONFIDENCE:
        return "mastered"
    if confidence <= 2:
        return "learning"
    if current is None or current == "new":
        return "learning"
    return current


def next_review_at(confidence: int, now: datetime) -> datetime:
    return now + REVIEW_INTERVALS.get(confidence, SHORT_REVIEW_INTERVAL)


def _stats_update(user_id: str, today: date, study_time_seconds: int, cards_studied: int = 1):
    """Single UPDATE for a day of activity; every new value is computed in SQL."""
    yesterday = today - timedelta(days=1)
    return (
        update(UserStats)
        .where(UserStats.user_id == user_id)
        .values(
            total_cards_studied=UserStats.total_cards_studied + cards_studied,
            daily_cards_studied_today=case(
                (UserStats.last_reset_date == today, UserStats.daily_cards_studied_today + cards_studied),
                else_=cards_studied,
            ),
            study_streak_days=case(
                (UserStats.last_active_date == today, UserStats.study_streak_days),
                (UserStats.last_active_date == yesterday, UserStats.study_streak_days + 1),
                else_=1,
            ),
            total_study_time=UserStats.total_study_time + study_time_seconds,
            last_active_date=today,
            last_reset_date=today,
            updated_at=func.now(),
        )
        .execution_options(synchronize_session=False)
    )


async def _get_stats_row(db: AsyncSession, user_id: str) -> Optional[UserStats]:
    stmt = select(UserStats).where(UserStats.user_id == user_id).execution_options(populate_existing=True)
    result = await db.scalars(stmt)
    return result.first()


async def _active_session(db: AsyncSession, user_id: str, session_id: str) -> StudySession:
    session = await db.get(StudySession, session_id, populate_existing=True)
    if session is None or session.user_id != user_id:
        raise NotFound("Study session not found")
    if not session.is_active:
        raise Conflict("Study session has already ended")
    return session


async def submit_rating(
    db: AsyncSession,
    user_id: str,
    flashcard_id: str,
    confidence,
    study_time_seconds: int = 0,
    today: Optional[date] = None,
    session_id: Optional[str] = None,
) -> RatingResult:
    """Record one confidence rating.

    Inside a study session the card is also logged to the session, and its
    time is left to the session total added when the session ends.
    """
    confidence = validate_confidence(confidence)
    if isinstance(study_time_seconds, bool) or not isinstance(study_time_seconds, int) or study_time_seconds < 0:
        raise InvalidInput("Study time must be a non-negative number of seconds")

    now = datetime.now(timezone.utc).replace(tzinfo=None)
    today = today or now.date()

    try:
        flashcard = await db.get(Flashcard, flashcard_id)
        if flashcard is None:
            raise NotFound("Flashcard not found")
        session = await _active_session(db, user_id, session_id) if session_id else None

        existing = await db.scalars(
            select(UserCardProgress.mastery_status)
            .where(
                UserCardProgress.user_id == user_id,
                UserCardProgress.flashcard_id == flashcard_id,
            )
            .with_for_update()
        )
        current_status = existing.first()
        mastery_status = next_mastery_status(current_status, confidence)
        review_at = next_review_at(confidence, now)

        await insert_if_absent(db, UserStats, {"id": new_id(), "user_id": user_id})
        await db.execute(_stats_update(user_id, today, 0 if session is not None else study_time_seconds))
        if session is not None:
            db.add(
                SessionCard(
                    session_id=session.id,
                    flashcard_id=flashcard_id,
                    confidence_rating=confidence,
                    response_time=study_time_seconds,
                )
            )

        await upsert(
            db,
            UserCardProgress,
            {
                "id": new_id(),
                "user_id": user_id,
                "flashcard_id": flashcard_id,
                "confidence_level": confidence,
                "times_seen": 1,
                "last_seen": now,
                "next_review_date": review_at,
                "mastery_status": mastery_status,
            },
            ["user_id", "flashcard_id"],
            {
                "confidence_level": confidence,
                "times_seen": UserCardProgress.times_seen + 1,
                "last_seen": now,
                "next_review_date": review_at,
                "mastery_status": mastery_status,
                "updated_at": func.now(),
            },
        )
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Rating for flashcard %s by %s conflicted: %s", flashcard_id, user_id, exc.orig)
        raise Conflict("Flashcard was modified while rating; please retry") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to record study progress") from exc

    progress = await get_card_progress(db, user_id, flashcard_id)
    stats = await _get_stats_row(db, user_id)
    return RatingResult(
        flashcard_id=flashcard_id,
        confidence_level=confidence,
        mastery_status=mastery_status,
        times_seen=progress.times_seen if progress else 1,
        next_review_date=review_at,
        stats=UserStatsRead.model_validate(stats),
    )


async def get_card_progress(db: AsyncSession, user_id: str, flashcard_id: str) -> Optional[CardProgressRead]:
    stmt = (
        select(UserCardProgress)
        .where(UserCardProgress.user_id == user_id, UserCardProgress.flashcard_id == flashcard_id)
        .execution_options(populate_existing=True)
    )
    result = await db.scalars(stmt)
    progress = result.first()
    return CardProgressRead.model_validate(progress) if progress else None


async def get_user_stats(db: AsyncSession, user_id: str) -> UserStatsRead:
    stats = await _get_stats_row(db, user_id)
    if stats is None:
        return UserStatsRead(user_id=user_id)
    return UserStatsRead.model_validate(stats)


async def get_deck_progress(db: AsyncSession, user_id: str, deck_id: str) -> DeckProgress:
    if await db.get(Deck, deck_id) is None:
        raise NotFound("Deck not found")
    total = await db.scalar(
        select(func.count(Flashcard.id)).where(Flashcard.deck_id == deck_id, Flashcard.is_published.is_(True))
    )
    rows = await db.execute(
        select(UserCardProgress.mastery_status, func.count(UserCardProgress.id))
        .join(Flashcard, Flashcard.id == UserCardProgress.flashcard_id)
        .where(
            UserCardProgress.user_id == user_id,
            Flashcard.deck_id == deck_id,
            Flashcard.is_published.is_(True),
        )
        .group_by(UserCardProgress.mastery_status)
    )
    counts = {status: count for status, count in rows.all()}
    learning = counts.get("learning", 0)
    mastered = counts.get("mastered", 0)
    total = total or 0
    return DeckProgress(
        deck_id=deck_id,
        total_cards=total,
        new=max(total - learning - mastered, 0),
        learning=learning,
        mastered=mastered,
        mastery_percentage=round(mastered / total * 100, 1) if total else 0.0,
    )
