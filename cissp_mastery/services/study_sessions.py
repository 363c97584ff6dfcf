"""Timed study sessions and completed quiz sessions.

A study session groups the ratings a user submits while working through a
deck. Ratings land in ``session_cards`` as they happen; ending the session
stamps the wall-clock duration and rolls it into ``UserStats`` with the same
in-database UPDATE a rating uses. A quiz session is recorded in one shot when
the quiz is finished, graded against the stored options, and folded into the
user's per-flashcard quiz aggregate.
"""
import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cissp_mastery.core.exceptions import Conflict, InternalError, InvalidInput, NotFound
from cissp_mastery.db.base import new_id
from cissp_mastery.db.upsert import insert_if_absent, upsert
from cissp_mastery.models import (
    Deck,
    Flashcard,
    QuizQuestion,
    QuizSession,
    QuizSessionAnswer,
    SessionCard,
    StudySession,
    UserQuizProgress,
    UserStats,
)
from cissp_mastery.schemas.study import QuizSessionComplete, QuizSessionResult
from cissp_mastery.services.study_progress import _stats_update

logger = logging.getLogger(__name__)

# quiz mastery thresholds, in percent
QUIZ_MASTERED_AVERAGE = 80
QUIZ_MASTERED_BEST = 90
QUIZ_LEARNING_AVERAGE = 60
QUIZ_LEARNING_BEST = 70


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------- Study sessions ----------

async def create_session(db: AsyncSession, user_id: str, deck_id: str) -> StudySession:
    if await db.get(Deck, deck_id) is None:
        raise NotFound("Deck not found")

    session = StudySession(user_id=user_id, deck_id=deck_id, started_at=_utcnow(), cards_studied=0)
    db.add(session)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to create study session") from exc
    logger.info("Study session %s started by %s on deck %s", session.id, user_id, deck_id)
    return session


async def get_session(db: AsyncSession, user_id: str, session_id: str) -> StudySession:
    stmt = (
        select(StudySession)
        .where(StudySession.id == session_id, StudySession.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    session = (await db.scalars(stmt)).first()
    if session is None:
        raise NotFound("Study session not found")
    return session


async def end_session(
    db: AsyncSession,
    user_id: str,
    session_id: str,
    today: Optional[date] = None,
) -> StudySession:
    """Close the session and add its duration to the user's stats.

    Cards studied and average confidence come from the ratings logged to the
    session. Those ratings already counted towards ``total_cards_studied``, so
    ending only adds time and marks the day as active.
    """
    session = await get_session(db, user_id, session_id)
    now = _utcnow()
    today = today or now.date()
    duration = max(int((now - session.started_at).total_seconds()), 0)

    try:
        cards, average = (
            await db.execute(
                select(func.count(SessionCard.id), func.avg(SessionCard.confidence_rating))
                .where(SessionCard.session_id == session_id)
            )
        ).one()
        result = await db.execute(
            update(StudySession)
            .where(StudySession.id == session_id, StudySession.ended_at.is_(None))
            .values(
                ended_at=now,
                study_duration=duration,
                cards_studied=cards,
                average_confidence=round(float(average), 2) if average is not None else 0.0,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise Conflict("Study session has already ended")

        await insert_if_absent(db, UserStats, {"id": new_id(), "user_id": user_id})
        await db.execute(_stats_update(user_id, today, duration, cards_studied=0))
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to end study session") from exc

    logger.info("Study session %s ended: %s cards in %ss", session_id, cards, duration)
    return await get_session(db, user_id, session_id)


# ---------- Quiz sessions ----------

def quiz_mastery_status(average_score: float, best_score: float) -> str:
    if average_score >= QUIZ_MASTERED_AVERAGE and best_score >= QUIZ_MASTERED_BEST:
        return "mastered"
    if average_score >= QUIZ_LEARNING_AVERAGE or best_score >= QUIZ_LEARNING_BEST:
        return "learning"
    return "new"


def _quiz_mastery_expr():
    """SQL twin of :func:`quiz_mastery_status` over the stored aggregate."""
    return case(
        (
            and_(
                UserQuizProgress.average_score >= QUIZ_MASTERED_AVERAGE,
                UserQuizProgress.best_score >= QUIZ_MASTERED_BEST,
            ),
            "mastered",
        ),
        (
            or_(
                UserQuizProgress.average_score >= QUIZ_LEARNING_AVERAGE,
                UserQuizProgress.best_score >= QUIZ_LEARNING_BEST,
            ),
            "learning",
        ),
        else_="new",
    )


async def _grade_answers(db: AsyncSession, flashcard_id: str, data: QuizSessionComplete) -> list[dict]:
    result = await db.scalars(select(QuizQuestion).where(QuizQuestion.flashcard_id == flashcard_id))
    questions = {question.id: question for question in result}

    graded = []
    for order, answer in enumerate(data.answers):
        question = questions.get(answer.question_id)
        if question is None:
            raise InvalidInput(f"Question {answer.question_id} does not belong to this flashcard")
        if answer.selected_option_index >= len(question.options):
            raise InvalidInput(f"Option {answer.selected_option_index} does not exist for question {question.id}")
        graded.append(
            {
                "quiz_question_id": question.id,
                "selected_option_index": answer.selected_option_index,
                "is_correct": bool(question.options[answer.selected_option_index].get("is_correct")),
                "time_spent": answer.time_spent,
                "question_order": order,
            }
        )
    return graded


async def complete_quiz_session(db: AsyncSession, user_id: str, data: QuizSessionComplete) -> QuizSessionResult:
    """Store a finished flashcard quiz and update the user's quiz aggregate.

    Correctness is decided here from the stored options, not by the client.
    """
    flashcard = await db.get(Flashcard, data.flashcard_id)
    if flashcard is None:
        raise NotFound("Flashcard not found")

    graded = await _grade_answers(db, flashcard.id, data)
    total = len(graded)
    correct = sum(1 for answer in graded if answer["is_correct"])
    score = round(correct / total * 100, 2)

    now = _utcnow()
    started_at = data.started_at.astimezone(timezone.utc).replace(tzinfo=None) if data.started_at.tzinfo else data.started_at
    session = QuizSession(
        id=new_id(),
        user_id=user_id,
        flashcard_id=flashcard.id,
        started_at=started_at,
        ended_at=now,
        total_questions=total,
        correct_answers=correct,
        score_percentage=score,
        quiz_duration=max(int((now - started_at).total_seconds()), 0),
    )

    try:
        db.add(session)
        db.add_all(QuizSessionAnswer(session_id=session.id, **answer) for answer in graded)
        await db.flush()

        await upsert(
            db,
            UserQuizProgress,
            {
                "id": new_id(),
                "user_id": user_id,
                "flashcard_id": flashcard.id,
                "times_taken": 1,
                "total_questions_answered": total,
                "total_correct_answers": correct,
                "average_score": score,
                "best_score": score,
                "last_score": score,
                "last_taken": now,
                "mastery_status": quiz_mastery_status(score, score),
            },
            ["user_id", "flashcard_id"],
            {
                "times_taken": UserQuizProgress.times_taken + 1,
                "total_questions_answered": UserQuizProgress.total_questions_answered + total,
                "total_correct_answers": UserQuizProgress.total_correct_answers + correct,
                "average_score": (UserQuizProgress.total_correct_answers + correct)
                * 100.0
                / (UserQuizProgress.total_questions_answered + total),
                "best_score": case(
                    (UserQuizProgress.best_score < score, score),
                    else_=UserQuizProgress.best_score,
                ),
                "last_score": score,
                "last_taken": now,
                "updated_at": func.now(),
            },
        )
        await db.execute(
            update(UserQuizProgress)
            .where(UserQuizProgress.user_id == user_id, UserQuizProgress.flashcard_id == flashcard.id)
            .values(mastery_status=_quiz_mastery_expr())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to save quiz session") from exc

    progress = (
        await db.scalars(
            select(UserQuizProgress)
            .where(UserQuizProgress.user_id == user_id, UserQuizProgress.flashcard_id == flashcard.id)
            .execution_options(populate_existing=True)
        )
    ).one()
    logger.info("Quiz session %s on flashcard %s scored %s%%", session.id, flashcard.id, score)
    return QuizSessionResult(
        session_id=session.id,
        total_questions=total,
        correct_answers=correct,
        score_percentage=score,
        mastery_status=progress.mastery_status,
    )
