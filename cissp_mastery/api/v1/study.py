from fastapi import APIRouter, Query, Request
from slowapi import Limiter

from cissp_mastery.api.deps import CurrentUserDep, DBSessionDep, IdentityDep
from cissp_mastery.schemas.content import FlashcardRead
from cissp_mastery.schemas.progress import CardProgressRead, DeckProgress, RatingResult, RatingSubmit, UserStatsRead
from cissp_mastery.schemas.quiz import QuizQuestionList
from cissp_mastery.schemas.subscription import AdminStatusOut, SubscriptionStatusOut
from cissp_mastery.services import content_service, study_progress
from cissp_mastery.services.admin_gate import check_is_admin
from cissp_mastery.services.subscription_service import resolve_subscription_status

router = APIRouter(tags=["study"])


@router.get("/user/is-admin", response_model=AdminStatusOut)
async def is_admin(db: DBSessionDep, identity: IdentityDep):
    user = await check_is_admin(db, identity)
    return AdminStatusOut(isAdmin=user is not None)


@router.get("/subscription/status", response_model=SubscriptionStatusOut)
async def subscription_status(db: DBSessionDep, current_user: CurrentUserDep):
    return await resolve_subscription_status(db, current_user.auth_user_id)


# ---------- Progress ----------

def rating_router(limiter: Limiter, limit: str) -> APIRouter:
    """Rating submission, throttled per client by the app's limiter."""
    rating = APIRouter(tags=["study"])

    @rating.post("/progress/card", response_model=RatingResult)
    @limiter.limit(limit)
    async def rate_card(
        request: Request,
        data: RatingSubmit,
        db: DBSessionDep,
        current_user: CurrentUserDep,
    ):
        return await study_progress.submit_rating(
            db,
            current_user.auth_user_id,
            data.flashcard_id,
            data.confidence_level,
            data.study_time_seconds,
            session_id=data.session_id,
        )

    return rating


@router.get("/progress/card", response_model=CardProgressRead | None)
async def get_card_progress(
    db: DBSessionDep,
    current_user: CurrentUserDep,
    flashcard_id: str = Query(..., min_length=1),
):
    return await study_progress.get_card_progress(db, current_user.auth_user_id, flashcard_id)


@router.get("/progress/decks/{deck_id}", response_model=DeckProgress)
async def get_deck_progress(deck_id: str, db: DBSessionDep, current_user: CurrentUserDep):
    return await study_progress.get_deck_progress(db, current_user.auth_user_id, deck_id)


@router.get("/stats/me", response_model=UserStatsRead)
async def my_stats(db: DBSessionDep, current_user: CurrentUserDep):
    return await study_progress.get_user_stats(db, current_user.auth_user_id)


# ---------- Content ----------

@router.get("/decks/{deck_id}/flashcards", response_model=list[FlashcardRead])
async def deck_flashcards(deck_id: str, db: DBSessionDep, current_user: CurrentUserDep):
    access = await resolve_subscription_status(db, current_user.auth_user_id)
    return await content_service.list_study_flashcards(db, deck_id, access.hasPaidAccess)


@router.get("/flashcards/{flashcard_id}/quiz", response_model=QuizQuestionList)
async def flashcard_quiz(flashcard_id: str, db: DBSessionDep, current_user: CurrentUserDep):
    access = await resolve_subscription_status(db, current_user.auth_user_id)
    questions = await content_service.list_study_quiz(db, flashcard_id, access.hasPaidAccess)
    return QuizQuestionList(success=True, questions=questions)
