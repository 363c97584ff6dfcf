from fastapi import APIRouter, status

from cissp_mastery.api.deps import CurrentUserDep, DBSessionDep
from cissp_mastery.schemas.study import QuizSessionComplete, QuizSessionResult, StudySessionCreate, StudySessionRead
from cissp_mastery.services import study_sessions

router = APIRouter(tags=["sessions"])


# ---------- Study sessions ----------

@router.post("/sessions", response_model=StudySessionRead, status_code=status.HTTP_201_CREATED)
async def start_session(data: StudySessionCreate, db: DBSessionDep, current_user: CurrentUserDep):
    return await study_sessions.create_session(db, current_user.auth_user_id, data.deck_id)


@router.get("/sessions/{session_id}", response_model=StudySessionRead)
async def get_session(session_id: str, db: DBSessionDep, current_user: CurrentUserDep):
    return await study_sessions.get_session(db, current_user.auth_user_id, session_id)


@router.post("/sessions/{session_id}/end", response_model=StudySessionRead)
async def end_session(session_id: str, db: DBSessionDep, current_user: CurrentUserDep):
    return await study_sessions.end_session(db, current_user.auth_user_id, session_id)


# ---------- Quiz sessions ----------

@router.post("/quiz-sessions/complete", response_model=QuizSessionResult)
async def complete_quiz(data: QuizSessionComplete, db: DBSessionDep, current_user: CurrentUserDep):
    return await study_sessions.complete_quiz_session(db, current_user.auth_user_id, data)
