from fastapi import APIRouter, Request, status

from cissp_mastery.api.deps import AdminUserDep, AuditDep, DBSessionDep
from cissp_mastery.schemas.content import (
    ClassCreate,
    ClassDetail,
    ClassRead,
    ClassUpdate,
    DeckCreate,
    DeckRead,
    DeckUpdate,
    DeleteResult,
    FlashcardCreate,
    FlashcardRead,
    FlashcardUpdate,
    MoveRequest,
)
from cissp_mastery.schemas.quiz import QuizQuestionCreate, QuizQuestionList, QuizQuestionRead, QuizQuestionUpdate
from cissp_mastery.services import content_service as svc
from cissp_mastery.services.audit import extract_request_context

router = APIRouter(prefix="/admin", tags=["admin"])

# ---------- Classes ----------

@router.get("/classes", response_model=list[ClassRead])
async def list_classes(db: DBSessionDep, admin: AdminUserDep):
    return await svc.list_classes(db)


@router.post("/classes", response_model=ClassRead, status_code=status.HTTP_201_CREATED)
async def create_class(data: ClassCreate, db: DBSessionDep, admin: AdminUserDep):
    return await svc.create_class(db, admin.auth_user_id, data)


@router.get("/classes/{class_id}", response_model=ClassDetail)
async def get_class(class_id: str, db: DBSessionDep, admin: AdminUserDep):
    return await svc.get_class_detail(db, class_id)


@router.patch("/classes/{class_id}", response_model=ClassRead)
async def update_class(class_id: str, data: ClassUpdate, db: DBSessionDep, admin: AdminUserDep):
    return await svc.update_class(db, class_id, data)


@router.delete("/classes/{class_id}", response_model=DeleteResult)
async def delete_class(
    class_id: str,
    request: Request,
    db: DBSessionDep,
    admin: AdminUserDep,
    audit: AuditDep,
):
    context = extract_request_context(request, admin.auth_user_id)
    counts = await svc.delete_class(db, class_id, audit, context)
    return DeleteResult(message="Class deleted successfully", deleted=counts)

# ---------- Decks ----------

@router.get("/classes/{class_id}/decks", response_model=list[DeckRead])
async def list_decks(class_id: str, db: DBSessionDep, admin: AdminUserDep):
    return await svc.list_decks(db, class_id)


@router.post("/classes/{class_id}/decks", response_model=DeckRead, status_code=status.HTTP_201_CREATED)
async def create_deck(class_id: str, data: DeckCreate, db: DBSessionDep, admin: AdminUserDep):
    return await svc.create_deck(db, class_id, admin.auth_user_id, data)


@router.get("/classes/{class_id}/decks/{deck_id}", response_model=DeckRead)
async def get_deck(class_id: str, deck_id: str, db: DBSessionDep, admin: AdminUserDep):
    return await svc.get_deck(db, class_id, deck_id)


@router.patch("/classes/{class_id}/decks/{deck_id}", response_model=DeckRead)
async def update_deck(class_id: str, deck_id: str, data: DeckUpdate, db: DBSessionDep, admin: AdminUserDep):
    return await svc.update_deck(db, class_id, deck_id, data)


@router.post("/classes/{class_id}/decks/{deck_id}/move", response_model=DeckRead)
async def move_deck(class_id: str, deck_id: str, data: MoveRequest, db: DBSessionDep, admin: AdminUserDep):
    return await svc.move_deck(db, class_id, deck_id, data.position_index)


@router.delete("/classes/{class_id}/decks/{deck_id}", response_model=DeleteResult)
async def delete_deck(
    class_id: str,
    deck_id: str,
    request: Request,
    db: DBSessionDep,
    admin: AdminUserDep,
    audit: AuditDep,
):
    context = extract_request_context(request, admin.auth_user_id)
    counts = await svc.delete_deck(db, class_id, deck_id, audit, context)
    return DeleteResult(message="Deck deleted successfully", deleted=counts)

# ---------- Flashcards ----------

@router.get("/decks/{deck_id}/flashcards", response_model=list[FlashcardRead])
async def list_flashcards(deck_id: str, db: DBSessionDep, admin: AdminUserDep):
    return await svc.list_flashcards(db, deck_id)


@router.post("/decks/{deck_id}/flashcards", response_model=FlashcardRead, status_code=status.HTTP_201_CREATED)
async def create_flashcard(deck_id: str, data: FlashcardCreate, db: DBSessionDep, admin: AdminUserDep):
    return await svc.create_flashcard(db, deck_id, admin.auth_user_id, data)


@router.get("/decks/{deck_id}/flashcards/{flashcard_id}", response_model=FlashcardRead)
async def get_flashcard(deck_id: str, flashcard_id: str, db: DBSessionDep, admin: AdminUserDep):
    return await svc.get_flashcard(db, deck_id, flashcard_id)


@router.patch("/decks/{deck_id}/flashcards/{flashcard_id}", response_model=FlashcardRead)
async def update_flashcard(
    deck_id: str,
    flashcard_id: str,
    data: FlashcardUpdate,
    db: DBSessionDep,
    admin: AdminUserDep,
):
    return await svc.update_flashcard(db, deck_id, flashcard_id, data)


@router.post("/decks/{deck_id}/flashcards/{flashcard_id}/move", response_model=FlashcardRead)
async def move_flashcard(
    deck_id: str,
    flashcard_id: str,
    data: MoveRequest,
    db: DBSessionDep,
    admin: AdminUserDep,
):
    return await svc.move_flashcard(db, deck_id, flashcard_id, data.position_index)


@router.delete("/decks/{deck_id}/flashcards/{flashcard_id}", response_model=DeleteResult)
async def delete_flashcard(
    deck_id: str,
    flashcard_id: str,
    request: Request,
    db: DBSessionDep,
    admin: AdminUserDep,
    audit: AuditDep,
):
    context = extract_request_context(request, admin.auth_user_id)
    counts = await svc.delete_flashcard(db, deck_id, flashcard_id, audit, context)
    return DeleteResult(message="Flashcard deleted successfully", deleted=counts)

# ---------- Quiz Questions ----------

@router.get("/flashcards/{flashcard_id}/quiz", response_model=QuizQuestionList)
async def list_quiz_questions(flashcard_id: str, db: DBSessionDep, admin: AdminUserDep):
    questions = await svc.list_quiz_questions(db, flashcard_id)
    return QuizQuestionList(success=True, questions=questions)


@router.post(
    "/flashcards/{flashcard_id}/quiz",
    response_model=QuizQuestionRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_quiz_question(
    flashcard_id: str,
    data: QuizQuestionCreate,
    db: DBSessionDep,
    admin: AdminUserDep,
):
    return await svc.create_quiz_question(db, flashcard_id, admin.auth_user_id, data)


@router.patch("/flashcards/{flashcard_id}/quiz/{question_id}", response_model=QuizQuestionRead)
async def update_quiz_question(
    flashcard_id: str,
    question_id: str,
    data: QuizQuestionUpdate,
    db: DBSessionDep,
    admin: AdminUserDep,
):
    return await svc.update_quiz_question(db, flashcard_id, question_id, data)


@router.post("/flashcards/{flashcard_id}/quiz/{question_id}/move", response_model=QuizQuestionRead)
async def move_quiz_question(
    flashcard_id: str,
    question_id: str,
    data: MoveRequest,
    db: DBSessionDep,
    admin: AdminUserDep,
):
    return await svc.move_quiz_question(db, flashcard_id, question_id, data.position_index)


@router.delete("/flashcards/{flashcard_id}/quiz/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz_question(
    flashcard_id: str,
    question_id: str,
    request: Request,
    db: DBSessionDep,
    admin: AdminUserDep,
    audit: AuditDep,
):
    context = extract_request_context(request, admin.auth_user_id)
    await svc.delete_quiz_question(db, flashcard_id, question_id, audit, context)
    return None
