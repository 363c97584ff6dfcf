from fastapi import APIRouter

from cissp_mastery.api.deps import CurrentUserDep, DBSessionDep
from cissp_mastery.schemas.study import BookmarkCreate, BookmarkList, BookmarkStatus
from cissp_mastery.services import bookmarks

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.get("", response_model=BookmarkList)
async def list_bookmarks(db: DBSessionDep, current_user: CurrentUserDep):
    return await bookmarks.list_bookmarks(db, current_user.auth_user_id)


@router.post("", response_model=BookmarkStatus)
async def add_bookmark(data: BookmarkCreate, db: DBSessionDep, current_user: CurrentUserDep):
    return await bookmarks.add_bookmark(db, current_user.auth_user_id, data.flashcard_id)


@router.get("/{flashcard_id}", response_model=BookmarkStatus)
async def check_bookmark(flashcard_id: str, db: DBSessionDep, current_user: CurrentUserDep):
    bookmarked = await bookmarks.is_bookmarked(db, current_user.auth_user_id, flashcard_id)
    return BookmarkStatus(bookmarked=bookmarked)


@router.delete("/{flashcard_id}", response_model=BookmarkStatus)
async def remove_bookmark(flashcard_id: str, db: DBSessionDep, current_user: CurrentUserDep):
    return await bookmarks.remove_bookmark(db, current_user.auth_user_id, flashcard_id)
