import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cissp_mastery.core.exceptions import Conflict, InternalError
from cissp_mastery.core.security import Identity
from cissp_mastery.db.base import new_id
from cissp_mastery.db.upsert import insert_if_absent
from cissp_mastery.models import Subscription, User, UserStats

logger = logging.getLogger(__name__)


async def ensure_user_exists(db: AsyncSession, identity: Identity) -> User:
    """Provision the user, a free subscription and empty stats on first sight.

    Each insert is ``ON CONFLICT DO NOTHING`` so concurrent first requests
    for the same identity converge on whichever row landed first.
    """
    existing = await db.get(User, identity.id)
    if existing is not None:
        return existing

    email = identity.email or f"{identity.id}@users.invalid"
    try:
        await insert_if_absent(
            db,
            User,
            {"auth_user_id": identity.id, "email": email, "name": identity.display_name, "role": "user"},
        )
        user = await db.get(User, identity.id)
        if user is None:
            # the email already belongs to a different identity
            await db.rollback()
            logger.warning("Could not provision user %s", identity.id)
            raise Conflict("User could not be provisioned")

        await insert_if_absent(
            db,
            Subscription,
            {"id": new_id(), "user_id": identity.id, "plan_type": "free", "status": "active"},
        )
        await insert_if_absent(db, UserStats, {"id": new_id(), "user_id": identity.id})
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to provision user") from exc

    logger.info("Provisioned user %s", identity.id)
    return user
