import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cissp_mastery.core.exceptions import Unauthorized
from cissp_mastery.core.security import Identity
from cissp_mastery.models import User
from cissp_mastery.services.audit import ANONYMOUS_ACTOR, AuditLogger, SecurityEventType

logger = logging.getLogger(__name__)


async def _load_user(db: AsyncSession, identity: Optional[Identity]) -> Optional[User]:
    if identity is None:
        return None
    return await db.get(User, identity.id)


async def check_is_admin(db: AsyncSession, identity: Optional[Identity]) -> Optional[User]:
    """Return the stored admin user for ``identity``, or None."""
    user = await _load_user(db, identity)
    if user is None or not user.is_admin:
        return None
    return user


async def require_admin(
    db: AsyncSession,
    identity: Optional[Identity],
    audit: AuditLogger,
    context: Optional[dict[str, Any]] = None,
) -> User:
    context = dict(context or {})
    user = await _load_user(db, identity)

    if user is None:
        context["user_id"] = ANONYMOUS_ACTOR
        await audit.log(
            SecurityEventType.ACCESS_DENIED,
            False,
            context,
            {"reason": "no_identity" if identity is None else "unknown_user"},
        )
        raise Unauthorized()

    context["user_id"] = user.auth_user_id
    context.setdefault("email", user.email)

    if not user.is_admin:
        logger.warning("Non-admin user %s attempted admin access", user.auth_user_id)
        await audit.log(
            SecurityEventType.PERMISSION_ESCALATION_ATTEMPT,
            False,
            context,
            {"role": user.role},
        )
        raise Unauthorized()

    await audit.log(SecurityEventType.ADMIN_ACCESS, True, context)
    return user
