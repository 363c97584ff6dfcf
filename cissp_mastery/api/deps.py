from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from cissp_mastery.core.config import Settings, get_settings
from cissp_mastery.core.exceptions import Unauthenticated
from cissp_mastery.core.security import Identity, get_current_identity
from cissp_mastery.db.session import get_db
from cissp_mastery.models import User
from cissp_mastery.services.admin_gate import require_admin
from cissp_mastery.services.audit import AuditLogger, extract_request_context
from cissp_mastery.services.stripe_client import StripeClient
from cissp_mastery.services.users import ensure_user_exists


def get_audit_logger(request: Request) -> AuditLogger:
    return request.app.state.audit


def get_stripe_client(settings: Settings = Depends(get_settings)) -> StripeClient:
    return StripeClient(settings)


DBSessionDep = Annotated[AsyncSession, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
IdentityDep = Annotated[Optional[Identity], Depends(get_current_identity)]
AuditDep = Annotated[AuditLogger, Depends(get_audit_logger)]
StripeDep = Annotated[StripeClient, Depends(get_stripe_client)]


async def get_current_user(db: DBSessionDep, identity: IdentityDep) -> User:
    """Authenticated caller, provisioned on first sight."""
    if identity is None:
        raise Unauthenticated()
    return await ensure_user_exists(db, identity)


async def get_admin_user(request: Request, db: DBSessionDep, identity: IdentityDep, audit: AuditDep) -> User:
    context = extract_request_context(request, identity.id if identity else None)
    return await require_admin(db, identity, audit, context)


CurrentUserDep = Annotated[User, Depends(get_current_user)]
AdminUserDep = Annotated[User, Depends(get_admin_user)]
