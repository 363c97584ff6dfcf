import logging
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from cissp_mastery.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Identity(BaseModel):
    """Caller identity as asserted by the auth provider."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None


bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str, settings: Settings) -> dict:
    options = {"require": ["sub", "exp"]}
    if settings.jwt_audience is None:
        options["verify_aud"] = False
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        options=options,
    )


def identity_from_token(token: str, settings: Settings) -> Optional[Identity]:
    try:
        payload = decode_token(token, settings)
    except jwt.PyJWTError as exc:
        logger.warning("JWT decode failed: %s", exc)
        return None

    sub = payload.get("sub")
    if not sub:
        logger.warning("JWT payload has no subject")
        return None
    return Identity(
        id=str(sub),
        email=payload.get("email"),
        first_name=payload.get("first_name"),
        last_name=payload.get("last_name"),
    )


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Optional[Identity]:
    if credentials is None:
        return None
    return identity_from_token(credentials.credentials, settings)
