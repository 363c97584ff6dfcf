import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from cissp_mastery.services.audit import SecurityEventType, extract_request_context

logger = logging.getLogger(__name__)


def build_limiter() -> Limiter:
    """One limiter per app, so each app keeps its own counters."""
    return Limiter(key_func=get_remote_address)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    audit = getattr(request.app.state, "audit", None)
    if audit is not None:
        await audit.log_violation(
            SecurityEventType.RATE_LIMIT_EXCEEDED,
            extract_request_context(request),
            {"limit": str(exc.detail)},
        )
    logger.warning("Rate limit exceeded on %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": f"Rate limit exceeded: {exc.detail}"},
    )
