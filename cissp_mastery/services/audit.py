"""Append-only security audit log.

Every event is written twice: once to the ``audit_events`` table and once to
the ``cissp_mastery.audit`` logger. Persisting happens in a dedicated session
so an audit row survives even when the caller's transaction rolls back, and a
failure to persist is logged and never propagated to the caller.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cissp_mastery.models import AuditEvent

logger = logging.getLogger("cissp_mastery.audit")

ANONYMOUS_ACTOR = "anonymous"


class SecurityEventType(str, Enum):
    ADMIN_ACCESS = "authz.admin.access"
    ACCESS_DENIED = "authz.access.denied"
    PERMISSION_ESCALATION_ATTEMPT = "authz.escalation.attempt"
    DATA_DELETION = "data.deletion"
    RATE_LIMIT_EXCEEDED = "security.rate_limit.exceeded"
    INVALID_INPUT = "security.input.invalid"


class SecurityEventSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


AUTHZ_EVENTS = {
    SecurityEventType.ADMIN_ACCESS,
    SecurityEventType.ACCESS_DENIED,
    SecurityEventType.PERMISSION_ESCALATION_ATTEMPT,
}

_LOG_LEVELS = {
    SecurityEventSeverity.LOW: logging.INFO,
    SecurityEventSeverity.MEDIUM: logging.WARNING,
    SecurityEventSeverity.HIGH: logging.WARNING,
    SecurityEventSeverity.CRITICAL: logging.ERROR,
}


def severity_for(event_type: SecurityEventType, success: bool) -> SecurityEventSeverity:
    if event_type in AUTHZ_EVENTS:
        return SecurityEventSeverity.LOW if success else SecurityEventSeverity.HIGH
    if event_type == SecurityEventType.DATA_DELETION:
        return SecurityEventSeverity.MEDIUM
    return SecurityEventSeverity.HIGH


def _message_for(event_type: SecurityEventType) -> str:
    if event_type in AUTHZ_EVENTS:
        return f"Authorization event: {event_type.value}"
    if event_type == SecurityEventType.DATA_DELETION:
        return f"Data access event: {event_type.value}"
    return f"Security violation: {event_type.value}"


def extract_request_context(request: Optional[Request], user_id: Optional[str] = None) -> dict[str, Any]:
    """Collect the request details recorded alongside an audit event."""
    context: dict[str, Any] = {"user_id": user_id}
    if request is None:
        return context

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()
    else:
        ip_address = request.headers.get("x-real-ip") or (request.client.host if request.client else None)

    context.update(
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
        endpoint=request.url.path,
        method=request.method,
        request_id=request.headers.get("x-request-id"),
    )
    return context


class AuditLogger:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self.sessionmaker = sessionmaker

    async def log(
        self,
        event_type: SecurityEventType,
        success: bool,
        context: Optional[dict[str, Any]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        context = dict(context or {})
        context.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        actor_id = context.get("user_id") or ANONYMOUS_ACTOR
        severity = severity_for(event_type, success)
        message = _message_for(event_type)

        logger.log(
            _LOG_LEVELS[severity],
            "[SECURITY EVENT] %s severity=%s success=%s actor=%s endpoint=%s",
            event_type.value,
            severity.value,
            success,
            actor_id,
            context.get("endpoint"),
        )

        try:
            async with self.sessionmaker() as session:
                session.add(
                    AuditEvent(
                        event_type=event_type.value,
                        severity=severity.value,
                        actor_id=actor_id,
                        success=success,
                        message=message,
                        context=context,
                        event_metadata=metadata,
                    )
                )
                await session.commit()
        except Exception:
            logger.exception("Failed to persist audit event %s", event_type.value)

    async def log_data_deletion(self, context, resource: str, resource_id: str, counts=None) -> None:
        metadata = {"resource": resource, "resource_id": resource_id}
        if counts:
            metadata["deleted"] = counts
        await self.log(SecurityEventType.DATA_DELETION, True, context, metadata)

    async def log_violation(self, event_type, context=None, metadata=None) -> None:
        await self.log(event_type, False, context, metadata)
