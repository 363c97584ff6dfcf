import pytest
from sqlalchemy import select

from cissp_mastery.core.exceptions import Unauthorized
from cissp_mastery.core.security import Identity
from cissp_mastery.models import AuditEvent
from cissp_mastery.services.admin_gate import check_is_admin, require_admin
from cissp_mastery.services.audit import AuditLogger, SecurityEventType


async def _events(session):
    result = await session.scalars(select(AuditEvent).order_by(AuditEvent.created_at))
    return list(result)


@pytest.mark.integration
class TestCheckIsAdmin:
    """Integration tests for the admin lookup"""

    async def test_admin(self, test_session, admin_user):
        user = await check_is_admin(test_session, Identity(id=admin_user.auth_user_id))
        assert user is not None and user.role == "admin"

    async def test_non_admin(self, test_session, regular_user):
        assert await check_is_admin(test_session, Identity(id=regular_user.auth_user_id)) is None

    async def test_no_identity(self, test_session):
        assert await check_is_admin(test_session, None) is None

    async def test_unknown_user(self, test_session):
        assert await check_is_admin(test_session, Identity(id="ghost")) is None


@pytest.mark.integration
class TestRequireAdmin:
    """Integration tests for the audited admin gate"""

    async def test_admin_access_is_audited(self, test_session, admin_user, audit):
        context = {"endpoint": "/api/v1/admin/classes", "method": "GET"}
        user = await require_admin(test_session, Identity(id=admin_user.auth_user_id), audit, context)

        assert user.auth_user_id == admin_user.auth_user_id
        events = await _events(test_session)
        assert [e.event_type for e in events] == [SecurityEventType.ADMIN_ACCESS.value]
        assert events[0].success is True
        assert events[0].severity == "low"
        assert events[0].actor_id == admin_user.auth_user_id
        assert events[0].context["endpoint"] == "/api/v1/admin/classes"

    async def test_non_admin_is_escalation_attempt(self, test_session, regular_user, audit):
        with pytest.raises(Unauthorized):
            await require_admin(test_session, Identity(id=regular_user.auth_user_id), audit)

        events = await _events(test_session)
        assert len(events) == 1
        assert events[0].event_type == SecurityEventType.PERMISSION_ESCALATION_ATTEMPT.value
        assert events[0].success is False
        assert events[0].severity == "high"
        assert events[0].actor_id == regular_user.auth_user_id

    async def test_no_identity_is_anonymous_denial(self, test_session, audit):
        with pytest.raises(Unauthorized):
            await require_admin(test_session, None, audit)

        events = await _events(test_session)
        assert len(events) == 1
        assert events[0].event_type == SecurityEventType.ACCESS_DENIED.value
        assert events[0].actor_id == "anonymous"

    async def test_unknown_user_is_anonymous_denial(self, test_session, audit):
        with pytest.raises(Unauthorized):
            await require_admin(test_session, Identity(id="ghost"), audit)

        events = await _events(test_session)
        assert [(e.event_type, e.actor_id) for e in events] == [(SecurityEventType.ACCESS_DENIED.value, "anonymous")]

    async def test_audit_failure_does_not_reach_caller(self, test_session, admin_user):
        def broken_sessionmaker():
            raise RuntimeError("audit store unavailable")

        audit = AuditLogger(broken_sessionmaker)
        user = await require_admin(test_session, Identity(id=admin_user.auth_user_id), audit)
        assert user.is_admin
