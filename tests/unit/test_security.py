from datetime import timedelta

import jwt
import pytest

from cissp_mastery.core.security import Identity, identity_from_token
from cissp_mastery.services.audit import SecurityEventSeverity, SecurityEventType, severity_for


@pytest.mark.unit
class TestIdentityTokens:
    """Test bearer token decoding"""

    def test_valid_token(self, make_token, test_settings):
        token = make_token("user-42", email="u42@example.com", first_name="Ada", last_name="Lovelace")
        identity = identity_from_token(token, test_settings)

        assert identity == Identity(id="user-42", email="u42@example.com", first_name="Ada", last_name="Lovelace")
        assert identity.display_name == "Ada Lovelace"

    def test_expired_token(self, make_token, test_settings):
        token = make_token("user-42", expires_in=timedelta(minutes=-5))
        assert identity_from_token(token, test_settings) is None

    def test_wrong_signing_key(self, test_settings):
        token = jwt.encode({"sub": "user-42", "exp": 9999999999}, "some-other-key", algorithm="HS256")
        assert identity_from_token(token, test_settings) is None

    def test_token_without_subject(self, test_settings):
        token = jwt.encode({"email": "x@example.com", "exp": 9999999999}, test_settings.jwt_secret_key, algorithm="HS256")
        assert identity_from_token(token, test_settings) is None

    def test_garbage_token(self, test_settings):
        assert identity_from_token("not-a-jwt", test_settings) is None

    def test_audience_checked_when_configured(self, make_token, test_settings):
        settings = test_settings.model_copy(update={"jwt_audience": "cissp-api"})
        assert identity_from_token(make_token("user-42", aud="cissp-api"), settings).id == "user-42"
        assert identity_from_token(make_token("user-42", aud="elsewhere"), settings) is None

    def test_display_name_absent(self):
        assert Identity(id="x").display_name is None


@pytest.mark.unit
class TestAuditSeverity:
    """Test severity assignment for audit events"""

    def test_authorization_success_is_low(self):
        assert severity_for(SecurityEventType.ADMIN_ACCESS, True) == SecurityEventSeverity.LOW

    @pytest.mark.parametrize(
        "event_type",
        [SecurityEventType.ACCESS_DENIED, SecurityEventType.PERMISSION_ESCALATION_ATTEMPT],
    )
    def test_authorization_failure_is_high(self, event_type):
        assert severity_for(event_type, False) == SecurityEventSeverity.HIGH

    def test_deletion_is_medium(self):
        assert severity_for(SecurityEventType.DATA_DELETION, True) == SecurityEventSeverity.MEDIUM

    def test_violations_are_high(self):
        assert severity_for(SecurityEventType.RATE_LIMIT_EXCEEDED, False) == SecurityEventSeverity.HIGH
        assert severity_for(SecurityEventType.INVALID_INPUT, False) == SecurityEventSeverity.HIGH
