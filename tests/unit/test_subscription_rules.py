import pytest

from cissp_mastery.services.subscription_service import has_paid_access, map_stripe_status, plan_for_subscription


@pytest.mark.unit
class TestPaidAccess:
    """Test the paid-access predicate"""

    @pytest.mark.parametrize("status", ["active", "canceled", "past_due", "trialing", "inactive"])
    def test_lifetime_is_always_paid(self, status):
        assert has_paid_access("lifetime", status) is True

    @pytest.mark.parametrize("plan_type", ["pro_monthly", "pro_yearly"])
    def test_recurring_paid_only_when_active(self, plan_type):
        assert has_paid_access(plan_type, "active") is True
        assert has_paid_access(plan_type, "past_due") is False
        assert has_paid_access(plan_type, "canceled") is False
        assert has_paid_access(plan_type, "trialing") is False

    def test_free_is_never_paid(self):
        assert has_paid_access("free", "active") is False


@pytest.mark.unit
class TestStripeMapping:
    """Test translation of Stripe subscription objects"""

    @pytest.mark.parametrize(
        "stripe_status,expected",
        [
            ("active", "active"),
            ("canceled", "canceled"),
            ("past_due", "past_due"),
            ("trialing", "trialing"),
            ("incomplete", "inactive"),
            ("incomplete_expired", "inactive"),
            ("unpaid", "past_due"),
            ("paused", "inactive"),
            (None, "inactive"),
        ],
    )
    def test_status_map(self, stripe_status, expected):
        assert map_stripe_status(stripe_status) == expected

    @pytest.mark.parametrize("interval,expected", [("month", "pro_monthly"), ("year", "pro_yearly")])
    def test_plan_from_price_interval(self, interval, expected):
        subscription = {"id": "sub_1", "items": {"data": [{"price": {"recurring": {"interval": interval}}}]}}
        assert plan_for_subscription(subscription) == expected

    def test_plan_defaults_to_monthly(self):
        assert plan_for_subscription({"id": "sub_1"}) == "pro_monthly"
