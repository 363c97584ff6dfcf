import logging
from typing import Optional

import stripe

from cissp_mastery.core.config import Settings
from cissp_mastery.core.exceptions import InternalError, InvalidInput

logger = logging.getLogger(__name__)


class StripeClient:
    def __init__(self, settings: Settings):
        self.settings = settings
        stripe.api_key = settings.stripe_secret_key

    def price_for_plan(self, plan: str) -> str:
        price_id = {
            "pro_monthly": self.settings.stripe_price_pro_monthly,
            "pro_yearly": self.settings.stripe_price_pro_yearly,
            "lifetime": self.settings.stripe_price_lifetime,
        }.get(plan)
        if not price_id:
            raise InvalidInput(f"No Stripe price configured for plan {plan}")
        return price_id

    def create_checkout_session(
        self,
        user_id: str,
        plan: str,
        email: Optional[str] = None,
    ) -> str:
        """Create Stripe Checkout session and return its URL"""
        mode = "payment" if plan == "lifetime" else "subscription"
        frontend_url = self.settings.frontend_url.rstrip("/")
        params = {
            "mode": mode,
            "payment_method_types": ["card"],
            "line_items": [{"price": self.price_for_plan(plan), "quantity": 1}],
            "success_url": f"{frontend_url}/dashboard?payment=success&session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{frontend_url}/pricing?payment=canceled",
            "client_reference_id": user_id,
            "metadata": {"user_id": user_id, "plan": plan},
        }
        if email:
            params["customer_email"] = email
        if mode == "subscription":
            params["subscription_data"] = {"metadata": {"user_id": user_id}}

        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as exc:
            logger.error("Stripe checkout error for user %s: %s", user_id, exc)
            raise InternalError("Failed to create checkout session") from exc
        return session.url

    def retrieve_subscription(self, sub_id: str):
        """Get full subscription details"""
        return stripe.Subscription.retrieve(sub_id)

    def get_webhook_event(self, payload: bytes, sig_header: Optional[str]):
        """Verify and parse webhook"""
        try:
            return stripe.Webhook.construct_event(payload, sig_header, self.settings.stripe_webhook_secret)
        except ValueError as exc:
            raise InvalidInput("Invalid payload") from exc
        except stripe.SignatureVerificationError as exc:
            raise InvalidInput("Invalid signature") from exc
