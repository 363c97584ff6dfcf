import logging

from fastapi import APIRouter, Request

from cissp_mastery.api.deps import CurrentUserDep, DBSessionDep, StripeDep
from cissp_mastery.schemas.subscription import CheckoutRequest, CheckoutResponse
from cissp_mastery.services import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscription"])


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout_session(data: CheckoutRequest, current_user: CurrentUserDep, stripe_client: StripeDep):
    url = stripe_client.create_checkout_session(current_user.auth_user_id, data.plan, current_user.email)
    logger.info("Checkout session created for user %s (%s)", current_user.auth_user_id, data.plan)
    return CheckoutResponse(url=url)


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request, db: DBSessionDep, stripe_client: StripeDep):
    payload = await request.body()
    event = stripe_client.get_webhook_event(payload, request.headers.get("stripe-signature"))
    logger.info("Stripe event received: %s", event["type"])
    await subscription_service.handle_webhook_event(db, event, stripe_client)
    return {"received": True}
