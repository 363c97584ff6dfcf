import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cissp_mastery.core.exceptions import InternalError
from cissp_mastery.db.base import new_id
from cissp_mastery.db.upsert import upsert
from cissp_mastery.models import Subscription, User
from cissp_mastery.schemas.subscription import SubscriptionStatusOut
from cissp_mastery.services.stripe_client import StripeClient

logger = logging.getLogger(__name__)

RECURRING_PLANS = ("pro_monthly", "pro_yearly")

STRIPE_STATUS_MAP = {
    "active": "active",
    "canceled": "canceled",
    "past_due": "past_due",
    "trialing": "trialing",
    "incomplete": "inactive",
    "incomplete_expired": "inactive",
    "unpaid": "past_due",
}

INTERVAL_PLAN_MAP = {
    "month": "pro_monthly",
    "year": "pro_yearly",
}


def has_paid_access(plan_type: str, status: str) -> bool:
    """Lifetime is paid regardless of status; recurring plans only while active."""
    if plan_type == "lifetime":
        return True
    return plan_type in RECURRING_PLANS and status == "active"


async def get_subscription(db: AsyncSession, user_id: str) -> Optional[Subscription]:
    stmt = select(Subscription).where(Subscription.user_id == user_id).execution_options(populate_existing=True)
    result = await db.scalars(stmt)
    return result.first()


async def resolve_subscription_status(db: AsyncSession, user_id: str) -> SubscriptionStatusOut:
    subscription = await get_subscription(db, user_id)
    if subscription is None:
        return SubscriptionStatusOut(hasPaidAccess=False, planType="free", status="inactive")
    return SubscriptionStatusOut(
        hasPaidAccess=has_paid_access(subscription.plan_type, subscription.status),
        planType=subscription.plan_type,
        status=subscription.status,
    )


# ---------- Stripe sync ----------

def map_stripe_status(stripe_status: Optional[str]) -> str:
    return STRIPE_STATUS_MAP.get(stripe_status or "", "inactive")


def _first_item(stripe_subscription) -> dict:
    items = stripe_subscription.get("items") or {}
    data = items.get("data") or []
    return data[0] if data else {}


def plan_for_subscription(stripe_subscription) -> str:
    price = _first_item(stripe_subscription).get("price") or {}
    recurring = price.get("recurring") or {}
    return INTERVAL_PLAN_MAP.get(recurring.get("interval"), "pro_monthly")


def _timestamp(stripe_subscription, field: str) -> Optional[datetime]:
    value = stripe_subscription.get(field) or _first_item(stripe_subscription).get(field)
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


def _id_of(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return value.get("id")


async def _resolve_user_id(db: AsyncSession, stripe_subscription, user_id: Optional[str]) -> Optional[str]:
    metadata = stripe_subscription.get("metadata") or {}
    user_id = user_id or metadata.get("user_id")
    if user_id:
        return user_id

    existing = await db.scalars(
        select(Subscription).where(Subscription.stripe_subscription_id == stripe_subscription["id"])
    )
    row = existing.first()
    if row is None:
        customer_id = _id_of(stripe_subscription.get("customer"))
        if customer_id:
            existing = await db.scalars(
                select(Subscription).where(Subscription.stripe_customer_id == customer_id)
            )
            row = existing.first()
    return row.user_id if row else None


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise InternalError("Failed to update subscription") from exc


async def apply_stripe_subscription(
    db: AsyncSession,
    stripe_subscription,
    user_id: Optional[str] = None,
    customer_id: Optional[str] = None,
) -> Optional[Subscription]:
    user_id = await _resolve_user_id(db, stripe_subscription, user_id)
    if not user_id or await db.get(User, user_id) is None:
        logger.error("No user found for Stripe subscription %s", stripe_subscription.get("id"))
        return None

    current = await get_subscription(db, user_id)
    if current is not None and current.plan_type == "lifetime":
        logger.info("Ignoring recurring subscription event for lifetime user %s", user_id)
        return current

    values = {
        "plan_type": plan_for_subscription(stripe_subscription),
        "status": map_stripe_status(stripe_subscription.get("status")),
        "stripe_customer_id": customer_id or _id_of(stripe_subscription.get("customer")),
        "stripe_subscription_id": stripe_subscription["id"],
        "current_period_start": _timestamp(stripe_subscription, "current_period_start"),
        "current_period_end": _timestamp(stripe_subscription, "current_period_end"),
        "cancel_at_period_end": bool(stripe_subscription.get("cancel_at_period_end")),
    }
    await upsert(db, Subscription, {"id": new_id(), "user_id": user_id, **values}, ["user_id"], values)
    await _commit(db)
    logger.info("Subscription for user %s set to %s/%s", user_id, values["plan_type"], values["status"])
    return await get_subscription(db, user_id)


async def grant_lifetime_access(db: AsyncSession, user_id: str, customer_id: Optional[str] = None) -> Optional[Subscription]:
    if await db.get(User, user_id) is None:
        logger.error("Lifetime purchase for unknown user %s", user_id)
        return None

    values = {"plan_type": "lifetime", "status": "active", "cancel_at_period_end": False}
    if customer_id:
        values["stripe_customer_id"] = customer_id
    await upsert(db, Subscription, {"id": new_id(), "user_id": user_id, **values}, ["user_id"], values)
    await _commit(db)
    logger.info("Lifetime access granted to user %s", user_id)
    return await get_subscription(db, user_id)


async def mark_subscription_canceled(db: AsyncSession, stripe_subscription) -> Optional[Subscription]:
    result = await db.scalars(
        select(Subscription).where(Subscription.stripe_subscription_id == stripe_subscription["id"])
    )
    subscription = result.first()
    if subscription is None:
        logger.warning("Deleted Stripe subscription %s is not on record", stripe_subscription["id"])
        return None
    if subscription.plan_type == "lifetime":
        return subscription

    subscription.status = "canceled"
    subscription.cancel_at_period_end = False
    await _commit(db)
    logger.info("Subscription canceled: %s", stripe_subscription["id"])
    return subscription


async def handle_checkout_completed(db: AsyncSession, session, stripe_client: StripeClient) -> None:
    metadata = session.get("metadata") or {}
    user_id = metadata.get("user_id") or session.get("client_reference_id")
    if not user_id:
        logger.error("No user_id in checkout session %s metadata", session.get("id"))
        return

    customer_id = _id_of(session.get("customer"))
    if session.get("mode") == "payment":
        await grant_lifetime_access(db, user_id, customer_id)
    elif session.get("mode") == "subscription" and session.get("subscription"):
        stripe_subscription = stripe_client.retrieve_subscription(_id_of(session["subscription"]))
        await apply_stripe_subscription(db, stripe_subscription, user_id, customer_id)


async def handle_webhook_event(db: AsyncSession, event, stripe_client: StripeClient) -> None:
    event_type = event["type"]
    obj = event["data"]["object"]

    if event_type == "checkout.session.completed":
        await handle_checkout_completed(db, obj, stripe_client)
    elif event_type in ("customer.subscription.created", "customer.subscription.updated"):
        await apply_stripe_subscription(db, obj)
    elif event_type == "customer.subscription.deleted":
        await mark_subscription_canceled(db, obj)
    else:
        logger.info("Unhandled Stripe event type: %s", event_type)
