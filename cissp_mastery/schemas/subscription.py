from typing import Literal

from pydantic import BaseModel

CheckoutPlan = Literal["pro_monthly", "pro_yearly", "lifetime"]


class SubscriptionStatusOut(BaseModel):
    hasPaidAccess: bool
    planType: str
    status: str


class CheckoutRequest(BaseModel):
    plan: CheckoutPlan


class CheckoutResponse(BaseModel):
    url: str


class AdminStatusOut(BaseModel):
    isAdmin: bool
