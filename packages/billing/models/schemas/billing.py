"""
API schemas for billing operations.

Request and response models for plans, subscriptions, refunds and webhooks.
Amounts are exposed as floats in major units.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from packages.billing.models.domain.plans import Plan
from packages.billing.models.domain.refund import Refund, SubscriptionRefund
from packages.billing.models.domain.subscription import Subscription


# ============================================================================
# Plan Schemas
# ============================================================================


class PlanResponse(BaseModel):
    """Catalog plan."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    stripe_product_id: str
    stripe_price_id: str
    amount: float
    currency: str
    interval: Optional[str] = None
    active: bool
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, plan: Plan) -> "PlanResponse":
        return cls.model_validate(plan)


# ============================================================================
# Subscription Schemas
# ============================================================================


class SubscriptionResponse(BaseModel):
    """Subscription with its effective and scheduled plans embedded."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    stripe_subscription_id: str
    customer_id: str
    plan: PlanResponse
    pending_plan: Optional[PlanResponse] = None
    status: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool
    canceled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls.model_validate(subscription)


class UpgradeRequest(BaseModel):
    """Move a subscription to a more expensive plan immediately."""

    new_plan_id: str = Field(
        ..., min_length=1, description="Internal plan id or Stripe price id"
    )


class DowngradeRequest(BaseModel):
    """Schedule a cheaper plan for the next billing period."""

    new_plan_id: str = Field(
        ..., min_length=1, description="Internal plan id or Stripe price id"
    )


class ScheduleResponse(BaseModel):
    """Stripe subscription schedule created for a downgrade."""

    schedule_id: str
    status: Optional[str] = None
    subscription: SubscriptionResponse


class PaymentSessionRequest(BaseModel):
    """Create (or reuse) a customer and start an incomplete subscription."""

    name: str = Field(..., min_length=1)
    email: EmailStr
    price_id: str = Field(..., min_length=1)


class PaymentSessionResponse(BaseModel):
    """Client secret the frontend uses to confirm the first payment."""

    subscription_id: str
    client_secret: Optional[str] = None
    status: str


class CheckoutSessionRequest(BaseModel):
    """Request to create a hosted checkout session."""

    customer_id: str = Field(..., min_length=1)
    price_id: str = Field(..., min_length=1)


class CheckoutSessionResponse(BaseModel):
    """Response with checkout URL."""

    session_id: str
    url: Optional[str] = Field(None, description="Stripe checkout session URL")


# ============================================================================
# Refund Schemas
# ============================================================================


class RefundResponse(BaseModel):
    """Refund ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    stripe_refund_id: str
    stripe_payment_intent_id: Optional[str] = None
    amount: float
    currency: str
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, refund: Refund) -> "RefundResponse":
        return cls.model_validate(refund)


class SubscriptionRefundsResponse(BaseModel):
    """Refunds found on a subscription's charges, amounts in minor units."""

    subscription_id: str
    refunds: List[SubscriptionRefund]


# ============================================================================
# Webhook Schemas
# ============================================================================


class WebhookAck(BaseModel):
    received: bool = True


class WebhookHealthResponse(BaseModel):
    status: str = "ok"
    message: str = "Stripe webhook endpoint is reachable."
