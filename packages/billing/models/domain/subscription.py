"""
Domain models for subscriptions.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.models.domain.plans import Plan
from packages.billing.utils.time import ensure_utc


class Subscription(BaseModel):
    """
    Customer subscription domain model.

    `plan` is the plan in effect for the current period. `pending_plan` is
    only present while a downgrade is scheduled for the next period.
    """

    id: str
    stripe_subscription_id: str
    customer_id: str

    plan_id: str
    plan: Plan
    pending_plan_id: Optional[str] = None
    pending_plan: Optional[Plan] = None

    status: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator(
        "current_period_end", "canceled_at", "created_at", "updated_at", mode="after"
    )
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE.value


class SubscriptionCreateModel(BaseModel):
    """Model for inserting a subscription first seen in a Stripe snapshot."""

    stripe_subscription_id: str
    customer_id: str
    plan_id: str
    pending_plan_id: Optional[str] = None
    status: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None


class SubscriptionUpdateModel(BaseModel):
    """Model for updating a subscription; only explicitly set fields are written."""

    customer_id: Optional[str] = None
    plan_id: Optional[str] = None
    pending_plan_id: Optional[str] = None
    status: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: Optional[bool] = None
    canceled_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if isinstance(v, SubscriptionStatus):
            return v.value
        return v
