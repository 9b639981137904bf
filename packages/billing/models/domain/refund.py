"""Domain models for the refund ledger."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class Refund(BaseModel):
    id: str
    stripe_refund_id: str
    stripe_payment_intent_id: Optional[str] = None
    amount: Decimal
    currency: str
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RefundUpsertModel(BaseModel):
    """Refund fields mirrored from Stripe; amount already in major units."""

    stripe_refund_id: str
    stripe_payment_intent_id: Optional[str] = None
    amount: Decimal
    currency: str
    status: Optional[str] = None


class SubscriptionRefund(BaseModel):
    """A refund found on one of a subscription's charges, read live from Stripe."""

    id: str
    amount: int  # Minor units, as Stripe reports it
    currency: str
    status: Optional[str] = None
    payment_intent: Optional[str] = None
    charge: Optional[str] = None
    created: Optional[int] = None
    refunded: bool
    original_charge_amount: int
