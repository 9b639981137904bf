"""Domain models for catalog plans."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class Plan(BaseModel):
    """A Stripe price as seen by this service, with amounts in major units."""

    id: str
    name: str
    stripe_product_id: str
    stripe_price_id: str
    amount: Decimal
    currency: str
    interval: Optional[str] = None
    active: bool = True
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlanUpsertModel(BaseModel):
    """All mutable plan fields, derived from a Stripe product and price pair."""

    name: str
    stripe_product_id: str
    stripe_price_id: str
    amount: Decimal
    currency: str
    interval: Optional[str] = None
    active: bool
    description: Optional[str] = None
