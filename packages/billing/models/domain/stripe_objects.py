"""
Domain models for Stripe payloads.

Strongly-typed Pydantic models for the Stripe objects this service reads,
whether they arrive inside a webhook event or come back from an API call.
Unknown fields are ignored; expandable references are either an id string
or the expanded object.
"""

from typing import Any, List, Optional, Union
from pydantic import BaseModel, Field

# Stripe refund ids carry this prefix; other objects arriving on refund
# events (charges, for instance) are not refunds.
REFUND_ID_PREFIX = "re_"


def expandable_id(value: Union[str, BaseModel, dict, None]) -> Optional[str]:
    """Return the id of an expandable field whether or not it was expanded."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("id")
    return getattr(value, "id", None)


# ============================================================================
# Catalog
# ============================================================================


class StripeRecurring(BaseModel):
    interval: Optional[str] = None
    interval_count: Optional[int] = None


class StripeProductData(BaseModel):
    """Stripe product object."""

    id: str
    name: str
    active: bool = True
    description: Optional[str] = None


class StripePriceData(BaseModel):
    """Stripe price object."""

    id: str
    product: Union[str, StripeProductData]
    active: bool = True
    currency: str
    unit_amount: Optional[int] = None  # Minor units
    recurring: Optional[StripeRecurring] = None


# ============================================================================
# Customers and payments
# ============================================================================


class StripeCustomerData(BaseModel):
    """Stripe customer object."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    deleted: bool = False


class StripePaymentMethodData(BaseModel):
    id: str
    type: Optional[str] = None


class StripePaymentIntentData(BaseModel):
    """Stripe payment intent object."""

    id: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    client_secret: Optional[str] = None
    customer: Union[str, StripeCustomerData, None] = None
    invoice: Union[str, "StripeInvoiceData", None] = None


class StripeRefundData(BaseModel):
    """Stripe refund object."""

    id: str
    amount: int = 0  # Minor units
    currency: str = "usd"
    status: Optional[str] = None
    payment_intent: Optional[str] = None
    charge: Optional[str] = None
    created: Optional[int] = None


class StripeRefundList(BaseModel):
    data: List[StripeRefundData] = Field(default_factory=list)


class StripeChargeData(BaseModel):
    """Stripe charge object (refunds only present when expanded)."""

    id: str
    amount: int = 0
    currency: Optional[str] = None
    payment_intent: Optional[str] = None
    refunds: Optional[StripeRefundList] = None


# ============================================================================
# Invoices
# ============================================================================


class StripeInvoiceLine(BaseModel):
    id: Optional[str] = None
    proration: bool = False
    amount: Optional[int] = None


class StripeInvoiceLineList(BaseModel):
    data: List[StripeInvoiceLine] = Field(default_factory=list)


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    status: Optional[str] = None
    billing_reason: Optional[str] = None
    amount_paid: int = 0
    currency: Optional[str] = None
    invoice_pdf: Optional[str] = None
    charge: Optional[str] = None
    payment_intent: Union[str, StripePaymentIntentData, None] = None
    lines: StripeInvoiceLineList = Field(default_factory=StripeInvoiceLineList)

    def has_proration_line(self) -> bool:
        return any(line.proration for line in self.lines.data)


StripePaymentIntentData.model_rebuild()


# ============================================================================
# Subscriptions
# ============================================================================


class StripeSubscriptionItem(BaseModel):
    id: str
    price: StripePriceData
    quantity: Optional[int] = None


class StripeSubscriptionItemList(BaseModel):
    data: List[StripeSubscriptionItem] = Field(default_factory=list)


class StripeSubscriptionData(BaseModel):
    """Stripe subscription object."""

    id: str
    customer: str
    status: str
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[int] = None
    items: StripeSubscriptionItemList = Field(default_factory=StripeSubscriptionItemList)
    latest_invoice: Union[str, StripeInvoiceData, None] = None
    schedule: Optional[str] = None

    @property
    def first_item(self) -> Optional[StripeSubscriptionItem]:
        return self.items.data[0] if self.items.data else None

    @property
    def price_id(self) -> Optional[str]:
        item = self.first_item
        return item.price.id if item else None


class StripeSubscriptionSchedulePhase(BaseModel):
    start_date: Optional[int] = None
    end_date: Optional[int] = None


class StripeSubscriptionScheduleData(BaseModel):
    """Stripe subscription schedule object."""

    id: str
    status: Optional[str] = None
    subscription: Optional[str] = None
    end_behavior: Optional[str] = None
    phases: List[StripeSubscriptionSchedulePhase] = Field(default_factory=list)


# ============================================================================
# Checkout
# ============================================================================


class StripeCheckoutSessionData(BaseModel):
    """Stripe checkout session object."""

    id: str
    mode: Optional[str] = None
    customer: Optional[str] = None
    subscription: Optional[str] = None
    url: Optional[str] = None
    status: Optional[str] = None


# ============================================================================
# Webhook envelope
# ============================================================================


class StripeEventData(BaseModel):
    """Stripe event data wrapper."""

    object: dict[str, Any]  # The actual object (product, subscription, invoice, etc.)


class StripeWebhookPayload(BaseModel):
    """
    Complete Stripe webhook payload.

    `type` stays a plain string: unknown types must still parse so they can
    be logged and acknowledged.
    """

    id: str
    type: str
    data: StripeEventData
    created: Optional[int] = None
    livemode: bool = False
