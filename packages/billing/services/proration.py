"""
Prorated refund for a subscription cancelled mid-period.

All amounts are minor units (cents) and all times epoch seconds.
"""

import math
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from pydantic import BaseModel

from packages.billing.models.domain.stripe_objects import (
    StripeInvoiceData,
    StripeSubscriptionData,
    expandable_id,
)

SECONDS_PER_DAY = 86400

# Cancelling within this many started days refunds the whole payment
FULL_REFUND_DAYS = 3


class RefundQuote(BaseModel):
    payment_intent_id: Optional[str] = None
    amount: Optional[int] = None  # Minor units

    @property
    def refundable(self) -> bool:
        return bool(self.payment_intent_id) and bool(self.amount) and self.amount > 0


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_refund(
    period_start: int,
    period_end: int,
    amount_paid: Optional[int],
    now: Optional[int] = None,
) -> Optional[int]:
    """
    Refund owed for the unused part of a billing period.

    Days are counted in started days. Cancelling within the first
    FULL_REFUND_DAYS days refunds everything; later, the unused share of the
    payment is refunded. Returns None when nothing is owed.
    """
    if not amount_paid:
        return None
    if now is None:
        now = int(time.time())

    days_total = math.ceil((period_end - period_start) / SECONDS_PER_DAY)
    days_used = math.ceil((now - period_start) / SECONDS_PER_DAY)
    days_unused = days_total - days_used

    if days_used <= FULL_REFUND_DAYS:
        return amount_paid
    if days_unused > 0 and days_total > 0:
        return round_half_up(Decimal(amount_paid) * days_unused / days_total)
    return None


def quote_cancellation_refund(
    subscription: StripeSubscriptionData, now: Optional[int] = None
) -> RefundQuote:
    """
    Work out what to refund when cancelling, from the subscription's latest
    invoice. The payment intent may be an id or the expanded object.
    """
    invoice = subscription.latest_invoice
    if not isinstance(invoice, StripeInvoiceData):
        return RefundQuote()

    payment_intent_id = expandable_id(invoice.payment_intent)
    amount_paid: Optional[int] = invoice.amount_paid if payment_intent_id else None

    if subscription.current_period_start is None or subscription.current_period_end is None:
        return RefundQuote(payment_intent_id=payment_intent_id)

    amount = calculate_refund(
        subscription.current_period_start,
        subscription.current_period_end,
        amount_paid,
        now=now,
    )
    return RefundQuote(payment_intent_id=payment_intent_id, amount=amount)
