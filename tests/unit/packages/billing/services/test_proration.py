"""Unit tests for cancellation refund proration."""

from decimal import Decimal

from packages.billing.models.domain.stripe_objects import StripeSubscriptionData
from packages.billing.services.proration import (
    SECONDS_PER_DAY,
    calculate_refund,
    quote_cancellation_refund,
    round_half_up,
)

START = 1_772_323_200  # 2026-03-01T00:00:00Z
END = START + 30 * SECONDS_PER_DAY


def _subscription(latest_invoice, start=START, end=END) -> StripeSubscriptionData:
    return StripeSubscriptionData.model_validate(
        {
            "id": "sub_1",
            "customer": "cus_1",
            "status": "active",
            "current_period_start": start,
            "current_period_end": end,
            "latest_invoice": latest_invoice,
        }
    )


class TestCalculateRefund:
    def test_full_refund_within_first_three_days(self):
        now = START + 2 * SECONDS_PER_DAY + 1  # third started day

        assert calculate_refund(START, END, 3000, now=now) == 3000

    def test_prorated_from_fourth_day(self):
        now = START + 3 * SECONDS_PER_DAY + 1  # fourth started day

        assert calculate_refund(START, END, 3000, now=now) == 2600

    def test_exact_day_boundary_counts_completed_days(self):
        now = START + 3 * SECONDS_PER_DAY

        assert calculate_refund(START, END, 3000, now=now) == 3000

    def test_prorated_amount_is_rounded(self):
        now = START + 4 * SECONDS_PER_DAY + 1  # 5 days used, 25 unused

        # 1001 * 25 / 30 = 834.1666...
        assert calculate_refund(START, END, 1001, now=now) == 834

    def test_half_cent_rounds_up(self):
        now = START + 4 * SECONDS_PER_DAY + 1

        # 3 * 25 / 30 = 2.5
        assert calculate_refund(START, END, 3, now=now) == 3

    def test_nothing_owed_at_period_end(self):
        assert calculate_refund(START, END, 3000, now=END + 1) is None

    def test_nothing_paid(self):
        assert calculate_refund(START, END, 0, now=START + 1) is None
        assert calculate_refund(START, END, None, now=START + 1) is None


class TestRoundHalfUp:
    def test_half_rounds_away_from_zero(self):
        assert round_half_up(Decimal("2.5")) == 3
        assert round_half_up(Decimal("1999.5")) == 2000

    def test_below_half_rounds_down(self):
        assert round_half_up(Decimal("2.49")) == 2


class TestQuoteCancellationRefund:
    def test_expanded_payment_intent(self):
        subscription = _subscription(
            {"id": "in_1", "amount_paid": 3000, "payment_intent": {"id": "pi_1"}}
        )

        quote = quote_cancellation_refund(subscription, now=START + 10 * SECONDS_PER_DAY + 1)

        assert quote.payment_intent_id == "pi_1"
        assert quote.amount == 1900
        assert quote.refundable is True

    def test_payment_intent_id_reference(self):
        subscription = _subscription(
            {"id": "in_1", "amount_paid": 3000, "payment_intent": "pi_2"}
        )

        quote = quote_cancellation_refund(subscription, now=START + 1)

        assert quote.payment_intent_id == "pi_2"
        assert quote.amount == 3000

    def test_invoice_not_expanded(self):
        quote = quote_cancellation_refund(_subscription("in_1"), now=START + 1)

        assert quote.refundable is False

    def test_invoice_without_payment_intent(self):
        subscription = _subscription({"id": "in_1", "amount_paid": 0})

        quote = quote_cancellation_refund(subscription, now=START + 1)

        assert quote.payment_intent_id is None
        assert quote.refundable is False

    def test_missing_period_bounds(self):
        subscription = _subscription(
            {"id": "in_1", "amount_paid": 3000, "payment_intent": "pi_1"}, start=None
        )

        quote = quote_cancellation_refund(subscription, now=START + 1)

        assert quote.refundable is False
