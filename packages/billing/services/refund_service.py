"""
Service for refunds: creation, reconciliation from Stripe events and listing.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from common.core.exceptions import PaymentProviderError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.models.pagination import Page
from packages.billing.models.domain.refund import Refund, RefundUpsertModel
from packages.billing.models.domain.stripe_objects import (
    REFUND_ID_PREFIX,
    StripeChargeData,
    StripeRefundData,
    expandable_id,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.repositories.refund_repository import RefundRepository
from packages.billing.services.notifications import BillingNotifier
from packages.billing.services.proration import round_half_up

logger = get_logger(__name__)


def refund_fields_from_stripe(refund: StripeRefundData) -> RefundUpsertModel:
    return RefundUpsertModel(
        stripe_refund_id=refund.id,
        stripe_payment_intent_id=refund.payment_intent,
        amount=Decimal(refund.amount) / 100,
        currency=refund.currency,
        status=refund.status,
    )


class RefundService:
    """Service for the refund ledger."""

    def __init__(self, payment: Optional[PaymentProviderInterface] = None):
        self.refund_repo = RefundRepository()
        self.payment = payment or get_payment_provider()
        self.notifier = BillingNotifier(self.payment)

    @trace_span
    async def create_refund(
        self, payment_intent_id: str, amount: Optional[Decimal] = None
    ) -> Refund:
        """
        Refund a payment and record it.

        Args:
            payment_intent_id: Stripe payment intent to refund
            amount: Major units; None refunds the whole payment

        Returns:
            The recorded refund
        """
        minor_amount = (
            round_half_up(Decimal(amount) * 100) if amount is not None else None
        )
        stripe_refund = await self.payment.create_refund(
            payment_intent_id, amount=minor_amount
        )
        refund = await self.refund_repo.upsert(refund_fields_from_stripe(stripe_refund))

        logger.info(
            f"Created refund {refund.stripe_refund_id} of {refund.amount} {refund.currency}",
            extra={"refund_id": refund.id, "payment_intent_id": payment_intent_id},
        )

        email, attachments = await self._refund_recipient(payment_intent_id)
        if email:
            amount_text = f"${refund.amount:.2f}"
            await self.notifier.notify(
                email,
                "Refund Issued",
                f"A refund of {amount_text} has been issued to your account.",
                html=f"<p>A refund of <b>{amount_text}</b> has been issued to your account.</p>",
                attachments=attachments,
            )

        return refund

    async def _refund_recipient(self, payment_intent_id: str):
        """Customer email and invoice PDF for a refunded payment, best effort."""
        try:
            payment_intent = await self.payment.retrieve_payment_intent(
                payment_intent_id, expand=["invoice", "customer"]
            )
        except PaymentProviderError as e:
            logger.warning(
                f"Failed to load payment intent for refund email: {e.message}",
                extra={"payment_intent_id": payment_intent_id},
            )
            return None, []

        email = await self.notifier.customer_email(expandable_id(payment_intent.customer))
        invoice_id = expandable_id(payment_intent.invoice)
        attachments = await self.notifier.fetch_invoice_attachments(invoice_id)
        return email, attachments

    @trace_span
    async def sync_refund_from_stripe(self, refund: StripeRefundData) -> Optional[Refund]:
        """Upsert a refund reported by Stripe; non-refund objects are ignored."""
        if not refund.id.startswith(REFUND_ID_PREFIX):
            logger.info(f"Ignoring non-refund object {refund.id}")
            return None

        synced = await self.refund_repo.upsert(refund_fields_from_stripe(refund))
        logger.info(
            f"Synced refund {refund.id} ({refund.status})",
            extra={"refund_id": synced.id, "stripe_refund_id": refund.id},
        )
        return synced

    @trace_span
    async def sync_from_event_object(self, data: Dict[str, Any]) -> List[Refund]:
        """
        Reconcile the object of a refund-related event.

        Refund objects are upserted directly. Charges carry their refunds in
        `refunds.data`; each of those is upserted.
        """
        object_id = data.get("id") or ""
        if object_id.startswith(REFUND_ID_PREFIX):
            synced = await self.sync_refund_from_stripe(StripeRefundData.model_validate(data))
            return [synced] if synced else []

        if data.get("object") != "charge":
            logger.info(f"Ignoring non-refund object {object_id}")
            return []

        charge = StripeChargeData.model_validate(data)
        results = []
        for embedded in charge.refunds.data if charge.refunds else []:
            synced = await self.sync_refund_from_stripe(embedded)
            if synced:
                results.append(synced)
        return results

    @trace_span
    async def list_refunds(self, page: int, limit: int) -> Page[Refund]:
        refunds, total = await self.refund_repo.get_page(page, limit)
        return Page[Refund](data=refunds, total=total, page=page, limit=limit)

    @trace_span
    async def list_remote_refunds(self) -> List[StripeRefundData]:
        return await self.payment.list_refunds(limit=100)
