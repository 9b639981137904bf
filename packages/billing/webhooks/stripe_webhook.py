"""
Stripe webhook handler for billing events.

Handles events from Stripe payment platform:
- Product and price changes (plan catalog)
- Subscription lifecycle events
- Refunds
- Checkout completion and invoice payment

Every verified event is appended to the event log before it is routed.
Delivery is at-least-once and unordered, so handlers must tolerate
duplicates and stale snapshots.
"""

from typing import Any, Awaitable, Callable, Dict

import stripe
from fastapi import Request, HTTPException, status
from pydantic import ValidationError

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import StripeWebhookType
from packages.billing.models.domain.stripe_objects import (
    StripeCheckoutSessionData,
    StripeInvoiceData,
    StripePriceData,
    StripeProductData,
    StripeSubscriptionData,
    StripeWebhookPayload,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.repositories.event_log_repository import EventLogRepository
from packages.billing.services.subscription_service import SubscriptionService

logger = get_logger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class StripeEventDispatcher:
    """Routes verified Stripe events to their reconciliation handler by type."""

    def __init__(self):
        self.payment = get_payment_provider()
        self.subscription_service = SubscriptionService(self.payment)
        self.plans_service = self.subscription_service.plans_service
        self.refund_service = self.subscription_service.refund_service
        self.event_log_repo = EventLogRepository()

        self.handlers: Dict[str, EventHandler] = {
            StripeWebhookType.PRODUCT_CREATED.value: self._handle_product,
            StripeWebhookType.PRODUCT_UPDATED.value: self._handle_product,
            StripeWebhookType.PRICE_CREATED.value: self._handle_price,
            StripeWebhookType.PRICE_UPDATED.value: self._handle_price,
            StripeWebhookType.SUBSCRIPTION_CREATED.value: self._handle_subscription,
            StripeWebhookType.SUBSCRIPTION_UPDATED.value: self._handle_subscription,
            StripeWebhookType.SUBSCRIPTION_DELETED.value: self._handle_subscription,
            StripeWebhookType.CHARGE_REFUNDED.value: self._handle_refund,
            StripeWebhookType.REFUND_UPDATED.value: self._handle_refund,
            StripeWebhookType.CHECKOUT_SESSION_COMPLETED.value: self._handle_checkout_completed,
            StripeWebhookType.INVOICE_PAYMENT_SUCCEEDED.value: self._handle_invoice_payment_succeeded,
        }

    @trace_span
    async def dispatch(self, payload: StripeWebhookPayload) -> bool:
        """
        Log the event and run its handler.

        Returns:
            False when the event type has no handler (acknowledged as a no-op)
        """
        await self.event_log_repo.append(payload.type, payload.data.object)

        handler = self.handlers.get(payload.type)
        if handler is None:
            logger.warning(
                f"Unhandled Stripe webhook type: {payload.type}",
                extra={"event_id": payload.id, "event_type": payload.type},
            )
            return False

        await handler(payload.data.object)
        return True

    async def _handle_product(self, data: dict) -> None:
        product = StripeProductData.model_validate(data)
        plans = await self.plans_service.sync_product(product)
        logger.info(
            f"Synced {len(plans)} plan(s) for product {product.id}",
            extra={"product_id": product.id},
        )

    async def _handle_price(self, data: dict) -> None:
        price = StripePriceData.model_validate(data)
        await self.plans_service.sync_price(price)

    async def _handle_subscription(self, data: dict) -> None:
        snapshot = StripeSubscriptionData.model_validate(data)
        await self.subscription_service.sync_from_stripe(snapshot)

    async def _handle_refund(self, data: dict) -> None:
        await self.refund_service.sync_from_event_object(data)

    async def _handle_checkout_completed(self, data: dict) -> None:
        session = StripeCheckoutSessionData.model_validate(data)
        if session.mode != "subscription" or not session.subscription:
            logger.info(
                f"Checkout session {session.id} has no subscription, skipping",
                extra={"session_id": session.id, "mode": session.mode},
            )
            return
        await self.subscription_service.sync_by_stripe_id(session.subscription)

    async def _handle_invoice_payment_succeeded(self, data: dict) -> None:
        invoice = StripeInvoiceData.model_validate(data)
        if not invoice.subscription:
            logger.info(
                f"Invoice {invoice.id} is not for a subscription, skipping",
                extra={"invoice_id": invoice.id},
            )
            return
        await self.subscription_service.sync_by_stripe_id(invoice.subscription)


def verify_stripe_signature(payload_bytes: bytes, sig_header: str) -> None:
    """
    Check the stripe-signature header against the webhook secret.

    Raises:
        HTTPException: 400 if the signature or payload is invalid
    """
    try:
        stripe.Webhook.construct_event(
            payload_bytes,
            sig_header,
            settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance_seconds,
        )
    except stripe.SignatureVerificationError as e:
        logger.error(f"Stripe webhook signature verification failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature"
        )
    except ValueError as e:
        logger.error(f"Stripe webhook payload is not valid JSON: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload"
        )


async def handle_stripe_webhook(request: Request) -> dict[str, bool]:
    """
    Handle incoming webhook from Stripe.

    Validates webhook signature and routes to appropriate handler.
    """
    try:
        # Get raw body for signature verification
        payload_bytes = await request.body()
        sig_header = request.headers.get("stripe-signature")

        if not sig_header:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing stripe-signature header",
            )

        verify_stripe_signature(payload_bytes, sig_header)

        # Parse into typed model
        try:
            payload = StripeWebhookPayload.model_validate_json(payload_bytes)
        except ValidationError as e:
            logger.error(
                "Invalid Stripe webhook payload",
                extra={"validation_errors": e.errors()},
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid webhook payload",
            )

        logger.info(
            f"Received Stripe webhook: {payload.type}",
            extra={
                "event_id": payload.id,
                "event_type": payload.type,
                "livemode": payload.livemode,
            },
        )

        await StripeEventDispatcher().dispatch(payload)

        return {"received": True}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Failed to process Stripe webhook: {str(e)}", extra={"error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed",
        )
