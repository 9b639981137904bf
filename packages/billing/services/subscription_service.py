"""
Service for managing subscriptions.

Mirrors Stripe subscription snapshots into the local store and drives the
plan-change workflows. Each workflow runs remote mutation, then local
persistence, then a best-effort notification.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple
from fastapi import HTTPException, status

from common.core.config import settings
from common.core.exceptions import PaymentProviderError, RemoteDataError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.scoped import transaction
from common.models.pagination import Page
from packages.billing.models.domain.enums import IdentifierKind, SubscriptionStatus
from packages.billing.models.domain.identifiers import classify_identifier
from packages.billing.models.domain.plan_state import (
    apply_snapshot,
    clear_pending,
    initial_plan_state,
    plan_state_from_columns,
    plan_state_to_columns,
    replace_effective,
    schedule_change,
)
from packages.billing.models.domain.refund import SubscriptionRefund
from packages.billing.models.domain.stripe_objects import (
    StripeCheckoutSessionData,
    StripeCustomerData,
    StripeInvoiceData,
    StripePaymentIntentData,
    StripeSubscriptionData,
    StripeSubscriptionScheduleData,
)
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.repositories.subscription_repository import SubscriptionRepository
from packages.billing.services.notifications import BillingNotifier
from packages.billing.services.plans_service import PlansService
from packages.billing.services.proration import quote_cancellation_refund
from packages.billing.services.refund_service import RefundService
from packages.billing.utils.time import from_unix, utc_now

logger = get_logger(__name__)

# Stripe rejects cancelling a schedule that is already cancelled with a 400
# carrying this text; that outcome is what we wanted anyway.
SCHEDULE_ALREADY_CANCELED_MESSAGE = "currently in the `canceled` status"

TEST_CARD_TOKEN = "tok_visa"

PRORATION_BILLING_REASON = "subscription_update"

# Compare-and-update rounds before giving up on a contended subscription row
MAX_STATE_WRITE_ATTEMPTS = 5


def is_rollover(existing: Subscription, period_end: Optional[datetime]) -> bool:
    """Whether a snapshot ending at `period_end` starts a later period than the stored one."""
    return (
        existing.current_period_end is None
        or period_end is None
        or period_end > existing.current_period_end
    )


def find_proration_invoice(
    invoices: List[StripeInvoiceData],
) -> Optional[StripeInvoiceData]:
    """First invoice created by a subscription update or carrying proration lines."""
    for invoice in invoices:
        if (
            invoice.billing_reason == PRORATION_BILLING_REASON
            or invoice.has_proration_line()
        ):
            return invoice
    return None


def is_schedule_already_canceled(error: PaymentProviderError) -> bool:
    return error.status_code == 400 and SCHEDULE_ALREADY_CANCELED_MESSAGE in (
        error.message or ""
    )


class SubscriptionService:
    """Service for subscription reconciliation and plan changes."""

    def __init__(self, payment: Optional[PaymentProviderInterface] = None):
        self.subscription_repo = SubscriptionRepository()
        self.payment = payment or get_payment_provider()
        self.plans_service = PlansService(self.payment)
        self.refund_service = RefundService(self.payment)
        self.notifier = BillingNotifier(self.payment)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @trace_span
    async def resolve_subscription(self, identifier: str) -> Subscription:
        """Find a subscription by internal id or Stripe subscription id."""
        if classify_identifier(identifier) == IdentifierKind.INTERNAL:
            subscription = await self.subscription_repo.get(identifier)
        else:
            subscription = await self.subscription_repo.get_by_stripe_id(identifier)

        if not subscription:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found"
            )
        return subscription

    @trace_span
    async def list_subscriptions(self, page: int, limit: int) -> Page[Subscription]:
        subscriptions, total = await self.subscription_repo.get_page(page, limit)
        return Page[Subscription](data=subscriptions, total=total, page=page, limit=limit)

    async def _write_plan_state(
        self,
        subscription: Subscription,
        build_update: Callable[[Subscription], SubscriptionUpdateModel],
    ) -> Tuple[Subscription, Subscription]:
        """
        Apply `build_update` to the stored row with compare-and-update.

        When another writer changed the plan pair or period end since
        `subscription` was read, the row is re-read and the update rebuilt
        from it. Returns the updated subscription and the version it was
        computed from.
        """
        for _ in range(MAX_STATE_WRITE_ATTEMPTS):
            updated = await self.subscription_repo.update_if_unchanged(
                subscription, build_update(subscription)
            )
            if updated is not None:
                return updated, subscription

            logger.info(
                f"Subscription {subscription.stripe_subscription_id} changed concurrently, retrying",
                extra={"subscription_id": subscription.id},
            )
            subscription = await self.subscription_repo.get(subscription.id)
            if subscription is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found"
                )

        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Subscription is being modified concurrently, retry later",
        )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    @trace_span
    async def sync_from_stripe(
        self, snapshot: StripeSubscriptionData
    ) -> Optional[Subscription]:
        """
        Merge a Stripe subscription snapshot into the local record.

        Safe under duplicate and out-of-order delivery: the plan only moves
        forward when the snapshot's period end is later than the stored one,
        otherwise the snapshot's plan is held as pending. Snapshots whose
        price is not in the catalog are skipped.
        """
        price_id = snapshot.price_id
        if not price_id:
            logger.info(
                f"Subscription {snapshot.id} has no items, skipping sync",
                extra={"stripe_subscription_id": snapshot.id},
            )
            return None

        period_end = from_unix(snapshot.current_period_end)
        canceled_at = from_unix(snapshot.canceled_at)

        async with transaction():
            plan = await self.plans_service.get_by_stripe_price_id(price_id)
            if not plan:
                logger.info(
                    f"Plan not found for price {price_id}, skipping subscription sync",
                    extra={"stripe_subscription_id": snapshot.id, "price_id": price_id},
                )
                return None

            existing = await self.subscription_repo.get_by_stripe_id(snapshot.id)

            if existing is None:
                rolled_over = True
                plan_id, pending_plan_id = plan_state_to_columns(
                    apply_snapshot(initial_plan_state(plan.id), plan.id, rolled_over)
                )
                subscription = await self.subscription_repo.create(
                    SubscriptionCreateModel(
                        stripe_subscription_id=snapshot.id,
                        customer_id=snapshot.customer,
                        plan_id=plan_id,
                        pending_plan_id=pending_plan_id,
                        status=snapshot.status,
                        current_period_end=period_end,
                        cancel_at_period_end=snapshot.cancel_at_period_end or False,
                        canceled_at=canceled_at,
                    )
                )
            else:

                def merge_snapshot(current: Subscription) -> SubscriptionUpdateModel:
                    rolled = is_rollover(current, period_end)
                    plan_id, pending_plan_id = plan_state_to_columns(
                        apply_snapshot(
                            plan_state_from_columns(
                                current.plan_id, current.pending_plan_id
                            ),
                            plan.id,
                            rolled,
                        )
                    )
                    update_data = SubscriptionUpdateModel(
                        customer_id=snapshot.customer,
                        plan_id=plan_id,
                        pending_plan_id=pending_plan_id,
                        status=snapshot.status,
                        cancel_at_period_end=snapshot.cancel_at_period_end or False,
                    )
                    # Stored period end only moves forward
                    if period_end and rolled:
                        update_data.current_period_end = period_end
                    if canceled_at:
                        update_data.canceled_at = canceled_at
                    return update_data

                subscription, existing = await self._write_plan_state(
                    existing, merge_snapshot
                )
                rolled_over = is_rollover(existing, period_end)

        logger.info(
            f"Synced subscription {snapshot.id} ({snapshot.status})",
            extra={
                "subscription_id": subscription.id,
                "stripe_subscription_id": snapshot.id,
                "plan_id": subscription.plan_id,
                "pending_plan_id": subscription.pending_plan_id,
                "rolled_over": rolled_over,
            },
        )

        was_active = existing is not None and existing.is_active()
        if subscription.is_active() and not was_active:
            attachments = await self.notifier.fetch_invoice_attachments(
                snapshot.latest_invoice
            )
            await self.notifier.notify_customer(
                snapshot.customer,
                "Subscription Created",
                "Your subscription has been created and is now active.",
                html="<p>Your subscription has been created and is now <b>active</b>.</p>"
                "<p>Thank you!</p>",
                attachments=attachments,
            )

        return subscription

    @trace_span
    async def sync_by_stripe_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        """Fetch a subscription from Stripe and reconcile it."""
        snapshot = await self.payment.retrieve_subscription(
            stripe_subscription_id, expand=["items.data.price.product"]
        )
        return await self.sync_from_stripe(snapshot)

    # ------------------------------------------------------------------
    # Plan changes
    # ------------------------------------------------------------------

    @trace_span
    async def upgrade_subscription(
        self, subscription_identifier: str, new_plan_identifier: str
    ) -> Subscription:
        """
        Move a subscription to a more expensive plan now, charging the
        prorated difference.
        """
        subscription = await self.resolve_subscription(subscription_identifier)
        new_plan = await self.plans_service.resolve_plan(new_plan_identifier)

        if Decimal(new_plan.amount) <= Decimal(subscription.plan.amount):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Upgrade must be to a higher-priced plan.",
            )

        remote = await self.payment.retrieve_subscription(
            subscription.stripe_subscription_id
        )
        item = remote.first_item
        if item is None:
            raise RemoteDataError(
                f"Subscription {subscription.stripe_subscription_id} has no items"
            )
        updated = await self.payment.change_subscription_price(
            subscription.stripe_subscription_id, item.id, new_plan.stripe_price_id
        )

        period_end = from_unix(updated.current_period_end)

        def switch_plan(current: Subscription) -> SubscriptionUpdateModel:
            plan_id, pending_plan_id = plan_state_to_columns(
                replace_effective(
                    plan_state_from_columns(current.plan_id, current.pending_plan_id),
                    new_plan.id,
                )
            )
            update_data = SubscriptionUpdateModel(
                plan_id=plan_id,
                pending_plan_id=pending_plan_id,
                status=updated.status,
                cancel_at_period_end=updated.cancel_at_period_end,
            )
            if period_end and not (
                current.current_period_end and period_end < current.current_period_end
            ):
                update_data.current_period_end = period_end
            return update_data

        subscription, _ = await self._write_plan_state(subscription, switch_plan)

        logger.info(
            f"Upgraded subscription {subscription.stripe_subscription_id} to {new_plan.name}",
            extra={"subscription_id": subscription.id, "plan_id": new_plan.id},
        )

        proration_invoice = await self._settle_proration_invoice(
            subscription.stripe_subscription_id
        )

        attachments = await self.notifier.fetch_invoice_attachments(proration_invoice)
        await self.notifier.notify_customer(
            subscription.customer_id,
            "Subscription Upgraded",
            f"Your subscription has been upgraded to {new_plan.name}.",
            html=f"<p>Your subscription has been upgraded to <b>{new_plan.name}</b>.</p>",
            attachments=attachments,
        )

        return subscription

    async def _settle_proration_invoice(
        self, stripe_subscription_id: str
    ) -> Optional[StripeInvoiceData]:
        """Finalize and pay the open invoice holding the upgrade's prorations."""
        invoices = await self.payment.list_invoices(
            stripe_subscription_id, status="open", limit=10
        )
        invoice = find_proration_invoice(invoices)
        if invoice is None or invoice.status != "open":
            return invoice

        invoice = await self.payment.finalize_invoice(invoice.id)
        await self.payment.pay_invoice(invoice.id)
        return invoice

    @trace_span
    async def downgrade_subscription(
        self, subscription_identifier: str, new_plan_identifier: str
    ) -> tuple[StripeSubscriptionScheduleData, Subscription]:
        """
        Schedule a cheaper plan for the next billing period.

        The plan in effect does not change; the target is held as pending
        until the period rolls over.
        """
        subscription = await self.resolve_subscription(subscription_identifier)
        new_plan = await self.plans_service.resolve_plan(new_plan_identifier)

        if new_plan.id == subscription.plan_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Subscription is already on this plan",
            )

        remote = await self.payment.retrieve_subscription(
            subscription.stripe_subscription_id
        )
        current_price_id = remote.price_id
        start = remote.current_period_start
        end = remote.current_period_end
        if not current_price_id or not start or not end or start >= end:
            raise RemoteDataError(
                f"Invalid phase timing: start ({start}) >= end ({end})"
            )

        schedule = await self.payment.create_subscription_schedule(
            subscription.stripe_subscription_id
        )
        schedule = await self.payment.update_subscription_schedule(
            schedule.id,
            phases=[
                {
                    "items": [{"price": current_price_id, "quantity": 1}],
                    "start_date": start,
                    "end_date": end,
                },
                {
                    "items": [{"price": new_plan.stripe_price_id, "quantity": 1}],
                    "start_date": end,
                },
            ],
            end_behavior="release",
        )

        def schedule_plan(current: Subscription) -> SubscriptionUpdateModel:
            plan_id, pending_plan_id = plan_state_to_columns(
                schedule_change(
                    plan_state_from_columns(current.plan_id, current.pending_plan_id),
                    new_plan.id,
                )
            )
            return SubscriptionUpdateModel(plan_id=plan_id, pending_plan_id=pending_plan_id)

        subscription, _ = await self._write_plan_state(subscription, schedule_plan)

        logger.info(
            f"Scheduled downgrade of {subscription.stripe_subscription_id} to {new_plan.name}",
            extra={
                "subscription_id": subscription.id,
                "pending_plan_id": new_plan.id,
                "schedule_id": schedule.id,
            },
        )

        attachments = await self.notifier.fetch_invoice_attachments(
            remote.latest_invoice
        )
        await self.notifier.notify_customer(
            subscription.customer_id,
            "Subscription Downgrade Scheduled",
            f"Your subscription will be downgraded to {new_plan.name} at the next billing cycle.",
            html=f"<p>Your subscription will be downgraded to <b>{new_plan.name}</b> "
            "at the next billing cycle.</p>",
            attachments=attachments,
        )

        return schedule, subscription

    @trace_span
    async def cancel_subscription(
        self, subscription_identifier: str, now: Optional[int] = None
    ) -> Subscription:
        """
        Cancel a subscription, refunding the unused part of the period.

        Args:
            subscription_identifier: Internal id or Stripe subscription id
            now: Epoch seconds used for the proration, defaults to the clock
        """
        subscription = await self.resolve_subscription(subscription_identifier)
        remote = await self.payment.retrieve_subscription(
            subscription.stripe_subscription_id,
            expand=["latest_invoice.payment_intent"],
        )

        if remote.schedule:
            try:
                await self.payment.cancel_subscription_schedule(remote.schedule)
            except PaymentProviderError as e:
                if not is_schedule_already_canceled(e):
                    raise
                logger.info(
                    f"Schedule {remote.schedule} already cancelled",
                    extra={"schedule_id": remote.schedule},
                )

        quote = quote_cancellation_refund(remote, now=now)
        if quote.refundable:
            await self.refund_service.create_refund(
                quote.payment_intent_id, Decimal(quote.amount) / 100
            )

        canceled_at = utc_now()

        def mark_canceled(current: Subscription) -> SubscriptionUpdateModel:
            state = plan_state_from_columns(current.plan_id, current.pending_plan_id)
            if remote.schedule:
                state = clear_pending(state)
            plan_id, pending_plan_id = plan_state_to_columns(state)
            return SubscriptionUpdateModel(
                plan_id=plan_id,
                pending_plan_id=pending_plan_id,
                status=SubscriptionStatus.CANCELED,
                canceled_at=canceled_at,
            )

        subscription, _ = await self._write_plan_state(subscription, mark_canceled)

        logger.info(
            f"Cancelled subscription {subscription.stripe_subscription_id}",
            extra={
                "subscription_id": subscription.id,
                "refund_amount": quote.amount if quote.refundable else 0,
            },
        )

        plan_name = subscription.plan.name if subscription.plan else "your plan"
        attachments = await self.notifier.fetch_invoice_attachments(remote.latest_invoice)
        await self.notifier.notify_customer(
            subscription.customer_id,
            "Subscription Cancelled",
            f"Your subscription to {plan_name} has been cancelled.",
            html=f"<p>Your subscription to <b>{plan_name}</b> has been cancelled.</p>",
            attachments=attachments,
        )

        return subscription

    # ------------------------------------------------------------------
    # Refund history
    # ------------------------------------------------------------------

    @trace_span
    async def get_subscription_refunds(
        self, subscription_identifier: str
    ) -> List[SubscriptionRefund]:
        """Refunds on every charge of the subscription's invoices, read from Stripe."""
        subscription = await self.resolve_subscription(subscription_identifier)
        invoices = await self.payment.list_invoices(
            subscription.stripe_subscription_id, limit=100
        )

        refunds: List[SubscriptionRefund] = []
        for invoice in invoices:
            if not invoice.charge:
                continue
            charge = await self.payment.retrieve_charge(invoice.charge)
            for refund in charge.refunds.data if charge.refunds else []:
                refunds.append(
                    SubscriptionRefund(
                        id=refund.id,
                        amount=refund.amount,
                        currency=refund.currency,
                        status=refund.status,
                        payment_intent=refund.payment_intent,
                        charge=refund.charge or charge.id,
                        created=refund.created,
                        refunded=refund.status == "succeeded"
                        and refund.amount == charge.amount,
                        original_charge_amount=charge.amount,
                    )
                )
        return refunds

    # ------------------------------------------------------------------
    # Onboarding and checkout
    # ------------------------------------------------------------------

    @trace_span
    async def create_customer(self, name: str, email: str) -> StripeCustomerData:
        """Reuse the Stripe customer with this email, or create one."""
        customer = await self.payment.find_customer_by_email(email)
        if customer:
            logger.info(
                "Reusing existing Stripe customer",
                extra={"customer_id": customer.id},
            )
        else:
            customer = await self.payment.create_customer(name=name, email=email)

        if settings.stripe_attach_test_payment_method:
            payment_method = await self.payment.create_card_payment_method(
                TEST_CARD_TOKEN
            )
            await self.payment.attach_payment_method(payment_method.id, customer.id)
            await self.payment.set_default_payment_method(customer.id, payment_method.id)

        return customer

    @trace_span
    async def create_payment_session(self, customer_id: str, price_id: str) -> dict:
        """
        Start an incomplete subscription and return the client secret needed
        to confirm its first payment.
        """
        existing = await self.subscription_repo.find_open_for_customer(customer_id)
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Customer already has an active subscription.",
            )

        remote = await self.payment.create_subscription(customer_id, price_id)

        client_secret = None
        invoice = remote.latest_invoice
        if isinstance(invoice, StripeInvoiceData) and isinstance(
            invoice.payment_intent, StripePaymentIntentData
        ):
            client_secret = invoice.payment_intent.client_secret

        return {
            "subscription_id": remote.id,
            "client_secret": client_secret,
            "status": remote.status,
        }

    @trace_span
    async def create_checkout_session(
        self, customer_id: str, price_id: str
    ) -> StripeCheckoutSessionData:
        return await self.payment.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=settings.stripe_checkout_success_url,
            cancel_url=settings.stripe_checkout_cancel_url,
        )
