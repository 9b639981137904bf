"""
Subscription API routes.

Listing, onboarding and plan changes. Subscription ids in paths may be our
id or the Stripe subscription id.
"""

from fastapi import APIRouter, Query

from common.models.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Page
from packages.billing.services.subscription_service import SubscriptionService
from packages.billing.models.schemas.billing import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    DowngradeRequest,
    PaymentSessionRequest,
    PaymentSessionResponse,
    ScheduleResponse,
    SubscriptionRefundsResponse,
    SubscriptionResponse,
    UpgradeRequest,
)

router = APIRouter()


# ============================================================================
# Listing
# ============================================================================


@router.get("", response_model=Page[SubscriptionResponse])
async def list_subscriptions(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    """Get subscriptions, newest first, with their plans embedded."""
    subscription_service = SubscriptionService()
    result = await subscription_service.list_subscriptions(page, limit)
    return Page[SubscriptionResponse](
        data=[SubscriptionResponse.from_domain(sub) for sub in result.data],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )


# ============================================================================
# Onboarding
# ============================================================================


@router.post("/create-payment-session", response_model=PaymentSessionResponse)
async def create_payment_session(request: PaymentSessionRequest):
    """
    Create (or reuse) the Stripe customer and start an incomplete
    subscription. The client secret confirms the first payment.
    """
    subscription_service = SubscriptionService()
    customer = await subscription_service.create_customer(
        name=request.name, email=request.email
    )
    session = await subscription_service.create_payment_session(
        customer.id, request.price_id
    )
    return PaymentSessionResponse(**session)


@router.post("/checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(request: CheckoutSessionRequest):
    """Create a hosted Stripe checkout session for a subscription."""
    subscription_service = SubscriptionService()
    session = await subscription_service.create_checkout_session(
        request.customer_id, request.price_id
    )
    return CheckoutSessionResponse(session_id=session.id, url=session.url)


# ============================================================================
# Plan changes
# ============================================================================


@router.patch("/{subscription_id}/upgrade", response_model=SubscriptionResponse)
async def upgrade_subscription(subscription_id: str, request: UpgradeRequest):
    """
    Switch to a more expensive plan immediately.

    The prorated difference is invoiced and charged right away.
    """
    subscription_service = SubscriptionService()
    subscription = await subscription_service.upgrade_subscription(
        subscription_id, request.new_plan_id
    )
    return SubscriptionResponse.from_domain(subscription)


@router.patch("/{subscription_id}/downgrade", response_model=ScheduleResponse)
async def downgrade_subscription(subscription_id: str, request: DowngradeRequest):
    """Schedule a plan change for the start of the next billing period."""
    subscription_service = SubscriptionService()
    schedule, subscription = await subscription_service.downgrade_subscription(
        subscription_id, request.new_plan_id
    )
    return ScheduleResponse(
        schedule_id=schedule.id,
        status=schedule.status,
        subscription=SubscriptionResponse.from_domain(subscription),
    )


@router.patch("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(subscription_id: str):
    """Cancel now, refunding the unused part of the current period."""
    subscription_service = SubscriptionService()
    subscription = await subscription_service.cancel_subscription(subscription_id)
    return SubscriptionResponse.from_domain(subscription)


@router.get("/{subscription_id}/refunds", response_model=SubscriptionRefundsResponse)
async def get_subscription_refunds(subscription_id: str):
    """Refunds issued against the subscription's charges, as Stripe reports them."""
    subscription_service = SubscriptionService()
    refunds = await subscription_service.get_subscription_refunds(subscription_id)
    return SubscriptionRefundsResponse(subscription_id=subscription_id, refunds=refunds)
