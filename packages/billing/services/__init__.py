"""Billing services."""

from packages.billing.services.plans_service import PlansService
from packages.billing.services.refund_service import RefundService
from packages.billing.services.subscription_service import SubscriptionService

__all__ = [
    "PlansService",
    "RefundService",
    "SubscriptionService",
]
