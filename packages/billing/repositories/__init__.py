"""Billing repositories."""

from packages.billing.repositories.plan_repository import PlanRepository
from packages.billing.repositories.subscription_repository import SubscriptionRepository
from packages.billing.repositories.refund_repository import RefundRepository
from packages.billing.repositories.event_log_repository import EventLogRepository

__all__ = [
    "PlanRepository",
    "SubscriptionRepository",
    "RefundRepository",
    "EventLogRepository",
]
