"""Database models for billing."""

from packages.billing.models.database.plan import PlanEntity
from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.database.refund import RefundEntity
from packages.billing.models.database.event_log import EventLogEntity

__all__ = [
    "PlanEntity",
    "SubscriptionEntity",
    "RefundEntity",
    "EventLogEntity",
]
