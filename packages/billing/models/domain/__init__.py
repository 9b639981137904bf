"""Domain models for billing."""

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    StripeWebhookType,
    IdentifierKind,
)
from packages.billing.models.domain.plans import Plan, PlanUpsertModel
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.refund import (
    Refund,
    RefundUpsertModel,
    SubscriptionRefund,
)
from packages.billing.models.domain.event_log import EventLog, EventLogCreateModel

__all__ = [
    # Enums
    "SubscriptionStatus",
    "StripeWebhookType",
    "IdentifierKind",
    # Plans
    "Plan",
    "PlanUpsertModel",
    # Subscription
    "Subscription",
    "SubscriptionCreateModel",
    "SubscriptionUpdateModel",
    # Refunds
    "Refund",
    "RefundUpsertModel",
    "SubscriptionRefund",
    # Event log
    "EventLog",
    "EventLogCreateModel",
]
