"""
Billing enums - strongly typed enumerations for subscription and event states.
"""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Stripe subscription status values.

    Stored as an opaque string; only ACTIVE and CANCELED drive local behavior.
    """

    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    PAUSED = "paused"


class StripeWebhookType(str, Enum):
    """Stripe webhook event types we reconcile."""

    # Catalog
    PRODUCT_CREATED = "product.created"
    PRODUCT_UPDATED = "product.updated"
    PRICE_CREATED = "price.created"
    PRICE_UPDATED = "price.updated"

    # Subscription
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"

    # Refunds
    CHARGE_REFUNDED = "charge.refunded"
    REFUND_UPDATED = "refund.updated"

    # Checkout and payment
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"


class IdentifierKind(str, Enum):
    """Which key an externally supplied identifier refers to."""

    INTERNAL = "internal"  # Our UUID primary key
    REMOTE = "remote"  # Stripe id (sub_..., price_...)
