"""Billing API routes."""

from packages.billing.routes import plans, refunds, subscriptions, webhooks

__all__ = ["plans", "refunds", "subscriptions", "webhooks"]
