"""
Billing package - keeps the local plan, subscription and refund records
consistent with Stripe.

This package integrates with:
- Stripe: Catalog, subscriptions, schedules, invoices and refunds

Stripe is the source of truth; webhooks drive reconciliation and the API
initiates plan changes, cancellations and onboarding.
"""
