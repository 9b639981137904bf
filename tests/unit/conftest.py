import pytest
from unittest.mock import AsyncMock, patch

from packages.billing.models.domain.stripe_objects import (
    StripeCustomerData,
    StripeInvoiceData,
    StripePaymentIntentData,
    StripeRefundData,
    StripeSubscriptionData,
    StripeSubscriptionScheduleData,
)


@pytest.fixture
def mock_payment_provider():
    """Create a mock payment provider with Stripe-shaped defaults."""
    provider = AsyncMock()
    provider.retrieve_customer = AsyncMock(
        return_value=StripeCustomerData(
            id="cus_test123", email="customer@example.com", name="Test Customer"
        )
    )
    provider.find_customer_by_email = AsyncMock(return_value=None)
    provider.retrieve_invoice = AsyncMock(return_value=StripeInvoiceData(id="in_test"))
    provider.list_invoices = AsyncMock(return_value=[])
    provider.list_prices = AsyncMock(return_value=[])
    provider.list_refunds = AsyncMock(return_value=[])
    provider.retrieve_payment_intent = AsyncMock(
        return_value=StripePaymentIntentData(id="pi_test", customer="cus_test123")
    )
    provider.create_refund = AsyncMock(
        return_value=StripeRefundData(
            id="re_test",
            amount=1000,
            currency="usd",
            status="succeeded",
            payment_intent="pi_test",
        )
    )
    provider.cancel_subscription_schedule = AsyncMock(
        return_value=StripeSubscriptionScheduleData(id="sub_sched_test", status="canceled")
    )
    provider.health_check = AsyncMock(return_value=True)
    return provider


@pytest.fixture(autouse=True)
def mock_get_payment_provider(mock_payment_provider):
    """Automatically mock get_payment_provider for all unit tests."""
    with patch(
        "packages.billing.services.subscription_service.get_payment_provider",
        return_value=mock_payment_provider,
    ), patch(
        "packages.billing.services.plans_service.get_payment_provider",
        return_value=mock_payment_provider,
    ), patch(
        "packages.billing.services.refund_service.get_payment_provider",
        return_value=mock_payment_provider,
    ), patch(
        "packages.billing.webhooks.stripe_webhook.get_payment_provider",
        return_value=mock_payment_provider,
    ):
        yield


@pytest.fixture
def mock_email_provider():
    """Create a mock email provider that records sent messages."""
    provider = AsyncMock()
    provider.send = AsyncMock(return_value=None)
    return provider


@pytest.fixture(autouse=True)
def mock_get_email_provider(mock_email_provider):
    """Automatically mock get_email_provider for all unit tests."""
    with patch(
        "packages.billing.services.notifications.get_email_provider",
        return_value=mock_email_provider,
    ):
        yield


@pytest.fixture
def make_stripe_subscription(billing_period):
    """Build Stripe subscription snapshots for the shared billing period."""

    def _make(
        price_id="price_premium",
        subscription_id="sub_test123",
        status="active",
        period_start=None,
        period_end=None,
        **overrides,
    ) -> StripeSubscriptionData:
        data = {
            "id": subscription_id,
            "object": "subscription",
            "customer": "cus_test123",
            "status": status,
            "current_period_start": period_start or billing_period[0],
            "current_period_end": period_end or billing_period[1],
            "cancel_at_period_end": False,
            "items": {
                "data": [
                    {
                        "id": "si_test123",
                        "price": {
                            "id": price_id,
                            "product": "prod_test",
                            "currency": "usd",
                            "unit_amount": 3000,
                        },
                        "quantity": 1,
                    }
                ]
            },
        }
        data.update(overrides)
        return StripeSubscriptionData.model_validate(data)

    return _make

