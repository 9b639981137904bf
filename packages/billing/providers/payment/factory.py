"""
Factory for getting payment provider instance.
"""

from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.providers.payment.stripe_payment import StripePaymentProvider


def get_payment_provider() -> PaymentProviderInterface:
    """
    Get payment provider instance based on configuration.

    Only Stripe is supported; services depend on the interface so tests can
    substitute a mock here.

    Returns:
        PaymentProviderInterface: Configured payment provider
    """
    return StripePaymentProvider()
