"""
Interface for payment providers.

Abstracts payment processing away from specific platforms (Stripe, PayPal, etc.)
Amounts crossing this interface are in minor units, as the processor reports them.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from packages.billing.models.domain.stripe_objects import (
    StripeChargeData,
    StripeCheckoutSessionData,
    StripeCustomerData,
    StripeInvoiceData,
    StripePaymentIntentData,
    StripePaymentMethodData,
    StripePriceData,
    StripeProductData,
    StripeRefundData,
    StripeSubscriptionData,
    StripeSubscriptionScheduleData,
)


class PaymentProviderInterface(ABC):
    """Abstract interface for payment providers."""

    # Subscriptions

    @abstractmethod
    async def retrieve_subscription(
        self, subscription_id: str, expand: Optional[List[str]] = None
    ) -> StripeSubscriptionData:
        """
        Fetch a subscription.

        Args:
            subscription_id: Payment provider subscription ID
            expand: Nested fields to expand

        Returns:
            The subscription snapshot
        """
        pass

    @abstractmethod
    async def create_subscription(
        self, customer_id: str, price_id: str
    ) -> StripeSubscriptionData:
        """
        Start an incomplete subscription awaiting its first payment.

        The latest invoice and its payment intent come back expanded so the
        caller can hand the client secret to the frontend.
        """
        pass

    @abstractmethod
    async def change_subscription_price(
        self, subscription_id: str, item_id: str, price_id: str
    ) -> StripeSubscriptionData:
        """
        Swap the price of a subscription item now, creating prorations and
        keeping the billing cycle anchor.
        """
        pass

    # Subscription schedules

    @abstractmethod
    async def create_subscription_schedule(
        self, subscription_id: str
    ) -> StripeSubscriptionScheduleData:
        """Create a schedule that takes over an existing subscription."""
        pass

    @abstractmethod
    async def update_subscription_schedule(
        self,
        schedule_id: str,
        phases: List[Dict[str, Any]],
        end_behavior: str = "release",
    ) -> StripeSubscriptionScheduleData:
        """Replace the phases of a schedule."""
        pass

    @abstractmethod
    async def cancel_subscription_schedule(
        self, schedule_id: str
    ) -> StripeSubscriptionScheduleData:
        pass

    # Customers and payment methods

    @abstractmethod
    async def find_customer_by_email(self, email: str) -> Optional[StripeCustomerData]:
        pass

    @abstractmethod
    async def create_customer(self, name: str, email: str) -> StripeCustomerData:
        """
        Create a customer in the payment provider.

        Args:
            name: Customer display name
            email: Customer email

        Returns:
            The created customer
        """
        pass

    @abstractmethod
    async def retrieve_customer(self, customer_id: str) -> StripeCustomerData:
        pass

    @abstractmethod
    async def set_default_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> StripeCustomerData:
        pass

    @abstractmethod
    async def create_card_payment_method(self, token: str) -> StripePaymentMethodData:
        pass

    @abstractmethod
    async def attach_payment_method(
        self, payment_method_id: str, customer_id: str
    ) -> StripePaymentMethodData:
        pass

    # Catalog

    @abstractmethod
    async def list_prices(self, product_id: str, limit: int = 100) -> List[StripePriceData]:
        pass

    @abstractmethod
    async def retrieve_product(self, product_id: str) -> StripeProductData:
        pass

    # Invoices and charges

    @abstractmethod
    async def list_invoices(
        self,
        subscription_id: str,
        status: Optional[str] = None,
        limit: int = 10,
    ) -> List[StripeInvoiceData]:
        pass

    @abstractmethod
    async def retrieve_invoice(self, invoice_id: str) -> StripeInvoiceData:
        pass

    @abstractmethod
    async def finalize_invoice(self, invoice_id: str) -> StripeInvoiceData:
        pass

    @abstractmethod
    async def pay_invoice(self, invoice_id: str) -> StripeInvoiceData:
        pass

    @abstractmethod
    async def retrieve_charge(self, charge_id: str) -> StripeChargeData:
        """Fetch a charge with its refunds expanded."""
        pass

    # Refunds and payments

    @abstractmethod
    async def create_refund(
        self, payment_intent_id: str, amount: Optional[int] = None
    ) -> StripeRefundData:
        """
        Refund a payment.

        Args:
            payment_intent_id: Payment intent to refund
            amount: Minor units to refund; None refunds the full payment

        Returns:
            The refund as created
        """
        pass

    @abstractmethod
    async def list_refunds(self, limit: int = 100) -> List[StripeRefundData]:
        pass

    @abstractmethod
    async def retrieve_payment_intent(
        self, payment_intent_id: str, expand: Optional[List[str]] = None
    ) -> StripePaymentIntentData:
        pass

    # Checkout

    @abstractmethod
    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> StripeCheckoutSessionData:
        """
        Create a checkout session for subscription payment.

        Args:
            customer_id: Payment provider customer ID
            price_id: Price to subscribe to
            success_url: URL to redirect on success
            cancel_url: URL to redirect on cancel

        Returns:
            The checkout session, including its hosted URL
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the payment backend is available and healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass
