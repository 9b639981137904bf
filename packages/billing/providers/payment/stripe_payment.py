"""
Stripe implementation of payment provider.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar
import stripe
from pydantic import BaseModel

from common.core.config import settings
from common.core.exceptions import PaymentProviderError
from common.core.otel_axiom_exporter import trace_span, get_logger
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
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=BaseModel)


def _to_model(model: Type[ModelType], obj: Any) -> ModelType:
    """Validate a Stripe SDK object into one of our typed models."""
    data = obj.to_dict() if hasattr(obj, "to_dict") else obj
    return model.model_validate(data)


def _to_models(model: Type[ModelType], listing: Any) -> List[ModelType]:
    return [_to_model(model, item) for item in listing.data]


@contextmanager
def _stripe_errors(action: str, **extra: Any) -> Iterator[None]:
    """Log Stripe failures and re-raise them as PaymentProviderError."""
    try:
        yield
    except stripe.StripeError as e:
        logger.error(
            f"Failed to {action}: {str(e)}",
            extra={**extra, "error": str(e), "code": e.code, "status": e.http_status},
        )
        raise PaymentProviderError(
            str(e.user_message or e), status_code=e.http_status, code=e.code
        ) from e


class StripePaymentProvider(PaymentProviderInterface):
    """Stripe-based payment implementation."""

    def __init__(self):
        """Initialize Stripe with API credentials."""
        stripe.api_key = settings.stripe_secret_key
        stripe.api_version = settings.stripe_api_version
        stripe.max_network_retries = settings.stripe_max_network_retries
        stripe.default_http_client = stripe.RequestsClient(
            timeout=settings.stripe_timeout_seconds
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    @trace_span
    async def retrieve_subscription(
        self, subscription_id: str, expand: Optional[List[str]] = None
    ) -> StripeSubscriptionData:
        with _stripe_errors("retrieve subscription", subscription_id=subscription_id):
            subscription = stripe.Subscription.retrieve(
                subscription_id, expand=expand or []
            )
        return _to_model(StripeSubscriptionData, subscription)

    @trace_span
    async def create_subscription(
        self, customer_id: str, price_id: str
    ) -> StripeSubscriptionData:
        with _stripe_errors(
            "create subscription", customer_id=customer_id, price_id=price_id
        ):
            subscription = stripe.Subscription.create(
                customer=customer_id,
                items=[{"price": price_id}],
                payment_behavior="default_incomplete",
                expand=["latest_invoice", "latest_invoice.payment_intent"],
            )

        logger.info(
            "Created Stripe subscription",
            extra={"customer_id": customer_id, "subscription_id": subscription.id},
        )
        return _to_model(StripeSubscriptionData, subscription)

    @trace_span
    async def change_subscription_price(
        self, subscription_id: str, item_id: str, price_id: str
    ) -> StripeSubscriptionData:
        with _stripe_errors(
            "update subscription price",
            subscription_id=subscription_id,
            price_id=price_id,
        ):
            subscription = stripe.Subscription.modify(
                subscription_id,
                items=[{"id": item_id, "price": price_id}],
                proration_behavior="create_prorations",
                billing_cycle_anchor="unchanged",
                payment_behavior="pending_if_incomplete",
            )

        logger.info(
            f"Updated Stripe subscription to price {price_id}",
            extra={"subscription_id": subscription_id, "price_id": price_id},
        )
        return _to_model(StripeSubscriptionData, subscription)

    # ------------------------------------------------------------------
    # Subscription schedules
    # ------------------------------------------------------------------

    @trace_span
    async def create_subscription_schedule(
        self, subscription_id: str
    ) -> StripeSubscriptionScheduleData:
        with _stripe_errors(
            "create subscription schedule", subscription_id=subscription_id
        ):
            schedule = stripe.SubscriptionSchedule.create(
                from_subscription=subscription_id
            )
        return _to_model(StripeSubscriptionScheduleData, schedule)

    @trace_span
    async def update_subscription_schedule(
        self,
        schedule_id: str,
        phases: List[Dict[str, Any]],
        end_behavior: str = "release",
    ) -> StripeSubscriptionScheduleData:
        with _stripe_errors("update subscription schedule", schedule_id=schedule_id):
            schedule = stripe.SubscriptionSchedule.modify(
                schedule_id, end_behavior=end_behavior, phases=phases
            )
        return _to_model(StripeSubscriptionScheduleData, schedule)

    @trace_span
    async def cancel_subscription_schedule(
        self, schedule_id: str
    ) -> StripeSubscriptionScheduleData:
        with _stripe_errors("cancel subscription schedule", schedule_id=schedule_id):
            schedule = stripe.SubscriptionSchedule.cancel(schedule_id)

        logger.info(
            "Cancelled Stripe subscription schedule",
            extra={"schedule_id": schedule_id},
        )
        return _to_model(StripeSubscriptionScheduleData, schedule)

    # ------------------------------------------------------------------
    # Customers and payment methods
    # ------------------------------------------------------------------

    @trace_span
    async def find_customer_by_email(self, email: str) -> Optional[StripeCustomerData]:
        with _stripe_errors("list customers", email=email):
            customers = stripe.Customer.list(email=email, limit=1)
        matches = _to_models(StripeCustomerData, customers)
        return matches[0] if matches else None

    @trace_span
    async def create_customer(self, name: str, email: str) -> StripeCustomerData:
        """Create a Stripe customer."""
        with _stripe_errors("create Stripe customer", email=email):
            customer = stripe.Customer.create(name=name, email=email)

        logger.info("Created Stripe customer", extra={"customer_id": customer.id})
        return _to_model(StripeCustomerData, customer)

    @trace_span
    async def retrieve_customer(self, customer_id: str) -> StripeCustomerData:
        with _stripe_errors("retrieve customer", customer_id=customer_id):
            customer = stripe.Customer.retrieve(customer_id)
        return _to_model(StripeCustomerData, customer)

    @trace_span
    async def set_default_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> StripeCustomerData:
        with _stripe_errors("set default payment method", customer_id=customer_id):
            customer = stripe.Customer.modify(
                customer_id,
                invoice_settings={"default_payment_method": payment_method_id},
            )
        return _to_model(StripeCustomerData, customer)

    @trace_span
    async def create_card_payment_method(self, token: str) -> StripePaymentMethodData:
        with _stripe_errors("create payment method"):
            payment_method = stripe.PaymentMethod.create(
                type="card", card={"token": token}
            )
        return _to_model(StripePaymentMethodData, payment_method)

    @trace_span
    async def attach_payment_method(
        self, payment_method_id: str, customer_id: str
    ) -> StripePaymentMethodData:
        with _stripe_errors(
            "attach payment method",
            payment_method_id=payment_method_id,
            customer_id=customer_id,
        ):
            payment_method = stripe.PaymentMethod.attach(
                payment_method_id, customer=customer_id
            )
        return _to_model(StripePaymentMethodData, payment_method)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @trace_span
    async def list_prices(self, product_id: str, limit: int = 100) -> List[StripePriceData]:
        with _stripe_errors("list prices", product_id=product_id):
            prices = stripe.Price.list(product=product_id, limit=limit)
        return _to_models(StripePriceData, prices)

    @trace_span
    async def retrieve_product(self, product_id: str) -> StripeProductData:
        with _stripe_errors("retrieve product", product_id=product_id):
            product = stripe.Product.retrieve(product_id)
        return _to_model(StripeProductData, product)

    # ------------------------------------------------------------------
    # Invoices and charges
    # ------------------------------------------------------------------

    @trace_span
    async def list_invoices(
        self,
        subscription_id: str,
        status: Optional[str] = None,
        limit: int = 10,
    ) -> List[StripeInvoiceData]:
        params: Dict[str, Any] = {"subscription": subscription_id, "limit": limit}
        if status:
            params["status"] = status
        with _stripe_errors("list invoices", subscription_id=subscription_id):
            invoices = stripe.Invoice.list(**params)
        return _to_models(StripeInvoiceData, invoices)

    @trace_span
    async def retrieve_invoice(self, invoice_id: str) -> StripeInvoiceData:
        with _stripe_errors("retrieve invoice", invoice_id=invoice_id):
            invoice = stripe.Invoice.retrieve(invoice_id)
        return _to_model(StripeInvoiceData, invoice)

    @trace_span
    async def finalize_invoice(self, invoice_id: str) -> StripeInvoiceData:
        with _stripe_errors("finalize invoice", invoice_id=invoice_id):
            invoice = stripe.Invoice.finalize_invoice(invoice_id)
        return _to_model(StripeInvoiceData, invoice)

    @trace_span
    async def pay_invoice(self, invoice_id: str) -> StripeInvoiceData:
        with _stripe_errors("pay invoice", invoice_id=invoice_id):
            invoice = stripe.Invoice.pay(invoice_id)

        logger.info("Paid Stripe invoice", extra={"invoice_id": invoice_id})
        return _to_model(StripeInvoiceData, invoice)

    @trace_span
    async def retrieve_charge(self, charge_id: str) -> StripeChargeData:
        with _stripe_errors("retrieve charge", charge_id=charge_id):
            charge = stripe.Charge.retrieve(charge_id, expand=["refunds"])
        return _to_model(StripeChargeData, charge)

    # ------------------------------------------------------------------
    # Refunds and payments
    # ------------------------------------------------------------------

    @trace_span
    async def create_refund(
        self, payment_intent_id: str, amount: Optional[int] = None
    ) -> StripeRefundData:
        params: Dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount is not None:
            params["amount"] = amount
        with _stripe_errors(
            "create refund", payment_intent_id=payment_intent_id, amount=amount
        ):
            refund = stripe.Refund.create(**params)

        logger.info(
            "Created Stripe refund",
            extra={"refund_id": refund.id, "payment_intent_id": payment_intent_id},
        )
        return _to_model(StripeRefundData, refund)

    @trace_span
    async def list_refunds(self, limit: int = 100) -> List[StripeRefundData]:
        with _stripe_errors("list refunds"):
            refunds = stripe.Refund.list(limit=limit)
        return _to_models(StripeRefundData, refunds)

    @trace_span
    async def retrieve_payment_intent(
        self, payment_intent_id: str, expand: Optional[List[str]] = None
    ) -> StripePaymentIntentData:
        with _stripe_errors(
            "retrieve payment intent", payment_intent_id=payment_intent_id
        ):
            payment_intent = stripe.PaymentIntent.retrieve(
                payment_intent_id, expand=expand or []
            )
        return _to_model(StripePaymentIntentData, payment_intent)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    @trace_span
    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> StripeCheckoutSessionData:
        """Create Stripe checkout session."""
        with _stripe_errors(
            "create checkout session", customer_id=customer_id, price_id=price_id
        ):
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
            )

        logger.info(
            "Created Stripe checkout session",
            extra={"customer_id": customer_id, "session_id": session.id},
        )
        return _to_model(StripeCheckoutSessionData, session)

    @trace_span
    async def health_check(self) -> bool:
        """Check Stripe health."""
        try:
            # Try to retrieve account to verify API key works
            stripe.Account.retrieve()
            return True
        except stripe.StripeError as e:
            logger.error(f"Payment health check failed: {e}")
            return False
