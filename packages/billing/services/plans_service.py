"""Service for the plan catalog mirrored from Stripe prices."""

from decimal import Decimal
from typing import List, Optional
from fastapi import HTTPException, status

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.models.pagination import Page
from packages.billing.models.domain.enums import IdentifierKind
from packages.billing.models.domain.identifiers import classify_identifier
from packages.billing.models.domain.plans import Plan, PlanUpsertModel
from packages.billing.models.domain.stripe_objects import (
    StripePriceData,
    StripeProductData,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.repositories.plan_repository import PlanRepository

logger = get_logger(__name__)


def plan_fields_from_stripe(
    product: StripeProductData, price: StripePriceData
) -> PlanUpsertModel:
    """Derive the stored plan fields from a Stripe product and price."""
    return PlanUpsertModel(
        name=product.name,
        stripe_product_id=product.id,
        stripe_price_id=price.id,
        amount=Decimal(price.unit_amount or 0) / 100,
        currency=price.currency,
        interval=price.recurring.interval if price.recurring else None,
        active=product.active and price.active,
        description=product.description or None,
    )


class PlansService:
    """Service for catalog reconciliation and plan lookups."""

    def __init__(self, payment: Optional[PaymentProviderInterface] = None):
        self.plan_repo = PlanRepository()
        self.payment = payment or get_payment_provider()

    @trace_span
    async def upsert_from_stripe(
        self, product: StripeProductData, price: StripePriceData
    ) -> Plan:
        """Insert or update the plan for a (product, price) pair. Idempotent."""
        plan = await self.plan_repo.upsert(plan_fields_from_stripe(product, price))

        logger.info(
            f"Synced plan {plan.name} ({price.id})",
            extra={"plan_id": plan.id, "stripe_price_id": price.id, "active": plan.active},
        )
        return plan

    @trace_span
    async def sync_product(self, product: StripeProductData) -> List[Plan]:
        """Upsert a plan for every price of a product."""
        prices = await self.payment.list_prices(product.id, limit=100)
        return [await self.upsert_from_stripe(product, price) for price in prices]

    @trace_span
    async def sync_price(self, price: StripePriceData) -> Plan:
        """Upsert the plan for a price, fetching its product."""
        if isinstance(price.product, StripeProductData):
            product = price.product
        else:
            product = await self.payment.retrieve_product(price.product)
        return await self.upsert_from_stripe(product, price)

    @trace_span
    async def get_by_stripe_price_id(self, stripe_price_id: str) -> Optional[Plan]:
        return await self.plan_repo.get_by_stripe_price_id(stripe_price_id)

    @trace_span
    async def resolve_plan(self, identifier: str) -> Plan:
        """Find a plan by internal id or Stripe price id."""
        if classify_identifier(identifier) == IdentifierKind.INTERNAL:
            plan = await self.plan_repo.get(identifier)
        else:
            plan = await self.plan_repo.get_by_stripe_price_id(identifier)

        if not plan:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found"
            )
        return plan

    @trace_span
    async def list_plans(self, page: int, limit: int) -> Page[Plan]:
        plans, total = await self.plan_repo.get_page(page, limit)
        return Page[Plan](data=plans, total=total, page=page, limit=limit)
