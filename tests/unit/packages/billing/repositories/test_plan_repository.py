"""
Unit tests for PlanRepository.

Tests database operations for plans without mocking the database.
"""

import pytest
from decimal import Decimal

from packages.billing.models.domain.plans import PlanUpsertModel
from packages.billing.repositories.plan_repository import PlanRepository


def _upsert_model(price_id="price_pro", name="Pro", amount="25.00", active=True):
    return PlanUpsertModel(
        name=name,
        stripe_product_id="prod_pro",
        stripe_price_id=price_id,
        amount=Decimal(amount),
        currency="usd",
        interval="month",
        active=active,
    )


@pytest.mark.asyncio
class TestPlanRepository:
    """Tests for PlanRepository."""

    async def test_upsert_inserts_new_plan(self):
        repo = PlanRepository()

        plan = await repo.upsert(_upsert_model())

        assert plan.id is not None
        assert plan.stripe_price_id == "price_pro"
        assert plan.amount == Decimal("25.00")
        assert plan.active is True

    async def test_upsert_updates_existing_plan(self):
        repo = PlanRepository()
        first = await repo.upsert(_upsert_model())

        second = await repo.upsert(_upsert_model(name="Pro Plus", amount="27.50", active=False))

        assert second.id == first.id
        assert second.name == "Pro Plus"
        assert second.amount == Decimal("27.50")
        assert second.active is False
        assert await repo.count() == 1

    async def test_get_by_stripe_price_id(self, sample_plan):
        repo = PlanRepository()

        plan = await repo.get_by_stripe_price_id("price_basic")

        assert plan is not None
        assert plan.id == sample_plan.id
        assert await repo.get_by_stripe_price_id("price_missing") is None

    async def test_get_page_orders_by_name(self, sample_plan, premium_plan):
        repo = PlanRepository()
        await repo.upsert(_upsert_model(price_id="price_advanced", name="Advanced"))

        plans, total = await repo.get_page(page=1, limit=2)

        assert total == 3
        assert [plan.name for plan in plans] == ["Advanced", "Basic"]

        plans, _ = await repo.get_page(page=2, limit=2)
        assert [plan.name for plan in plans] == ["Premium"]
