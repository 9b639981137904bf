"""
Unit tests for SubscriptionRepository.

Tests database operations for subscriptions without mocking the database.
"""

import pytest
from datetime import datetime, timezone

from packages.billing.models.domain.enums import SubscriptionStatus
from packages.billing.models.domain.subscription import (
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.repositories.subscription_repository import SubscriptionRepository


@pytest.mark.asyncio
class TestSubscriptionRepository:
    """Tests for SubscriptionRepository."""

    async def test_create_embeds_plan(self, sample_plan):
        repo = SubscriptionRepository()

        subscription = await repo.create(
            SubscriptionCreateModel(
                stripe_subscription_id="sub_new",
                customer_id="cus_new",
                plan_id=sample_plan.id,
                status=SubscriptionStatus.ACTIVE.value,
                current_period_end=datetime(2026, 4, 1, tzinfo=timezone.utc),
            )
        )

        assert subscription.plan.id == sample_plan.id
        assert subscription.plan.name == "Basic"
        assert subscription.pending_plan is None
        assert subscription.current_period_end == datetime(2026, 4, 1, tzinfo=timezone.utc)
        assert subscription.cancel_at_period_end is False

    async def test_get_by_stripe_id(self, sample_subscription):
        repo = SubscriptionRepository()

        subscription = await repo.get_by_stripe_id("sub_test123")

        assert subscription is not None
        assert subscription.id == sample_subscription.id
        assert subscription.current_period_end.tzinfo is not None
        assert await repo.get_by_stripe_id("sub_missing") is None

    async def test_update_sets_and_clears_pending_plan(
        self, sample_subscription, sample_plan
    ):
        repo = SubscriptionRepository()

        scheduled = await repo.update(
            sample_subscription.id, SubscriptionUpdateModel(pending_plan_id=sample_plan.id)
        )
        assert scheduled.pending_plan.name == "Basic"

        cleared = await repo.update(
            sample_subscription.id, SubscriptionUpdateModel(pending_plan_id=None)
        )
        assert cleared.pending_plan_id is None
        assert cleared.pending_plan is None
        assert cleared.plan_id == sample_subscription.plan_id

    async def test_update_without_fields_returns_current(self, sample_subscription):
        repo = SubscriptionRepository()

        subscription = await repo.update(sample_subscription.id, SubscriptionUpdateModel())

        assert subscription.status == SubscriptionStatus.ACTIVE.value

    async def test_find_open_for_customer_ignores_canceled_and_incomplete(
        self, sample_subscription, sample_plan
    ):
        repo = SubscriptionRepository()
        await repo.create(
            SubscriptionCreateModel(
                stripe_subscription_id="sub_incomplete",
                customer_id="cus_other",
                plan_id=sample_plan.id,
                status=SubscriptionStatus.INCOMPLETE.value,
            )
        )

        assert await repo.find_open_for_customer("cus_other") is None
        open_subscription = await repo.find_open_for_customer("cus_test123")
        assert open_subscription.id == sample_subscription.id

        await repo.update(
            sample_subscription.id,
            SubscriptionUpdateModel(status=SubscriptionStatus.CANCELED),
        )
        assert await repo.find_open_for_customer("cus_test123") is None

    async def test_update_if_unchanged_writes_when_row_matches(
        self, sample_subscription, sample_plan
    ):
        repo = SubscriptionRepository()
        current = await repo.get(sample_subscription.id)

        updated = await repo.update_if_unchanged(
            current, SubscriptionUpdateModel(pending_plan_id=sample_plan.id)
        )

        assert updated is not None
        assert updated.pending_plan_id == sample_plan.id
        assert updated.plan_id == current.plan_id

    async def test_update_if_unchanged_skips_when_period_moved(
        self, sample_subscription, sample_plan
    ):
        repo = SubscriptionRepository()
        read_before = await repo.get(sample_subscription.id)
        await repo.update(
            sample_subscription.id,
            SubscriptionUpdateModel(
                plan_id=sample_plan.id,
                current_period_end=datetime(2026, 5, 1, tzinfo=timezone.utc),
            ),
        )

        result = await repo.update_if_unchanged(
            read_before, SubscriptionUpdateModel(plan_id=read_before.plan_id)
        )

        assert result is None
        stored = await repo.get(sample_subscription.id)
        assert stored.plan_id == sample_plan.id
        assert stored.current_period_end == datetime(2026, 5, 1, tzinfo=timezone.utc)

    async def test_update_if_unchanged_skips_when_pending_plan_changed(
        self, sample_subscription, sample_plan
    ):
        repo = SubscriptionRepository()
        read_before = await repo.get(sample_subscription.id)
        await repo.update(
            sample_subscription.id,
            SubscriptionUpdateModel(pending_plan_id=sample_plan.id),
        )

        result = await repo.update_if_unchanged(
            read_before, SubscriptionUpdateModel(status=SubscriptionStatus.CANCELED)
        )

        assert result is None
        stored = await repo.get(sample_subscription.id)
        assert stored.pending_plan_id == sample_plan.id
        assert stored.status == SubscriptionStatus.ACTIVE.value

    async def test_get_page_newest_first(self, sample_subscription, sample_plan):
        repo = SubscriptionRepository()
        newer = await repo.create(
            SubscriptionCreateModel(
                stripe_subscription_id="sub_newer",
                customer_id="cus_newer",
                plan_id=sample_plan.id,
                status=SubscriptionStatus.ACTIVE.value,
            )
        )

        subscriptions, total = await repo.get_page(page=1, limit=10)

        assert total == 2
        assert [sub.id for sub in subscriptions] == [newer.id, sample_subscription.id]
