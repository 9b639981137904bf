"""
Repository for subscription management.
"""

from typing import Optional
from sqlalchemy import update

from common.repositories.base import BaseRepository
from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionUpdateModel,
)
from packages.billing.models.domain.enums import SubscriptionStatus
from common.core.otel_axiom_exporter import trace_span


class SubscriptionRepository(BaseRepository[SubscriptionEntity, Subscription]):
    """Repository for customer subscriptions mirrored from Stripe."""

    def __init__(self):
        super().__init__(SubscriptionEntity, Subscription)

    @trace_span
    async def get_by_stripe_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        return await self._get_one_by(
            SubscriptionEntity.stripe_subscription_id, stripe_subscription_id
        )

    @trace_span
    async def find_open_for_customer(self, customer_id: str) -> Optional[Subscription]:
        """
        Get a subscription for the customer that still blocks a new purchase.

        Canceled subscriptions and ones still waiting for their first payment
        do not count.
        """
        async with self._get_session() as session:
            result = await session.execute(
                self._base_query()
                .where(
                    SubscriptionEntity.customer_id == customer_id,
                    SubscriptionEntity.status.notin_(
                        [
                            SubscriptionStatus.CANCELED.value,
                            SubscriptionStatus.INCOMPLETE.value,
                        ]
                    ),
                )
                .order_by(*self._order_clauses())
                .limit(1)
            )
            db_subscription = result.scalar_one_or_none()
            return self._entity_to_domain(db_subscription) if db_subscription else None


    @trace_span
    async def update_if_unchanged(
        self, current: Subscription, update_model: SubscriptionUpdateModel
    ) -> Optional[Subscription]:
        """
        Compare-and-update a subscription row.

        The write only lands if the row still holds the plan pair and period
        end of `current`. Returns None when another writer changed any of
        them first; callers re-read and recompute.
        """
        data = update_model.model_dump(exclude_unset=True)
        async with self._get_session() as session:
            result = await session.execute(
                update(SubscriptionEntity)
                .where(
                    SubscriptionEntity.id == current.id,
                    SubscriptionEntity.plan_id == current.plan_id,
                    SubscriptionEntity.pending_plan_id.is_not_distinct_from(
                        current.pending_plan_id
                    ),
                    SubscriptionEntity.current_period_end.is_not_distinct_from(
                        current.current_period_end
                    ),
                )
                .values(data)
                .execution_options(synchronize_session=False)
            )
            await session.flush()
            if result.rowcount == 0:
                return None
        return await self.get(current.id)
