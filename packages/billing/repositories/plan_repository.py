"""
Repository for the plan catalog.
"""

from typing import Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.database.plan import PlanEntity
from packages.billing.models.domain.plans import Plan, PlanUpsertModel

logger = get_logger(__name__)


class PlanRepository(BaseRepository[PlanEntity, Plan]):
    """Repository for catalog plans, one per Stripe price."""

    default_order = ("name", False)

    def __init__(self):
        super().__init__(PlanEntity, Plan)

    @trace_span
    async def get_by_stripe_price_id(self, stripe_price_id: str) -> Optional[Plan]:
        return await self._get_one_by(PlanEntity.stripe_price_id, stripe_price_id)

    async def _update_by_price_id(self, upsert_model: PlanUpsertModel) -> None:
        data = upsert_model.model_dump()
        async with self._get_session() as session:
            await session.execute(
                update(PlanEntity)
                .where(PlanEntity.stripe_price_id == upsert_model.stripe_price_id)
                .values(data)
            )
            await session.flush()

    @trace_span
    async def upsert(self, upsert_model: PlanUpsertModel) -> Plan:
        """Insert or update the plan for a Stripe price."""
        existing = await self.get_by_stripe_price_id(upsert_model.stripe_price_id)
        if existing:
            await self._update_by_price_id(upsert_model)
            return await self.get(existing.id)

        try:
            async with self._get_session() as session:
                async with session.begin_nested():
                    session.add(PlanEntity(**upsert_model.model_dump()))
        except IntegrityError:
            # Another delivery inserted the same price first
            logger.info(
                f"Plan insert lost race for {upsert_model.stripe_price_id}, updating",
                extra={"stripe_price_id": upsert_model.stripe_price_id},
            )
            await self._update_by_price_id(upsert_model)

        return await self.get_by_stripe_price_id(upsert_model.stripe_price_id)
