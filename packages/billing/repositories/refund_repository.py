"""
Repository for the refund ledger.
"""

from typing import Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.database.refund import RefundEntity
from packages.billing.models.domain.refund import Refund, RefundUpsertModel

logger = get_logger(__name__)


class RefundRepository(BaseRepository[RefundEntity, Refund]):
    """Repository for refunds keyed by Stripe refund id."""

    def __init__(self):
        super().__init__(RefundEntity, Refund)

    @trace_span
    async def get_by_stripe_refund_id(self, stripe_refund_id: str) -> Optional[Refund]:
        return await self._get_one_by(RefundEntity.stripe_refund_id, stripe_refund_id)

    async def _update_by_refund_id(self, upsert_model: RefundUpsertModel) -> None:
        data = upsert_model.model_dump(exclude={"stripe_refund_id"})
        async with self._get_session() as session:
            await session.execute(
                update(RefundEntity)
                .where(RefundEntity.stripe_refund_id == upsert_model.stripe_refund_id)
                .values(data)
            )
            await session.flush()

    @trace_span
    async def upsert(self, upsert_model: RefundUpsertModel) -> Refund:
        """Insert a refund or update the existing row with the same Stripe id."""
        existing = await self.get_by_stripe_refund_id(upsert_model.stripe_refund_id)
        if existing:
            await self._update_by_refund_id(upsert_model)
            return await self.get(existing.id)

        try:
            async with self._get_session() as session:
                async with session.begin_nested():
                    session.add(RefundEntity(**upsert_model.model_dump()))
        except IntegrityError:
            logger.info(
                f"Refund insert lost race for {upsert_model.stripe_refund_id}, updating",
                extra={"stripe_refund_id": upsert_model.stripe_refund_id},
            )
            await self._update_by_refund_id(upsert_model)

        return await self.get_by_stripe_refund_id(upsert_model.stripe_refund_id)
