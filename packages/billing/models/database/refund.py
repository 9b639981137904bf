"""
Database entity for the refund ledger.
"""

from sqlalchemy import Column, DateTime, Numeric, String
from sqlalchemy.sql import func

from common.db.base import Base, generate_uuid
from packages.billing.utils.time import utc_now


class RefundEntity(Base):
    """Refund ledger row, keyed by the Stripe refund id."""

    __tablename__ = "refunds"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    stripe_refund_id = Column(String(255), nullable=False, unique=True, index=True)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(10), nullable=False)
    status = Column(String(50), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), index=True
    )
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
