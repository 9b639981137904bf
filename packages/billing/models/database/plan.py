"""
Database entity for catalog plans.
"""

from sqlalchemy import Boolean, Column, DateTime, Numeric, String, Text
from sqlalchemy.sql import func

from common.db.base import Base, generate_uuid


class PlanEntity(Base):
    """
    Catalog plan database entity.

    One row per Stripe price. Rows are never deleted, only deactivated.
    """

    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    name = Column(String(255), nullable=False)
    stripe_product_id = Column(String(255), nullable=False, index=True)
    stripe_price_id = Column(String(255), nullable=False, unique=True, index=True)

    # Major currency units (dollars, not cents)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(10), nullable=False)
    interval = Column(String(20), nullable=True)  # day, week, month, year
    active = Column(Boolean, nullable=False, default=True, server_default="1")
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
