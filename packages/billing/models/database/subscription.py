"""
Database entity for subscriptions.
"""

from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from common.db.base import Base, generate_uuid
from packages.billing.utils.time import utc_now


class SubscriptionEntity(Base):
    """
    Customer subscription database entity.

    Mirrors a Stripe subscription. `pending_plan_id` is only set while a
    downgrade is scheduled for the next billing period.
    """

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # Assigned once on first sync, never changed
    stripe_subscription_id = Column(
        String(255), nullable=False, unique=True, index=True
    )
    customer_id = Column(String(255), nullable=False, index=True)

    plan_id = Column(String(36), ForeignKey("plans.id"), nullable=False, index=True)
    pending_plan_id = Column(String(36), ForeignKey("plans.id"), nullable=True)

    # Opaque Stripe status: incomplete, active, past_due, canceled, unpaid, ...
    status = Column(String(50), nullable=False, index=True)

    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(
        Boolean, nullable=False, default=False, server_default="0"
    )
    canceled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), index=True
    )
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    plan = relationship("PlanEntity", foreign_keys=[plan_id], lazy="selectin")
    pending_plan = relationship(
        "PlanEntity", foreign_keys=[pending_plan_id], lazy="selectin"
    )

    __table_args__ = (Index("idx_subscription_customer_status", "customer_id", "status"),)
