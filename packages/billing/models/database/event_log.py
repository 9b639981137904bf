"""
Database entity for received webhook events.
"""

from sqlalchemy import Column, DateTime, JSON, String
from sqlalchemy.sql import func

from common.db.base import Base, generate_uuid
from packages.billing.utils.time import utc_now


class EventLogEntity(Base):
    """
    Append-only log of every Stripe event received.

    No dedup at this level; handlers dedup through their own unique ids.
    """

    __tablename__ = "event_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    event_type = Column(String(255), nullable=False, index=True)
    data = Column(JSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), index=True
    )
