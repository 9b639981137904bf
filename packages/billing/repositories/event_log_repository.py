"""
Repository for the webhook event log.
"""

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span
from packages.billing.models.database.event_log import EventLogEntity
from packages.billing.models.domain.event_log import EventLog, EventLogCreateModel


class EventLogRepository(BaseRepository[EventLogEntity, EventLog]):
    """Append-only store of received Stripe events."""

    def __init__(self):
        super().__init__(EventLogEntity, EventLog)

    @trace_span
    async def append(self, event_type: str, data: dict) -> EventLog:
        return await self.create(EventLogCreateModel(event_type=event_type, data=data))
