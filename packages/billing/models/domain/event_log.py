"""Domain models for the webhook event log."""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel


class EventLog(BaseModel):
    id: str
    event_type: str
    data: Optional[Any] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventLogCreateModel(BaseModel):
    event_type: str
    data: Optional[Any] = None
