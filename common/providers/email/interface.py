from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field


class EmailAttachment(BaseModel):
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class EmailMessage(BaseModel):
    """A fully composed notification."""

    to: str
    subject: str
    text: str
    html: Optional[str] = None
    attachments: List[EmailAttachment] = Field(default_factory=list)


class EmailProviderInterface(ABC):
    """Interface for notification email delivery."""

    @abstractmethod
    async def send(self, message: EmailMessage) -> None:
        """
        Deliver a message.

        Args:
            message: The composed message, attachments included

        Raises:
            Exception: Delivery failures propagate to the caller
        """
        pass
