from common.core.otel_axiom_exporter import get_logger

from .interface import EmailMessage, EmailProviderInterface

logger = get_logger(__name__)


class LogEmailProvider(EmailProviderInterface):
    """Logs messages instead of sending them; used when SMTP is not configured."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(
            f"Email not sent (SMTP not configured): {message.subject}",
            extra={
                "to": message.to,
                "subject": message.subject,
                "attachments": [a.filename for a in message.attachments],
            },
        )
