import asyncio
import smtplib
import ssl
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger, trace_span

from .interface import EmailMessage, EmailProviderInterface

logger = get_logger(__name__)


def build_mime_message(message: EmailMessage, sender: str) -> MIMEMultipart:
    """Assemble a multipart message with text/html bodies and attachments."""
    mime = MIMEMultipart("mixed")
    mime["Subject"] = message.subject
    mime["From"] = sender
    mime["To"] = message.to

    body = MIMEMultipart("alternative")
    body.attach(MIMEText(message.text, "plain", "utf-8"))
    if message.html:
        body.attach(MIMEText(message.html, "html", "utf-8"))
    mime.attach(body)

    for attachment in message.attachments:
        _, _, subtype = attachment.content_type.partition("/")
        part = MIMEApplication(attachment.content, _subtype=subtype or "octet-stream")
        part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
        mime.attach(part)

    return mime


class SmtpEmailProvider(EmailProviderInterface):
    """SMTP delivery; the blocking smtplib session runs in the default executor."""

    def __init__(self):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.sender = settings.email_from_address

    def _send_sync(self, message: EmailMessage) -> None:
        mime = build_mime_message(message, self.sender)
        context = ssl.create_default_context()
        timeout = settings.smtp_timeout_seconds

        if settings.smtp_use_ssl:
            server = smtplib.SMTP_SSL(
                self.host, self.port, context=context, timeout=timeout
            )
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=timeout)

        with server:
            if settings.smtp_use_tls and not settings.smtp_use_ssl:
                server.starttls(context=context)
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.sendmail(self.sender, [message.to], mime.as_string())

    @trace_span
    async def send(self, message: EmailMessage) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                f"Failed to send email: {str(e)}",
                extra={"to": message.to, "subject": message.subject, "error": str(e)},
            )
            raise

        logger.info(
            "Sent email",
            extra={"to": message.to, "subject": message.subject},
        )
