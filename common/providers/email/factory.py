from typing import Optional

from common.core.config import settings
from common.core.constants import EmailProvider
from common.core.otel_axiom_exporter import get_logger

from .interface import EmailProviderInterface
from .log_email import LogEmailProvider
from .smtp_email import SmtpEmailProvider

logger = get_logger(__name__)

# Global instance
_email_provider: Optional[EmailProviderInterface] = None


def get_email_provider() -> EmailProviderInterface:
    """
    Get the configured email provider.

    SMTP when a host is configured, otherwise messages are only logged.

    Returns:
        EmailProviderInterface: The email provider instance
    """
    global _email_provider

    if _email_provider is None:
        if settings.email_provider == EmailProvider.SMTP:
            _email_provider = SmtpEmailProvider()
        else:
            _email_provider = LogEmailProvider()
        logger.info(f"Initialized {settings.email_provider.value} email provider")

    return _email_provider
