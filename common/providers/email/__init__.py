from .factory import get_email_provider
from .interface import EmailAttachment, EmailMessage, EmailProviderInterface

__all__ = [
    "get_email_provider",
    "EmailAttachment",
    "EmailMessage",
    "EmailProviderInterface",
]
