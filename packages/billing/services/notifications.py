"""
Best-effort customer notifications for billing events.

Nothing here may fail a billing workflow: lookup, download and delivery
errors are logged and swallowed.
"""

from typing import List, Optional, Union

import httpx
from pydantic import ValidationError

from common.core.exceptions import PaymentProviderError
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.providers.email.factory import get_email_provider
from common.providers.email.interface import EmailAttachment, EmailMessage
from packages.billing.models.domain.stripe_objects import StripeInvoiceData
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.utils.invoice_documents import fetch_invoice_pdf

logger = get_logger(__name__)

INVOICE_ATTACHMENT_FILENAME = "invoice.pdf"


class BillingNotifier:
    """Composes and sends billing emails with invoice PDFs attached."""

    def __init__(self, payment: PaymentProviderInterface):
        self.payment = payment
        self.email = get_email_provider()

    @trace_span
    async def customer_email(self, customer_id: Optional[str]) -> Optional[str]:
        if not customer_id:
            return None
        try:
            customer = await self.payment.retrieve_customer(customer_id)
        except PaymentProviderError as e:
            logger.warning(
                f"Could not look up customer email: {e.message}",
                extra={"customer_id": customer_id},
            )
            return None
        return customer.email

    @trace_span
    async def fetch_invoice_attachments(
        self, invoice: Union[str, StripeInvoiceData, None]
    ) -> List[EmailAttachment]:
        """Return the invoice PDF as an attachment, or nothing if unavailable."""
        if invoice is None:
            return []
        try:
            if isinstance(invoice, str):
                invoice = await self.payment.retrieve_invoice(invoice)
            if not invoice.invoice_pdf:
                return []
            content = await fetch_invoice_pdf(invoice.invoice_pdf)
        except (
            PaymentProviderError,
            httpx.HTTPError,
            httpx.InvalidURL,
            ValidationError,
        ) as e:
            logger.warning(
                f"Failed to fetch invoice PDF: {str(e)}",
                extra={"error": str(e)},
            )
            return []

        return [
            EmailAttachment(
                filename=INVOICE_ATTACHMENT_FILENAME,
                content=content,
                content_type="application/pdf",
            )
        ]

    @trace_span
    async def notify(
        self,
        to: Optional[str],
        subject: str,
        text: str,
        html: Optional[str] = None,
        attachments: Optional[List[EmailAttachment]] = None,
    ) -> bool:
        """Send an email; returns whether it went out."""
        if not to:
            logger.info(f"No recipient for '{subject}' email, skipping")
            return False

        message = EmailMessage(
            to=to,
            subject=subject,
            text=text,
            html=html,
            attachments=attachments or [],
        )
        try:
            await self.email.send(message)
        except Exception as e:
            logger.warning(
                f"Failed to send '{subject}' email: {str(e)}",
                extra={"to": to, "error": str(e)},
            )
            return False
        return True

    async def notify_customer(
        self,
        customer_id: Optional[str],
        subject: str,
        text: str,
        html: Optional[str] = None,
        attachments: Optional[List[EmailAttachment]] = None,
    ) -> bool:
        email = await self.customer_email(customer_id)
        return await self.notify(email, subject, text, html, attachments)
