"""Download of Stripe-hosted invoice PDFs for email attachments."""

import httpx

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)


async def fetch_invoice_pdf(url: str) -> bytes:
    """
    Fetch an invoice PDF.

    Raises:
        httpx.HTTPError: On timeouts, transport errors or non-2xx responses
    """
    logger.info(f"Downloading invoice PDF from {url}")

    async with httpx.AsyncClient(timeout=settings.invoice_fetch_timeout_seconds) as client:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
        content = response.content

    logger.info(f"Downloaded {len(content)} bytes from {url}")
    return content
