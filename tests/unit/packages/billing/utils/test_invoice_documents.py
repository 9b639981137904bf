"""Unit tests for invoice PDF downloads."""

import httpx
import pytest
from unittest.mock import patch

from packages.billing.utils.invoice_documents import fetch_invoice_pdf

PDF_URL = "https://pay.stripe.com/invoice/acct_1/in_1/pdf"

_real_async_client = httpx.AsyncClient


def _client_with(handler):
    def factory(**kwargs):
        return _real_async_client(transport=httpx.MockTransport(handler), **kwargs)

    return factory


class TestFetchInvoicePdf:
    @pytest.mark.asyncio
    async def test_follows_redirect_to_pdf(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/pdf"):
                return httpx.Response(302, headers={"location": "https://files.stripe.com/in_1.pdf"})
            return httpx.Response(200, content=b"%PDF-1.4")

        with patch("httpx.AsyncClient", _client_with(handler)):
            content = await fetch_invoice_pdf(PDF_URL)

        assert content == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        with patch(
            "httpx.AsyncClient", _client_with(lambda request: httpx.Response(404))
        ):
            with pytest.raises(httpx.HTTPStatusError):
                await fetch_invoice_pdf(PDF_URL)
