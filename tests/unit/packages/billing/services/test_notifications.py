"""Unit tests for BillingNotifier."""

import httpx
import pytest
from unittest.mock import AsyncMock, patch

from common.core.exceptions import PaymentProviderError
from packages.billing.models.domain.stripe_objects import StripeInvoiceData
from packages.billing.services.notifications import BillingNotifier


@pytest.fixture
def notifier(mock_payment_provider):
    return BillingNotifier(mock_payment_provider)


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestBillingNotifier:
    @pytest.mark.asyncio
    async def test_invoice_id_is_resolved_and_attached(
        self, mock_start_span, notifier, mock_payment_provider
    ):
        mock_payment_provider.retrieve_invoice = AsyncMock(
            return_value=StripeInvoiceData(id="in_1", invoice_pdf="https://pay.stripe.com/in_1.pdf")
        )

        with patch(
            "packages.billing.services.notifications.fetch_invoice_pdf",
            AsyncMock(return_value=b"%PDF"),
        ) as fetch:
            attachments = await notifier.fetch_invoice_attachments("in_1")

        fetch.assert_called_once_with("https://pay.stripe.com/in_1.pdf")
        assert len(attachments) == 1
        assert attachments[0].filename == "invoice.pdf"
        assert attachments[0].content_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_download_failure_yields_no_attachment(self, mock_start_span, notifier):
        invoice = StripeInvoiceData(id="in_1", invoice_pdf="https://pay.stripe.com/in_1.pdf")

        with patch(
            "packages.billing.services.notifications.fetch_invoice_pdf",
            AsyncMock(side_effect=httpx.ConnectTimeout("timed out")),
        ):
            attachments = await notifier.fetch_invoice_attachments(invoice)

        assert attachments == []

    @pytest.mark.asyncio
    async def test_invoice_lookup_failure_yields_no_attachment(
        self, mock_start_span, notifier, mock_payment_provider
    ):
        mock_payment_provider.retrieve_invoice = AsyncMock(
            side_effect=PaymentProviderError("No such invoice", status_code=404)
        )

        assert await notifier.fetch_invoice_attachments("in_missing") == []

    @pytest.mark.asyncio
    async def test_malformed_pdf_url_yields_no_attachment(self, mock_start_span, notifier):
        invoice = StripeInvoiceData(id="in_1", invoice_pdf="http://[not-a-host/in_1.pdf")

        with patch(
            "packages.billing.services.notifications.fetch_invoice_pdf",
            AsyncMock(side_effect=httpx.InvalidURL("Invalid IPv6 URL")),
        ):
            attachments = await notifier.fetch_invoice_attachments(invoice)

        assert attachments == []

    @pytest.mark.asyncio
    async def test_unexpected_invoice_shape_yields_no_attachment(
        self, mock_start_span, notifier, mock_payment_provider
    ):
        async def retrieve_malformed_invoice(invoice_id):
            return StripeInvoiceData.model_validate({"object": "invoice"})

        mock_payment_provider.retrieve_invoice = AsyncMock(
            side_effect=retrieve_malformed_invoice
        )

        assert await notifier.fetch_invoice_attachments("in_broken") == []

    @pytest.mark.asyncio
    async def test_invoice_without_pdf(self, mock_start_span, notifier):
        assert await notifier.fetch_invoice_attachments(StripeInvoiceData(id="in_1")) == []
        assert await notifier.fetch_invoice_attachments(None) == []

    @pytest.mark.asyncio
    async def test_customer_lookup_failure_skips_email(
        self, mock_start_span, notifier, mock_payment_provider, mock_email_provider
    ):
        mock_payment_provider.retrieve_customer = AsyncMock(
            side_effect=PaymentProviderError("No such customer", status_code=404)
        )

        sent = await notifier.notify_customer("cus_missing", "Subject", "Body")

        assert sent is False
        mock_email_provider.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_notify_sends_message(self, mock_start_span, notifier, mock_email_provider):
        sent = await notifier.notify("a@example.com", "Subject", "Body", html="<p>Body</p>")

        assert sent is True
        message = mock_email_provider.send.call_args.args[0]
        assert message.to == "a@example.com"
        assert message.html == "<p>Body</p>"
        assert message.attachments == []

    @pytest.mark.asyncio
    async def test_notify_swallows_delivery_errors(
        self, mock_start_span, notifier, mock_email_provider
    ):
        mock_email_provider.send = AsyncMock(side_effect=RuntimeError("smtp down"))

        assert await notifier.notify("a@example.com", "Subject", "Body") is False
