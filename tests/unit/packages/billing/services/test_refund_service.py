"""
Unit tests for RefundService.

Tests refund creation and reconciliation with a mocked payment provider.
Database interactions are NOT mocked.
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from common.core.exceptions import PaymentProviderError
from packages.billing.models.domain.stripe_objects import StripeRefundData
from packages.billing.repositories.refund_repository import RefundRepository
from packages.billing.services.refund_service import RefundService


@pytest.fixture
def refund_service():
    return RefundService()


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestCreateRefund:
    @pytest.mark.asyncio
    async def test_amount_sent_in_minor_units(
        self,
        mock_start_span,
        refund_service,
        mock_payment_provider,
        mock_email_provider,
    ):
        mock_payment_provider.create_refund = AsyncMock(
            return_value=StripeRefundData(
                id="re_1", amount=1235, status="succeeded", payment_intent="pi_test"
            )
        )

        refund = await refund_service.create_refund("pi_test", Decimal("12.345"))

        mock_payment_provider.create_refund.assert_called_once_with("pi_test", amount=1235)
        assert refund.stripe_refund_id == "re_1"
        assert refund.amount == Decimal("12.35")
        assert refund.stripe_payment_intent_id == "pi_test"

        message = mock_email_provider.send.call_args.args[0]
        assert message.subject == "Refund Issued"
        assert message.to == "customer@example.com"
        assert "$12.35" in message.text

    @pytest.mark.asyncio
    async def test_full_refund_sends_no_amount(
        self, mock_start_span, refund_service, mock_payment_provider
    ):
        await refund_service.create_refund("pi_test")

        mock_payment_provider.create_refund.assert_called_once_with("pi_test", amount=None)

    @pytest.mark.asyncio
    async def test_enrichment_failure_does_not_fail_refund(
        self,
        mock_start_span,
        refund_service,
        mock_payment_provider,
        mock_email_provider,
    ):
        mock_payment_provider.retrieve_payment_intent = AsyncMock(
            side_effect=PaymentProviderError("No such payment_intent", status_code=404)
        )

        refund = await refund_service.create_refund("pi_test", Decimal("10"))

        assert refund.stripe_refund_id == "re_test"
        mock_email_provider.send.assert_not_called()
        assert await RefundRepository().count() == 1

    @pytest.mark.asyncio
    async def test_delivery_failure_does_not_fail_refund(
        self,
        mock_start_span,
        refund_service,
        mock_email_provider,
    ):
        mock_email_provider.send = AsyncMock(side_effect=OSError("connection refused"))

        refund = await refund_service.create_refund("pi_test", Decimal("10"))

        assert refund.stripe_refund_id == "re_test"

    @pytest.mark.asyncio
    async def test_remote_failure_records_nothing(
        self, mock_start_span, refund_service, mock_payment_provider
    ):
        mock_payment_provider.create_refund = AsyncMock(
            side_effect=PaymentProviderError(
                "Refund exceeds charge", status_code=400, code="amount_too_large"
            )
        )

        with pytest.raises(PaymentProviderError):
            await refund_service.create_refund("pi_test", Decimal("999"))

        assert await RefundRepository().count() == 0


@patch("common.core.otel_axiom_exporter.axiom_tracer.start_as_current_span")
class TestRefundReconciliation:
    @pytest.mark.asyncio
    async def test_refund_object_upserted_once(self, mock_start_span, refund_service):
        data = {
            "id": "re_evt",
            "object": "refund",
            "amount": 500,
            "currency": "usd",
            "status": "pending",
            "payment_intent": "pi_1",
        }

        await refund_service.sync_from_event_object(data)
        synced = await refund_service.sync_from_event_object({**data, "status": "succeeded"})

        assert len(synced) == 1
        assert synced[0].status == "succeeded"
        assert synced[0].amount == Decimal("5.00")
        assert await RefundRepository().count() == 1

    @pytest.mark.asyncio
    async def test_charge_refunds_are_synced(self, mock_start_span, refund_service):
        data = {
            "id": "ch_1",
            "object": "charge",
            "amount": 3000,
            "payment_intent": "pi_1",
            "refunds": {
                "object": "list",
                "data": [
                    {"id": "re_a", "amount": 1000, "payment_intent": "pi_1", "status": "succeeded"},
                    {"id": "re_b", "amount": 500, "payment_intent": "pi_1", "status": "succeeded"},
                ],
            },
        }

        synced = await refund_service.sync_from_event_object(data)

        assert {refund.stripe_refund_id for refund in synced} == {"re_a", "re_b"}
        assert await RefundRepository().count() == 2

    @pytest.mark.asyncio
    async def test_charge_without_refunds(self, mock_start_span, refund_service):
        synced = await refund_service.sync_from_event_object(
            {"id": "ch_1", "object": "charge", "amount": 3000}
        )

        assert synced == []

    @pytest.mark.asyncio
    async def test_non_refund_objects_ignored(self, mock_start_span, refund_service):
        synced = await refund_service.sync_from_event_object(
            {"id": "pi_1", "object": "payment_intent", "amount": 3000}
        )

        assert synced == []
        assert await RefundRepository().count() == 0

    @pytest.mark.asyncio
    async def test_sync_refund_rejects_other_prefixes(self, mock_start_span, refund_service):
        result = await refund_service.sync_refund_from_stripe(
            StripeRefundData(id="pyr_1", amount=100)
        )

        assert result is None

    @pytest.mark.asyncio
    async def test_list_remote_refunds(
        self, mock_start_span, refund_service, mock_payment_provider
    ):
        mock_payment_provider.list_refunds = AsyncMock(
            return_value=[StripeRefundData(id="re_1", amount=100)]
        )

        refunds = await refund_service.list_remote_refunds()

        assert [refund.id for refund in refunds] == ["re_1"]
        mock_payment_provider.list_refunds.assert_called_once_with(limit=100)
