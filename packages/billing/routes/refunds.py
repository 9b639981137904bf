"""
Refund API routes.
"""

from typing import List

from fastapi import APIRouter, Query

from common.models.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Page
from packages.billing.services.refund_service import RefundService
from packages.billing.models.domain.stripe_objects import StripeRefundData
from packages.billing.models.schemas.billing import RefundResponse

router = APIRouter()


@router.get("", response_model=Page[RefundResponse])
async def list_refunds(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    """Get the local refund ledger, newest first."""
    refund_service = RefundService()
    result = await refund_service.list_refunds(page, limit)
    return Page[RefundResponse](
        data=[RefundResponse.from_domain(refund) for refund in result.data],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )


@router.get("/remote", response_model=List[StripeRefundData])
async def list_remote_refunds():
    """The most recent refunds as Stripe reports them (amounts in minor units)."""
    refund_service = RefundService()
    return await refund_service.list_remote_refunds()
