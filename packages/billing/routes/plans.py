"""
Plans API routes.

Public endpoint for the plan catalog mirrored from Stripe.
"""

from fastapi import APIRouter, Query

from common.models.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Page
from packages.billing.services.plans_service import PlansService
from packages.billing.models.schemas.billing import PlanResponse

router = APIRouter()


@router.get("", response_model=Page[PlanResponse])
async def list_plans(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    """
    Get catalog plans, ordered by name.

    Plans are created and updated only by Stripe catalog webhooks.
    """
    plans_service = PlansService()
    result = await plans_service.list_plans(page, limit)
    return Page[PlanResponse](
        data=[PlanResponse.from_domain(plan) for plan in result.data],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )
