from fastapi import APIRouter

from api.v1.routes import (
    health,
)
from packages.billing.routes import plans, refunds, subscriptions, webhooks

api_router = APIRouter()

# Health check
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Webhooks (signature verified internally)
api_router.include_router(webhooks.router, tags=["webhooks"])

# Billing
api_router.include_router(plans.router, prefix="/plans", tags=["plans"])
api_router.include_router(
    subscriptions.router, prefix="/subscriptions", tags=["subscriptions"]
)
api_router.include_router(refunds.router, prefix="/refunds", tags=["refunds"])
