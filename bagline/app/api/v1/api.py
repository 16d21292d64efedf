from fastapi import APIRouter

from bagline.app.api.v1.endpoints import (
    analytics,
    auth,
    billing,
    dispatches,
    inventory,
    job_cards,
    orders,
    production,
    purchases,
    users,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(purchases.router, prefix="/purchases", tags=["purchases"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(job_cards.router, prefix="/job-cards", tags=["job-cards"])
api_router.include_router(production.router, prefix="/production", tags=["production"])
api_router.include_router(dispatches.router, prefix="/dispatches", tags=["dispatches"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
