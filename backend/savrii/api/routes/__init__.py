from fastapi import APIRouter

from savrii.api.routes import entitlements, health, plans

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(plans.router, prefix="/plans", tags=["plans"])
api_router.include_router(entitlements.router, prefix="/entitlements", tags=["entitlements"])
