"""API router aggregation."""

from fastapi import APIRouter

from sahem.api.admin import admin_router
from sahem.api.deals import router as deals_router
from sahem.api.health import router as health_router
from sahem.api.partner import partner_router

# Main API router (for /api/* endpoints)
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(admin_router)
api_router.include_router(partner_router)
api_router.include_router(deals_router)

__all__ = ["api_router"]
