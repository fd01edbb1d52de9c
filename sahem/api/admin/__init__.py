"""Admin API router aggregation."""

from fastapi import APIRouter

from sahem.api.admin.distributions import router as distributions_router

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(distributions_router)

__all__ = ["admin_router"]
