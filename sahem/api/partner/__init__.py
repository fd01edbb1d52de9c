"""Partner API router aggregation."""

from fastapi import APIRouter

from sahem.api.partner.distributions import router as distributions_router

partner_router = APIRouter(prefix="/partner", tags=["Partner"])

partner_router.include_router(distributions_router)

__all__ = ["partner_router"]
