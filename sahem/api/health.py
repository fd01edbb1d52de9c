"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from sahem.db import get_db
from sahem.services.dispatch import pending_count

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Returns 200 if the service is running."""
    return {"status": "healthy", "service": "sahem-distributions"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness check with database connectivity.

    Also reports how many post-commit email tasks are still in flight.
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return {
            "status": "not_ready",
            "database": f"error: {e}",
        }

    return {
        "status": "ready",
        "database": "connected",
        "background_tasks": pending_count(),
    }


@router.get("/live")
async def liveness_check():
    return {"status": "alive"}
