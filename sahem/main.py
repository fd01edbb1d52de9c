"""
Sahem Invest - Profit Distribution Service

Main FastAPI application with:
- Partner submission of distribution requests
- Admin review and atomic approval of distributions
- Role-based access from session tokens issued by the auth provider
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sahem.api import api_router
from sahem.auth.middleware import AuthMiddleware
from sahem.config import settings
from sahem.db import get_db_context
from sahem.models.settings import ensure_default_settings
from sahem.services import dispatch
from sahem.services.errors import DistributionError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def default_settings() -> dict:
    return {
        "admin_notification_email": settings.admin_notification_email,
        "notify_on_profit_distribution": True,
        "default_sahem_invest_percent": str(settings.default_sahem_invest_percent),
        "default_reserved_gain_percent": str(settings.default_reserved_gain_percent),
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Initializes default system settings

    Shutdown:
    - Waits for queued post-commit email tasks
    """
    logger.info("Starting Sahem distribution service...")

    async with get_db_context() as db:
        for key in await ensure_default_settings(db, default_settings()):
            logger.info(f"Created default setting: {key}")

    logger.info("Sahem distribution service started")

    yield

    logger.info("Shutting down Sahem distribution service...")
    await dispatch.drain()


app = FastAPI(
    title="Sahem Invest",
    description="Profit distribution service",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.add_middleware(AuthMiddleware)


@app.exception_handler(DistributionError)
async def distribution_error_handler(request: Request, exc: DistributionError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, **exc.extra},
    )


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sahem.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
