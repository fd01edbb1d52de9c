"""
Authentication middleware for role-based route protection.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sahem.auth.jwt import get_token_from_cookie, verify_token

logger = logging.getLogger(__name__)

# Routes that don't require authentication
PUBLIC_ROUTES = {
    "/api/health",
    "/api/health/ready",
    "/api/health/live",
}

PUBLIC_PREFIXES = (
    "/docs",
    "/redoc",
    "/openapi.json",
)

# Route prefix -> role allowed on it
ROLE_PREFIXES = {
    "/api/admin": "admin",
    "/api/partner": "partner",
}


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Rejects API calls without a valid session before they reach a route.

    - /api/admin/* requires the admin role
    - /api/partner/* requires the partner role
    - any other /api/* route requires a valid token

    Routes still resolve the user through the auth dependencies.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        path = request.url.path

        if path in PUBLIC_ROUTES or path.startswith(PUBLIC_PREFIXES):
            return await call_next(request)

        if not path.startswith("/api/"):
            return await call_next(request)

        token = get_token_from_cookie(request)
        payload = verify_token(token) if token else None

        if not payload:
            return JSONResponse({"detail": "Not authenticated"}, status_code=401)

        role = payload.get("role")
        for prefix, required_role in ROLE_PREFIXES.items():
            if path.startswith(prefix) and role != required_role:
                logger.warning(
                    f"User {payload['user_id']} with role {role} denied access to {path}"
                )
                return JSONResponse(
                    {"detail": f"{required_role.capitalize()} access required"},
                    status_code=403,
                )

        return await call_next(request)
