"""
FastAPI dependencies resolving the session user and enforcing roles.
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from sahem.auth.jwt import get_token_from_cookie, verify_token
from sahem.db import get_db
from sahem.models import User, UserRole


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    User behind the access_token cookie.

    401 without a valid token or for an unknown user, 403 for a
    disabled account.
    """
    token = get_token_from_cookie(request)
    if not token:
        raise _unauthorized("Not authenticated")

    payload = verify_token(token)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    user = await db.get(User, payload["user_id"])
    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


def _require_role(role: UserRole, detail: str):
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current_user

    return dependency


# Admins review requests; only the owning partner may submit one
require_admin = _require_role(UserRole.ADMIN, "Admin access required")
require_partner = _require_role(UserRole.PARTNER, "Partner access required")
