"""
Session token handling.

Tokens are issued by the external auth provider and arrive in the
httpOnly `access_token` cookie. This service only verifies them;
create_access_token exists for local tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from sahem.config import settings

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
COOKIE_NAME = "access_token"


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Encode a token the same way the auth provider does."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(hours=settings.jwt_expire_hours)
    claims = {
        "sub": str(user_id),
        "role": role,
        "type": TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """
    Decode a session token into {"user_id": int, "role": str}.

    None for a bad signature, an expired token, a non-access token or
    missing claims.
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None

    if claims.get("type") != TOKEN_TYPE:
        return None

    subject, role = claims.get("sub"), claims.get("role")
    if not subject or not role:
        return None

    try:
        return {"user_id": int(subject), "role": role}
    except ValueError:
        return None


def get_token_from_cookie(request) -> Optional[str]:
    return request.cookies.get(COOKIE_NAME)
