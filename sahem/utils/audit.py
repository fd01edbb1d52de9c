"""
Audit logging utilities.

Every action that moves money or changes a request's review state is
logged in the same transaction as the action.
"""

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sahem.models.audit import AuditAction, AuditLog


def _serializable(metadata: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Convert Decimal values so the metadata fits a JSON column."""
    if metadata is None:
        return None
    return {
        key: str(value) if isinstance(value, Decimal) else value
        for key, value in metadata.items()
    }


async def log_action(
    db: AsyncSession,
    user_id: int,
    action: AuditAction,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action_metadata: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """Add an audit entry to the session; the caller commits it with its own change."""
    log_entry = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        action_metadata=_serializable(action_metadata),
        ip_address=ip_address,
    )
    db.add(log_entry)
    return log_entry


def get_client_ip(request) -> Optional[str]:
    """Client address, preferring the first X-Forwarded-For hop."""
    if request is None:
        return None

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if getattr(request, "client", None):
        return request.client.host

    return None
