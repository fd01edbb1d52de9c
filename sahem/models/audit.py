"""
Audit trail of review decisions on distribution requests.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sahem.models.base import Base

if TYPE_CHECKING:
    from sahem.models.user import User


class AuditAction(str, Enum):
    SUBMIT_DISTRIBUTION = "submit_distribution"    # partner proposal stored
    APPROVE_DISTRIBUTION = "approve_distribution"  # money moved to investors
    REJECT_DISTRIBUTION = "reject_distribution"


class AuditLog(Base):
    """
    Who did what to which distribution request, and from where.

    Rows are added to the same session as the change they describe and
    never updated afterwards. Amounts in action_metadata are stored as
    strings to keep cents exact.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    action: Mapped[AuditAction] = mapped_column(
        SQLAlchemyEnum(AuditAction, values_callable=lambda x: [e.value for e in x]),
        index=True,
    )
    target_type: Mapped[Optional[str]] = mapped_column(String(50))
    target_id: Mapped[Optional[int]] = mapped_column(Integer)
    action_metadata: Mapped[Optional[dict]] = mapped_column(JSON)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )

    user: Mapped["User"] = relationship("User", back_populates="audit_logs")

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"target={self.target_type}:{self.target_id})>"
        )
