"""
Investment model: one capital commitment by one investor into one deal.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sahem.models.base import MONEY, BaseModel

if TYPE_CHECKING:
    from sahem.models.project import Project
    from sahem.models.user import User


class InvestmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Investment(BaseModel):
    """Capital committed to a deal. The amount never changes after creation."""

    __tablename__ = "investments"

    investor_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
    )
    status: Mapped[InvestmentStatus] = mapped_column(
        SQLAlchemyEnum(
            InvestmentStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=InvestmentStatus.ACTIVE,
        nullable=False,
    )
    investment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    investor: Mapped["User"] = relationship(
        "User",
        back_populates="investments",
    )
    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="investments",
    )

    def __repr__(self) -> str:
        return f"<Investment(id={self.id}, investor_id={self.investor_id}, amount={self.amount})>"
