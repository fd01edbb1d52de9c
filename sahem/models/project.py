"""
Project model for fundraising deals.
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sahem.models.base import MONEY, BaseModel

if TYPE_CHECKING:
    from sahem.models.investment import Investment
    from sahem.models.user import User


class ProjectStatus(str, Enum):
    """Lifecycle of a deal."""
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    FUNDED = "funded"
    COMPLETED = "completed"    # Only after a FINAL distribution is approved
    CANCELLED = "cancelled"


class Project(BaseModel):
    """
    A deal that investors commit capital to.

    The owner is the partner that runs the deal and proposes
    profit distributions for it.
    """

    __tablename__ = "projects"

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    funding_goal: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
    )
    current_funding: Mapped[Decimal] = mapped_column(
        MONEY,
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
    )
    status: Mapped[ProjectStatus] = mapped_column(
        SQLAlchemyEnum(
            ProjectStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=ProjectStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    # Relationships
    owner: Mapped["User"] = relationship("User")
    investments: Mapped[List["Investment"]] = relationship(
        "Investment",
        back_populates="project",
        order_by="Investment.id",
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, title='{self.title}', status={self.status})>"
