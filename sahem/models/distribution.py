"""
Profit distribution request and per-investor distribution record models.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Text, UniqueConstraint, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sahem.models.base import MONEY, PERCENT, BaseModel

if TYPE_CHECKING:
    from sahem.models.investment import Investment
    from sahem.models.project import Project
    from sahem.models.user import User


class DistributionType(str, Enum):
    """Kind of distribution round."""
    PARTIAL = "PARTIAL"  # Interim round, capital recovery only
    FINAL = "FINAL"      # Closing round, profit or loss is recognized


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DistributionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class ProfitDistributionRequest(BaseModel):
    """
    A partner's proposal to return capital and profit for one deal.

    Commission (sahem_invest_*) and reserve (reserved_*) fields are zero
    when submitted; the admin sets them at approval time and every
    effective value is written back here for audit.

    A request leaves PENDING exactly once.
    """

    __tablename__ = "profit_distribution_requests"

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"),
        nullable=False,
        index=True,
    )
    partner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    distribution_type: Mapped[DistributionType] = mapped_column(
        SQLAlchemyEnum(
            DistributionType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )

    # Proposal
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    estimated_gain_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    estimated_closing_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    estimated_profit: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    estimated_return_capital: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    # Set by the admin
    sahem_invest_percent: Mapped[Decimal] = mapped_column(
        PERCENT,
        default=Decimal("0"),
        server_default="0",
        nullable=False,
        comment="Platform commission percent",
    )
    reserved_gain_percent: Mapped[Decimal] = mapped_column(
        PERCENT,
        default=Decimal("0"),
        server_default="0",
        nullable=False,
    )
    sahem_invest_amount: Mapped[Decimal] = mapped_column(
        MONEY,
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
    )
    reserved_amount: Mapped[Decimal] = mapped_column(
        MONEY,
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
    )
    is_loss: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Review
    status: Mapped[RequestStatus] = mapped_column(
        SQLAlchemyEnum(
            RequestStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=RequestStatus.PENDING,
        nullable=False,
        index=True,
    )
    reviewed_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    project: Mapped["Project"] = relationship("Project")
    partner: Mapped["User"] = relationship("User", foreign_keys=[partner_id])
    reviewed_by: Mapped[Optional["User"]] = relationship("User", foreign_keys=[reviewed_by_id])
    distributions: Mapped[List["ProfitDistribution"]] = relationship(
        "ProfitDistribution",
        back_populates="request",
    )

    def __repr__(self) -> str:
        return (
            f"<ProfitDistributionRequest(id={self.id}, project_id={self.project_id}, "
            f"type={self.distribution_type}, status={self.status})>"
        )


class ProfitDistribution(BaseModel):
    """
    Audit record of what one investor received from one approved request.

    An investor's several investments in the deal are aggregated into a
    single record; investment_id points at the earliest of them.
    """

    __tablename__ = "profit_distributions"
    __table_args__ = (
        UniqueConstraint("request_id", "investor_id", name="uq_distribution_request_investor"),
    )

    request_id: Mapped[int] = mapped_column(
        ForeignKey("profit_distribution_requests.id"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id"),
        nullable=False,
        index=True,
    )
    investor_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    investment_id: Mapped[int] = mapped_column(
        ForeignKey("investments.id"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
        comment="capital_amount + profit_amount",
    )
    capital_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    profit_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    profit_rate: Mapped[Decimal] = mapped_column(
        PERCENT,
        nullable=False,
        comment="Profit as percent of the investor's capital in the deal",
    )
    investment_share: Mapped[Decimal] = mapped_column(
        PERCENT,
        nullable=False,
        comment="Investor's percent of the deal's total investment",
    )
    status: Mapped[DistributionStatus] = mapped_column(
        SQLAlchemyEnum(
            DistributionStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=DistributionStatus.COMPLETED,
        nullable=False,
    )
    profit_period: Mapped[DistributionType] = mapped_column(
        SQLAlchemyEnum(
            DistributionType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    distribution_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    request: Mapped["ProfitDistributionRequest"] = relationship(
        "ProfitDistributionRequest",
        back_populates="distributions",
    )
    investor: Mapped["User"] = relationship("User")
    investment: Mapped["Investment"] = relationship("Investment")

    def __repr__(self) -> str:
        return (
            f"<ProfitDistribution(id={self.id}, investor_id={self.investor_id}, "
            f"capital={self.capital_amount}, profit={self.profit_amount})>"
        )
