"""
Transaction model: immutable wallet ledger entries.
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sahem.models.base import MONEY, BaseModel

if TYPE_CHECKING:
    from sahem.models.investment import Investment
    from sahem.models.user import User


class TransactionType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    INVESTMENT = "INVESTMENT"
    RETURN = "RETURN"                            # Capital coming back to the investor
    PROFIT_DISTRIBUTION = "PROFIT_DISTRIBUTION"  # Profit recognized in a FINAL round


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Transaction(BaseModel):
    """
    Ledger entry for a wallet movement.

    Rows are never edited after creation; only the deposit/withdrawal
    flows move status from PENDING.
    """

    __tablename__ = "transactions"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    investment_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("investments.id"),
        nullable=True,
    )
    project_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("projects.id"),
        nullable=True,
        index=True,
    )
    type: Mapped[TransactionType] = mapped_column(
        SQLAlchemyEnum(
            TransactionType,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
    )
    status: Mapped[TransactionStatus] = mapped_column(
        SQLAlchemyEnum(
            TransactionStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=TransactionStatus.PENDING,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    reference: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )

    # Relationships
    user: Mapped["User"] = relationship("User")
    investment: Mapped[Optional["Investment"]] = relationship("Investment")

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, type={self.type}, amount={self.amount})>"
