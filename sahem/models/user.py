"""
User model for investors, partners and administrators.
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, String
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sahem.models.base import MONEY, BaseModel

if TYPE_CHECKING:
    from sahem.models.audit import AuditLog
    from sahem.models.investment import Investment


class UserRole(str, Enum):
    """User roles for access control."""
    ADMIN = "admin"
    PARTNER = "partner"
    INVESTOR = "investor"


class User(BaseModel):
    """
    User account model.

    - admin: reviews and approves distribution requests
    - partner: owns deals and proposes distributions
    - investor: commits capital and receives returns into the wallet

    Wallet and returns fields are only changed by the approval engine
    and by the deposit/withdrawal flows.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        SQLAlchemyEnum(
            UserRole,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=UserRole.INVESTOR,
        nullable=False,
    )
    preferred_language: Mapped[str] = mapped_column(
        String(5),
        default="en",
        server_default="en",
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Wallet
    wallet_balance: Mapped[Decimal] = mapped_column(
        MONEY,
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
    )
    total_invested: Mapped[Decimal] = mapped_column(
        MONEY,
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
    )
    total_returns: Mapped[Decimal] = mapped_column(
        MONEY,
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
        comment="Cumulative profit received, never decreases",
    )

    # Relationships
    investments: Mapped[List["Investment"]] = relationship(
        "Investment",
        back_populates="investor",
    )
    audit_logs: Mapped[List["AuditLog"]] = relationship(
        "AuditLog",
        back_populates="user",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
