"""
Base model with common fields, mixins and column types.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Monetary amounts are kept to the cent, percentages to four decimals
MONEY = Numeric(15, 2)
PERCENT = Numeric(7, 4)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class BaseModel(Base, TimestampMixin):
    """
    Abstract base model with auto-incrementing ID and timestamps.
    Inherit from this for most models.
    """

    __abstract__ = True
    # Load server-generated timestamps on flush; async sessions cannot lazy-load them
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
