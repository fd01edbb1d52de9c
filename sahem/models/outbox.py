"""
Queued notification emails.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column

from sahem.models.base import Base


class OutboxStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"  # mailer gave up


class OutboxMessage(Base):
    """
    Outgoing message queue.

    Rows are added by the email triggers after a business transaction
    commits and drained by the external mailer, which owns retries
    (attempts) and dead-lettering (FAILED).
    """

    __tablename__ = "outbox_messages"

    id: Mapped[int] = mapped_column(primary_key=True)
    channel: Mapped[str] = mapped_column(
        String(20),
        default="email",
        nullable=False,
    )
    recipient: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
        comment="Email address to send to",
    )
    subject: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    body: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    status: Mapped[OutboxStatus] = mapped_column(
        SQLAlchemyEnum(
            OutboxStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=OutboxStatus.PENDING,
        nullable=False,
        index=True,
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    error_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Error details if send failed",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<OutboxMessage(id={self.id}, status={self.status})>"
