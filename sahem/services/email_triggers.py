"""
Email triggers for admin notifications.

Triggers never send mail themselves: they read the admin notification
settings and queue an OutboxMessage in their own session. An external
mailer drains the outbox. Every trigger is best-effort; failures are
logged and swallowed so callers can schedule them with fire_and_forget.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sahem.models import OutboxMessage, OutboxStatus
from sahem.models.settings import get_setting_value

logger = logging.getLogger(__name__)


@dataclass
class ProfitDistributionEmail:
    """Summary passed to notify_admin_profit_distribution."""
    deal_title: str
    total_amount: Decimal
    distribution_type: str
    investor_count: int
    approved_by: str


def _default_session_factory() -> async_sessionmaker[AsyncSession]:
    from sahem.db import AsyncSessionLocal

    return AsyncSessionLocal


class EmailTriggers:
    """Queues admin emails. Construct with a session factory for tests."""

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        self._session_factory = session_factory

    def _session(self) -> AsyncSession:
        factory = self._session_factory or _default_session_factory()
        return factory()

    async def _admin_settings(self, db: AsyncSession) -> tuple[Optional[str], bool]:
        email = await get_setting_value(db, "admin_notification_email")
        enabled = await get_setting_value(db, "notify_on_profit_distribution", True)
        return email, bool(enabled)

    async def notify_admin_profit_distribution(
        self,
        data: ProfitDistributionEmail,
    ) -> Optional[OutboxMessage]:
        """Queue the 'distribution approved' email for the admin."""
        try:
            async with self._session() as db:
                email, enabled = await self._admin_settings(db)
                if not email or not enabled:
                    logger.info(
                        "Admin profit distribution notifications disabled or no email configured"
                    )
                    return None

                subject = f"Profit distribution approved: {data.deal_title}"
                body = (
                    f"A {data.distribution_type} distribution for \"{data.deal_title}\" "
                    f"was approved by {data.approved_by}.\n"
                    f"Total amount: ${data.total_amount:,.2f}\n"
                    f"Investors: {data.investor_count}"
                )
                message = OutboxMessage(
                    channel="email",
                    recipient=email,
                    subject=subject,
                    body=body,
                    status=OutboxStatus.PENDING,
                )
                db.add(message)
                await db.commit()

            logger.info(f"Admin profit distribution notification queued for {email}")
            return message
        except Exception as e:
            logger.error(f"Error queueing admin profit distribution notification: {e}")
            return None


email_triggers = EmailTriggers()
