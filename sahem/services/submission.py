"""
Partner submission of profit distribution requests.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sahem.models import (
    AuditAction,
    DistributionType,
    Investment,
    Project,
    ProfitDistributionRequest,
    RequestStatus,
    User,
)
from sahem.schemas.distribution import DistributionSubmitRequest
from sahem.services.calculator import (
    HUNDRED,
    MONEY_TOLERANCE,
    ZERO,
    max_total_for_capital,
    proposed_capital_return,
    to_money,
)
from sahem.services.errors import CapitalExceeded, DealNotFound, InvalidDistribution
from sahem.services.ledger import remaining_distributable_capital
from sahem.utils.audit import log_action

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    request: ProfitDistributionRequest
    investor_count: int


def _validate(data: DistributionSubmitRequest) -> DistributionType:
    if not data.description or not data.description.strip():
        raise InvalidDistribution("All required fields must be provided")

    if data.total_amount <= 0:
        raise InvalidDistribution("Total amount must be greater than zero")

    if data.estimated_gain_percent < 0 or data.estimated_gain_percent > HUNDRED:
        raise InvalidDistribution("Estimated gain percent must be between 0 and 100")

    if data.estimated_closing_percent < 0 or data.estimated_closing_percent > HUNDRED:
        raise InvalidDistribution("Estimated closing percent must be between 0 and 100")

    try:
        return DistributionType(data.distribution_type)
    except ValueError:
        raise InvalidDistribution("Distribution type must be either PARTIAL or FINAL")


async def submit_distribution_request(
    db: AsyncSession,
    partner: User,
    data: DistributionSubmitRequest,
    ip_address: Optional[str] = None,
) -> SubmissionResult:
    """
    Validate a partner proposal and store it as PENDING.

    Commission and reserve stay zero; the admin sets them at approval.

    Raises:
        InvalidDistribution: bad field values or a deal without investments
        DealNotFound: deal missing or not owned by the partner
        CapitalExceeded: implied capital return is more than what is left
    """
    distribution_type = _validate(data)

    deal = await db.scalar(
        select(Project).where(
            Project.id == data.deal_id,
            Project.owner_id == partner.id,
        )
    )
    if not deal:
        raise DealNotFound(
            "Deal not found or you do not have permission to distribute profits for this deal"
        )

    investor_count = await db.scalar(
        select(func.count(func.distinct(Investment.investor_id)))
        .where(Investment.project_id == deal.id)
    )
    if not investor_count:
        raise InvalidDistribution("This deal has no investments to distribute profits to")

    total_amount = to_money(data.total_amount)
    estimated_profit = to_money(total_amount * Decimal(data.estimated_gain_percent) / HUNDRED)
    estimated_return_capital = total_amount - estimated_profit

    proposed_capital = proposed_capital_return(
        distribution_type, total_amount, estimated_return_capital
    )
    remaining = await remaining_distributable_capital(db, deal.id)

    if proposed_capital > remaining + MONEY_TOLERANCE:
        max_total = max_total_for_capital(
            remaining, distribution_type, data.estimated_gain_percent
        )
        logger.info(
            f"Rejected distribution for deal {deal.id}: capital {proposed_capital} "
            f"exceeds remaining {remaining}"
        )
        raise CapitalExceeded(
            f"Requested capital return ({proposed_capital:.2f}) exceeds the remaining "
            f"distributable capital ({max(remaining, ZERO):.2f}). "
            f"Maximum allowed total amount is {max_total:.2f}",
            remaining_capital=max(remaining, ZERO),
            max_total_amount=max_total,
        )

    distribution_request = ProfitDistributionRequest(
        project_id=deal.id,
        partner_id=partner.id,
        description=data.description.strip(),
        total_amount=total_amount,
        estimated_gain_percent=data.estimated_gain_percent,
        estimated_closing_percent=data.estimated_closing_percent,
        distribution_type=distribution_type,
        estimated_profit=estimated_profit,
        estimated_return_capital=estimated_return_capital,
        sahem_invest_percent=Decimal("0"),
        reserved_gain_percent=Decimal("0"),
        sahem_invest_amount=ZERO,
        reserved_amount=ZERO,
        is_loss=False,
        status=RequestStatus.PENDING,
    )
    db.add(distribution_request)
    await db.flush()

    await log_action(
        db=db,
        user_id=partner.id,
        action=AuditAction.SUBMIT_DISTRIBUTION,
        target_type="distribution_request",
        target_id=distribution_request.id,
        action_metadata={
            "deal_id": deal.id,
            "distribution_type": distribution_type.value,
            "total_amount": total_amount,
        },
        ip_address=ip_address,
    )

    await db.commit()
    logger.info(
        f"Distribution request {distribution_request.id} submitted for deal {deal.id} "
        f"({distribution_type.value}, {total_amount})"
    )

    return SubmissionResult(request=distribution_request, investor_count=investor_count)
