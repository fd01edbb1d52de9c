"""
Review-side operations on distribution requests: rejection, listings
and the PARTIAL history used when preparing a FINAL approval.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sahem.config import settings
from sahem.models import (
    AuditAction,
    DistributionType,
    Project,
    ProfitDistribution,
    ProfitDistributionRequest,
    RequestStatus,
    User,
    UserRole,
)
from sahem.services import notifications
from sahem.services.calculator import percent_of, to_money
from sahem.services.errors import (
    DealNotFound,
    InvalidDistribution,
    RequestAlreadyProcessed,
    RequestForbidden,
    RequestNotFound,
)
from sahem.services.ledger import (
    InvestorPartialHistory,
    PartialHistorySummary,
    partial_history,
)
from sahem.utils.audit import log_action

logger = logging.getLogger(__name__)


async def _get_request(db: AsyncSession, request_id: int) -> ProfitDistributionRequest:
    distribution_request = await db.scalar(
        select(ProfitDistributionRequest)
        .options(
            selectinload(ProfitDistributionRequest.project),
            selectinload(ProfitDistributionRequest.partner),
        )
        .where(ProfitDistributionRequest.id == request_id)
    )
    if not distribution_request:
        raise RequestNotFound()
    return distribution_request


async def reject_distribution_request(
    db: AsyncSession,
    request_id: int,
    reason: str,
    admin: User,
    ip_address: Optional[str] = None,
) -> ProfitDistributionRequest:
    """Move a PENDING request to REJECTED and tell the partner why."""
    distribution_request = await _get_request(db, request_id)
    if distribution_request.status != RequestStatus.PENDING:
        raise RequestAlreadyProcessed()

    reason = reason.strip()
    result = await db.execute(
        update(ProfitDistributionRequest)
        .where(
            ProfitDistributionRequest.id == request_id,
            ProfitDistributionRequest.status == RequestStatus.PENDING,
        )
        .values(
            status=RequestStatus.REJECTED,
            rejection_reason=reason,
            reviewed_by_id=admin.id,
            reviewed_at=datetime.now(timezone.utc),
        )
    )
    if result.rowcount != 1:
        await db.rollback()
        raise RequestAlreadyProcessed()

    partner = distribution_request.partner
    notifications.notify_localized(
        db,
        user_id=distribution_request.partner_id,
        language=partner.preferred_language if partner else None,
        notification_type=notifications.DISTRIBUTION_REJECTED,
        metadata={
            "dealId": distribution_request.project_id,
            "requestId": request_id,
            "reason": reason,
        },
        deal=distribution_request.project.title,
        reason=reason,
    )

    await log_action(
        db=db,
        user_id=admin.id,
        action=AuditAction.REJECT_DISTRIBUTION,
        target_type="distribution_request",
        target_id=request_id,
        action_metadata={"reason": reason},
        ip_address=ip_address,
    )

    await db.commit()
    logger.info(f"Distribution request {request_id} rejected by {admin.id}")
    return distribution_request


async def list_distribution_requests(
    db: AsyncSession,
    status: Optional[str] = None,
    search: Optional[str] = None,
    partner_id: Optional[int] = None,
) -> List[ProfitDistributionRequest]:
    """
    Requests newest first.

    status: a RequestStatus value, or "all"/None for every status.
    search: case-insensitive match on deal title, partner name or description.
    """
    query = (
        select(ProfitDistributionRequest)
        .join(Project, ProfitDistributionRequest.project_id == Project.id)
        .join(User, ProfitDistributionRequest.partner_id == User.id)
        .options(
            selectinload(ProfitDistributionRequest.project),
            selectinload(ProfitDistributionRequest.partner),
        )
        .order_by(ProfitDistributionRequest.created_at.desc(), ProfitDistributionRequest.id.desc())
    )

    if status and status.lower() != "all":
        try:
            request_status = RequestStatus(status.upper())
        except ValueError:
            raise InvalidDistribution(f"Unknown status filter: {status}")
        query = query.where(ProfitDistributionRequest.status == request_status)

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                Project.title.ilike(pattern),
                User.name.ilike(pattern),
                ProfitDistributionRequest.description.ilike(pattern),
            )
        )

    if partner_id is not None:
        query = query.where(ProfitDistributionRequest.partner_id == partner_id)

    result = await db.scalars(query)
    return list(result.all())


async def distribution_history(
    db: AsyncSession,
    request_id: int,
) -> tuple[PartialHistorySummary, List[InvestorPartialHistory]]:
    """PARTIAL rounds preceding a FINAL request; empty for PARTIAL requests."""
    distribution_request = await _get_request(db, request_id)
    if distribution_request.distribution_type != DistributionType.FINAL:
        return PartialHistorySummary(), []
    return await partial_history(db, distribution_request.project_id)


@dataclass
class CommissionEstimate:
    sahem_invest_amount: Decimal
    sahem_percent: Decimal
    reserved_amount: Decimal
    reserve_percent: Decimal
    investor_pool: Decimal
    total_profit: Decimal

    @property
    def is_profitable(self) -> bool:
        return self.total_profit > 0


@dataclass
class PartnerRequestDetail:
    request: ProfitDistributionRequest
    history: PartialHistorySummary
    commission: CommissionEstimate


def estimate_commission(distribution_request: ProfitDistributionRequest) -> CommissionEstimate:
    """Commission preview for the partner; zero percents fall back to the configured defaults."""
    profit = to_money(distribution_request.estimated_profit)
    sahem_percent = Decimal(
        distribution_request.sahem_invest_percent or settings.default_sahem_invest_percent
    )
    reserve_percent = Decimal(
        distribution_request.reserved_gain_percent or settings.default_reserved_gain_percent
    )
    sahem_amount = percent_of(profit, sahem_percent)
    reserved = percent_of(profit, reserve_percent)
    return CommissionEstimate(
        sahem_invest_amount=sahem_amount,
        sahem_percent=sahem_percent,
        reserved_amount=reserved,
        reserve_percent=reserve_percent,
        investor_pool=profit - sahem_amount - reserved,
        total_profit=profit,
    )


async def partner_request_detail(
    db: AsyncSession,
    request_id: int,
    partner: User,
) -> PartnerRequestDetail:
    distribution_request = await _get_request(db, request_id)
    if distribution_request.partner_id != partner.id:
        raise RequestForbidden()

    summary, _ = await partial_history(db, distribution_request.project_id)
    return PartnerRequestDetail(
        request=distribution_request,
        history=summary,
        commission=estimate_commission(distribution_request),
    )


async def deal_distributions(
    db: AsyncSession,
    deal_id: int,
    user: User,
) -> List[ProfitDistribution]:
    """
    Distribution records of a deal as visible to the user.

    Investors see only their own records, partners only deals they own.
    """
    deal = await db.get(Project, deal_id)
    if not deal:
        raise DealNotFound("Deal not found")
    if user.role == UserRole.PARTNER and deal.owner_id != user.id:
        raise RequestForbidden()

    query = (
        select(ProfitDistribution)
        .where(ProfitDistribution.project_id == deal_id)
        .order_by(ProfitDistribution.distribution_date.desc(), ProfitDistribution.id)
    )
    if user.role == UserRole.INVESTOR:
        query = query.where(ProfitDistribution.investor_id == user.id)

    result = await db.scalars(query)
    return list(result.all())
