"""
Read-side ledger queries: invested capital, distributed capital and
the history of PARTIAL rounds for a deal.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sahem.models import (
    DistributionStatus,
    DistributionType,
    Investment,
    ProfitDistribution,
    ProfitDistributionRequest,
    RequestStatus,
    User,
)
from sahem.services.calculator import ZERO, to_money


async def deal_total_investment(db: AsyncSession, project_id: int) -> Decimal:
    total = await db.scalar(
        select(func.coalesce(func.sum(Investment.amount), 0))
        .where(Investment.project_id == project_id)
    )
    return to_money(total)


async def distributed_capital(db: AsyncSession, project_id: int) -> Decimal:
    """Capital already returned through completed distribution records."""
    total = await db.scalar(
        select(func.coalesce(func.sum(ProfitDistribution.capital_amount), 0))
        .where(
            ProfitDistribution.project_id == project_id,
            ProfitDistribution.status == DistributionStatus.COMPLETED,
        )
    )
    return to_money(total)


async def pending_capital(
    db: AsyncSession,
    project_id: int,
    exclude_request_id: Optional[int] = None,
) -> Decimal:
    """
    Capital proposed by requests still awaiting review.

    A PARTIAL request would return its whole total as capital, a FINAL
    request its estimated return capital.
    """
    proposed = case(
        (
            ProfitDistributionRequest.distribution_type == DistributionType.PARTIAL,
            ProfitDistributionRequest.total_amount,
        ),
        else_=ProfitDistributionRequest.estimated_return_capital,
    )
    query = select(func.coalesce(func.sum(proposed), 0)).where(
        ProfitDistributionRequest.project_id == project_id,
        ProfitDistributionRequest.status == RequestStatus.PENDING,
    )
    if exclude_request_id is not None:
        query = query.where(ProfitDistributionRequest.id != exclude_request_id)

    return to_money(await db.scalar(query))


async def remaining_distributable_capital(
    db: AsyncSession,
    project_id: int,
    include_pending: bool = True,
    exclude_request_id: Optional[int] = None,
) -> Decimal:
    """Total invested minus capital distributed (and, optionally, proposed)."""
    remaining = await deal_total_investment(db, project_id) - await distributed_capital(db, project_id)
    if include_pending:
        remaining -= await pending_capital(db, project_id, exclude_request_id)
    return remaining


@dataclass
class DistributionEvent:
    date: datetime
    capital_amount: Decimal
    profit_amount: Decimal
    type: str = DistributionType.PARTIAL.value


@dataclass
class InvestorPartialHistory:
    investor_id: int
    investor_name: str
    investor_email: str
    total_investment: Decimal = ZERO
    partial_capital_received: Decimal = ZERO
    partial_profit_received: Decimal = ZERO
    distribution_history: List[DistributionEvent] = field(default_factory=list)


@dataclass
class PartialHistorySummary:
    total_partial_amount: Decimal = ZERO
    total_reserved: Decimal = ZERO
    total_sahem_commission: Decimal = ZERO
    total_partial_capital: Decimal = ZERO
    total_partial_profit: Decimal = ZERO
    distribution_count: int = 0
    distribution_dates: List[str] = field(default_factory=list)


async def partial_history(
    db: AsyncSession,
    project_id: int,
) -> tuple[PartialHistorySummary, List[InvestorPartialHistory]]:
    """
    Summarize the approved PARTIAL rounds of a deal.

    Per-investor capital comes from the distribution records written at
    approval, so it reflects exactly what each wallet received.
    """
    summary = PartialHistorySummary()

    rounds = await db.execute(
        select(ProfitDistributionRequest)
        .where(
            ProfitDistributionRequest.project_id == project_id,
            ProfitDistributionRequest.distribution_type == DistributionType.PARTIAL,
            ProfitDistributionRequest.status == RequestStatus.APPROVED,
        )
        .order_by(ProfitDistributionRequest.reviewed_at)
    )
    for partial in rounds.scalars().all():
        summary.total_partial_amount += to_money(partial.total_amount)
        summary.total_reserved += to_money(partial.reserved_amount)
        summary.total_sahem_commission += to_money(partial.sahem_invest_amount)
        summary.distribution_count += 1
        if partial.reviewed_at:
            day = partial.reviewed_at.date().isoformat()
            if day not in summary.distribution_dates:
                summary.distribution_dates.append(day)

    investors: Dict[int, InvestorPartialHistory] = {}
    holdings = await db.execute(
        select(Investment, User)
        .join(User, Investment.investor_id == User.id)
        .where(Investment.project_id == project_id)
        .order_by(Investment.id)
    )
    for investment, investor in holdings.all():
        data = investors.get(investor.id)
        if data is None:
            data = investors[investor.id] = InvestorPartialHistory(
                investor_id=investor.id,
                investor_name=investor.name or "Unknown",
                investor_email=investor.email,
            )
        data.total_investment += to_money(investment.amount)

    records = await db.execute(
        select(ProfitDistribution)
        .where(
            ProfitDistribution.project_id == project_id,
            ProfitDistribution.profit_period == DistributionType.PARTIAL,
            ProfitDistribution.status == DistributionStatus.COMPLETED,
        )
        .order_by(ProfitDistribution.distribution_date, ProfitDistribution.id)
    )
    for record in records.scalars().all():
        capital = to_money(record.capital_amount)
        profit = to_money(record.profit_amount)
        summary.total_partial_capital += capital
        summary.total_partial_profit += profit

        data = investors.get(record.investor_id)
        if data is None:
            continue
        data.partial_capital_received += capital
        data.partial_profit_received += profit
        data.distribution_history.append(
            DistributionEvent(
                date=record.distribution_date,
                capital_amount=capital,
                profit_amount=profit,
            )
        )

    return summary, list(investors.values())
