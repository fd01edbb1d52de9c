"""
Distribution approval engine.

Turns one PENDING distribution request into ledger mutations:
- RETURN / PROFIT_DISTRIBUTION transactions per investor
- one ProfitDistribution record per investor
- wallet and total-returns increments
- partner and investor notifications, audit entry
- deal marked completed on FINAL rounds

Everything above commits in a single transaction or not at all. The
admin email is scheduled only after the commit and cannot fail the
approval.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import case, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sahem.config import settings
from sahem.models import (
    AuditAction,
    DistributionStatus,
    DistributionType,
    Project,
    ProfitDistribution,
    ProfitDistributionRequest,
    ProjectStatus,
    RequestStatus,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)
from sahem.schemas.distribution import DistributionApproveRequest
from sahem.services import notifications
from sahem.services.calculator import (
    MONEY_TOLERANCE,
    DistributionBreakdown,
    DistributionParameters,
    InvestorAllocation,
    InvestorOverride,
    Scenario,
    allocate,
    calculate_breakdown,
    group_investments,
    max_total_for_capital,
    to_money,
)
from sahem.services.dispatch import fire_and_forget
from sahem.services.email_triggers import EmailTriggers, ProfitDistributionEmail, email_triggers
from sahem.services.errors import (
    CapitalExceeded,
    InvalidDistribution,
    RequestAlreadyProcessed,
    RequestNotFound,
)
from sahem.services.ledger import deal_total_investment, distributed_capital
from sahem.utils.audit import log_action

logger = logging.getLogger(__name__)

SCENARIO_MESSAGES = {
    Scenario.LOSS: (
        "Loss distribution approved: the remaining amount was returned to "
        "investors as capital without commission"
    ),
    Scenario.PARTIAL: (
        "Partial distribution approved: the net amount was returned to "
        "investors as capital recovery"
    ),
    Scenario.PROFIT: "Profit distribution approved and processed successfully",
}

INVESTOR_NOTIFICATION = {
    Scenario.LOSS: notifications.LOSS_SETTLEMENT,
    Scenario.PARTIAL: notifications.CAPITAL_RETURNED,
    Scenario.PROFIT: notifications.PROFIT_RECEIVED,
}


@dataclass
class ApprovalResult:
    request: ProfitDistributionRequest
    breakdown: DistributionBreakdown
    allocations: List[InvestorAllocation]
    unique_investors: int
    total_investments: int
    estimated_gain_percent: Decimal
    estimated_closing_percent: Decimal

    @property
    def message(self) -> str:
        return SCENARIO_MESSAGES[self.breakdown.scenario]


def _pick(override: Optional[Any], current: Any) -> Any:
    """Admin value when given, otherwise the stored one."""
    return current if override is None else override


def build_parameters(
    distribution_request: ProfitDistributionRequest,
    overrides: DistributionApproveRequest,
) -> DistributionParameters:
    """Merge admin edits over the stored request values."""
    return DistributionParameters(
        distribution_type=distribution_request.distribution_type,
        total_amount=_pick(overrides.total_amount, distribution_request.total_amount),
        estimated_profit=_pick(overrides.estimated_profit, distribution_request.estimated_profit),
        estimated_return_capital=_pick(
            overrides.estimated_return_capital,
            distribution_request.estimated_return_capital,
        ),
        sahem_invest_percent=_pick(
            overrides.sahem_invest_percent,
            distribution_request.sahem_invest_percent,
        ),
        reserved_gain_percent=_pick(
            overrides.reserved_gain_percent,
            distribution_request.reserved_gain_percent,
        ),
        sahem_invest_amount=overrides.sahem_invest_amount,
        reserved_amount=overrides.reserved_amount,
        is_loss=bool(_pick(overrides.is_loss, distribution_request.is_loss)),
    )


def _override_map(
    overrides: DistributionApproveRequest,
    investor_ids: set[int],
    scenario: Scenario,
) -> Dict[int, InvestorOverride]:
    """
    Index admin amounts by investor.

    Profit can only be paid in a FINAL round with profit; PARTIAL and
    loss rounds return capital only.
    """
    result: Dict[int, InvestorOverride] = {}
    for item in overrides.investor_distributions or []:
        if item.investor_id not in investor_ids:
            raise InvalidDistribution(
                f"Investor {item.investor_id} has no investment in this deal"
            )
        if item.investor_id in result:
            raise InvalidDistribution(f"Duplicate amounts for investor {item.investor_id}")
        if item.final_profit > 0 and scenario != Scenario.PROFIT:
            raise InvalidDistribution(
                f"Investor {item.investor_id}: profit cannot be distributed in a "
                f"{scenario.value} round, only capital is returned"
            )
        result[item.investor_id] = InvestorOverride(
            investor_id=item.investor_id,
            capital_amount=item.final_capital,
            profit_amount=item.final_profit,
        )
    return result


def _check_override_totals(
    request_id: int,
    allocations: List[InvestorAllocation],
    breakdown: DistributionBreakdown,
) -> None:
    """Warn when explicit amounts do not add up to the computed pools."""
    if not any(a.overridden for a in allocations):
        return
    capital = sum((a.capital_amount for a in allocations), Decimal("0"))
    profit = sum((a.profit_amount for a in allocations), Decimal("0"))
    if abs(capital - breakdown.capital_return_pool) > MONEY_TOLERANCE:
        logger.warning(
            f"Request {request_id}: investor capital {capital} differs from "
            f"capital pool {breakdown.capital_return_pool}"
        )
    if abs(profit - breakdown.investor_profit_pool) > MONEY_TOLERANCE:
        logger.warning(
            f"Request {request_id}: investor profit {profit} differs from "
            f"profit pool {breakdown.investor_profit_pool}"
        )


async def _set_statement_timeout(db: AsyncSession, seconds: float) -> None:
    if db.get_bind().dialect.name == "postgresql":
        await db.execute(text(f"SET LOCAL statement_timeout = {int(seconds * 1000)}"))


async def _apply_wallet_increments(
    db: AsyncSession,
    allocations: List[InvestorAllocation],
) -> None:
    """One bulk UPDATE for all investors: wallet += capital + profit, returns += profit."""
    wallet = {a.investor_id: a.amount for a in allocations if a.amount > 0}
    if not wallet:
        return
    returns = {a.investor_id: a.profit_amount for a in allocations if a.profit_amount > 0}

    values = {
        "wallet_balance": User.wallet_balance + case(wallet, value=User.id, else_=0),
    }
    if returns:
        values["total_returns"] = User.total_returns + case(returns, value=User.id, else_=0)

    await db.execute(
        update(User)
        .where(User.id.in_(list(wallet)))
        .values(**values)
        .execution_options(synchronize_session=False)
    )


async def _approve(
    db: AsyncSession,
    request_id: int,
    overrides: DistributionApproveRequest,
    admin: User,
    ip_address: Optional[str],
) -> ApprovalResult:
    """
    Body of the approval transaction.

    The capital check here is against money already paid out only. Other
    PENDING requests are proposals, not commitments; they were counted at
    submission and are re-checked against real payouts when approved.
    """
    await _set_statement_timeout(db, settings.distribution_transaction_timeout_seconds)

    distribution_request = await db.scalar(
        select(ProfitDistributionRequest)
        .options(
            selectinload(ProfitDistributionRequest.project).selectinload(Project.investments),
        )
        .where(ProfitDistributionRequest.id == request_id)
    )
    if not distribution_request:
        raise RequestNotFound()
    if distribution_request.status != RequestStatus.PENDING:
        raise RequestAlreadyProcessed()

    project = distribution_request.project
    holdings = group_investments(project.investments)
    if not holdings:
        raise InvalidDistribution("This deal has no investments to distribute profits to")

    params = build_parameters(distribution_request, overrides)
    breakdown = calculate_breakdown(params)
    override_map = _override_map(
        overrides, {h.investor_id for h in holdings}, breakdown.scenario
    )
    allocations = allocate(holdings, breakdown, override_map)
    _check_override_totals(request_id, allocations, breakdown)

    gain_percent = _pick(overrides.estimated_gain_percent, distribution_request.estimated_gain_percent)
    closing_percent = _pick(
        overrides.estimated_closing_percent,
        distribution_request.estimated_closing_percent,
    )

    capital_total = sum((a.capital_amount for a in allocations), Decimal("0"))
    remaining = await deal_total_investment(db, project.id) - await distributed_capital(db, project.id)
    if capital_total > remaining + MONEY_TOLERANCE:
        raise CapitalExceeded(
            f"Capital to return ({capital_total:.2f}) exceeds the remaining "
            f"invested capital of the deal ({remaining:.2f})",
            remaining_capital=remaining,
            max_total_amount=max_total_for_capital(
                remaining, distribution_request.distribution_type, gain_percent
            ),
        )

    # Guarded transition: only one approval can move the row out of PENDING
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(ProfitDistributionRequest)
        .where(
            ProfitDistributionRequest.id == request_id,
            ProfitDistributionRequest.status == RequestStatus.PENDING,
        )
        .values(
            status=RequestStatus.APPROVED,
            reviewed_by_id=admin.id,
            reviewed_at=now,
            total_amount=breakdown.total_amount,
            estimated_profit=breakdown.total_profit,
            estimated_return_capital=breakdown.capital_return_pool,
            estimated_gain_percent=gain_percent,
            estimated_closing_percent=closing_percent,
            sahem_invest_percent=breakdown.sahem_invest_percent,
            reserved_gain_percent=breakdown.reserved_gain_percent,
            sahem_invest_amount=breakdown.sahem_invest_amount,
            reserved_amount=breakdown.reserved_amount,
            is_loss=breakdown.is_loss,
        )
    )
    if result.rowcount != 1:
        raise RequestAlreadyProcessed()

    period = distribution_request.distribution_type
    round_label = "Partial" if period == DistributionType.PARTIAL else "Final"
    investors = {
        user.id: user
        for user in (
            await db.scalars(select(User).where(User.id.in_([a.investor_id for a in allocations])))
        ).all()
    }

    ledger_rows = []
    for allocation in allocations:
        if allocation.capital_amount > 0:
            ledger_rows.append(
                Transaction(
                    user_id=allocation.investor_id,
                    investment_id=allocation.investment_id,
                    project_id=project.id,
                    type=TransactionType.RETURN,
                    amount=allocation.capital_amount,
                    status=TransactionStatus.COMPLETED,
                    description=f"{round_label} capital return from {project.title}",
                    reference=f"PDR-{request_id}-CAP-{allocation.investor_id}",
                )
            )
        if allocation.profit_amount > 0:
            ledger_rows.append(
                Transaction(
                    user_id=allocation.investor_id,
                    investment_id=allocation.investment_id,
                    project_id=project.id,
                    type=TransactionType.PROFIT_DISTRIBUTION,
                    amount=allocation.profit_amount,
                    status=TransactionStatus.COMPLETED,
                    description=f"{round_label} profit distribution from {project.title}",
                    reference=f"PDR-{request_id}-PRF-{allocation.investor_id}",
                )
            )
        ledger_rows.append(
            ProfitDistribution(
                request_id=request_id,
                project_id=project.id,
                investor_id=allocation.investor_id,
                investment_id=allocation.investment_id,
                amount=allocation.amount,
                capital_amount=allocation.capital_amount,
                profit_amount=allocation.profit_amount,
                profit_rate=allocation.profit_rate,
                investment_share=allocation.investment_share_percent,
                status=DistributionStatus.COMPLETED,
                profit_period=period,
                distribution_date=now,
            )
        )

        investor = investors.get(allocation.investor_id)
        notifications.notify_localized(
            db,
            user_id=allocation.investor_id,
            language=investor.preferred_language if investor else None,
            notification_type=INVESTOR_NOTIFICATION[breakdown.scenario],
            metadata={
                "dealId": project.id,
                "requestId": request_id,
                "capitalAmount": allocation.capital_amount,
                "profitAmount": allocation.profit_amount,
                "profitRate": allocation.profit_rate,
                "distributionType": period.value,
            },
            deal=project.title,
            capital=allocation.capital_amount,
            profit=allocation.profit_amount,
        )

    db.add_all(ledger_rows)
    await _apply_wallet_increments(db, allocations)

    partner = await db.get(User, distribution_request.partner_id)
    notifications.notify_localized(
        db,
        user_id=distribution_request.partner_id,
        language=partner.preferred_language if partner else None,
        notification_type=notifications.DISTRIBUTION_APPROVED,
        metadata={
            "dealId": project.id,
            "requestId": request_id,
            "totalAmount": breakdown.total_amount,
            "distributionType": period.value,
        },
        deal=project.title,
        total=breakdown.total_amount,
        investors=len(allocations),
    )

    if period == DistributionType.FINAL:
        project.status = ProjectStatus.COMPLETED

    await log_action(
        db=db,
        user_id=admin.id,
        action=AuditAction.APPROVE_DISTRIBUTION,
        target_type="distribution_request",
        target_id=request_id,
        action_metadata={
            "scenario": breakdown.scenario.value,
            "total_amount": breakdown.total_amount,
            "capital_return": breakdown.capital_return_pool,
            "investor_profit": breakdown.investor_profit_pool,
            "investors": len(allocations),
        },
        ip_address=ip_address,
    )

    await db.commit()

    return ApprovalResult(
        request=distribution_request,
        breakdown=breakdown,
        allocations=allocations,
        unique_investors=len(holdings),
        total_investments=len(project.investments),
        estimated_gain_percent=Decimal(gain_percent),
        estimated_closing_percent=Decimal(closing_percent),
    )


async def approve_distribution_request(
    db: AsyncSession,
    request_id: int,
    overrides: DistributionApproveRequest,
    admin: User,
    ip_address: Optional[str] = None,
    triggers: Optional[EmailTriggers] = None,
) -> ApprovalResult:
    """
    Approve a PENDING request and apply the distribution atomically.

    Raises:
        RequestNotFound: no such request
        RequestAlreadyProcessed: request is not PENDING (also when a
            concurrent approval won the race)
        InvalidDistribution / CapitalExceeded: inconsistent amounts
        asyncio.TimeoutError: the transaction exceeded the configured timeout

    On any error the session is rolled back and the request stays PENDING.
    """
    timeout = settings.distribution_transaction_timeout_seconds
    try:
        result = await asyncio.wait_for(
            _approve(db, request_id, overrides, admin, ip_address),
            timeout=timeout,
        )
    except Exception:
        await db.rollback()
        raise

    breakdown = result.breakdown
    logger.info(
        f"Distribution request {request_id} approved by {admin.id}: "
        f"{breakdown.scenario.value}, total {breakdown.total_amount}, "
        f"{result.unique_investors} investors"
    )

    fire_and_forget(
        (triggers or email_triggers).notify_admin_profit_distribution(
            ProfitDistributionEmail(
                deal_title=result.request.project.title,
                total_amount=breakdown.total_amount,
                distribution_type=result.request.distribution_type.value,
                investor_count=result.unique_investors,
                approved_by=admin.name or admin.email,
            )
        ),
        name=f"admin-email-distribution-{request_id}",
    )

    return result
