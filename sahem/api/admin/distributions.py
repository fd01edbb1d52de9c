"""Admin review of profit distribution requests."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from sahem.auth.dependencies import require_admin
from sahem.db import get_db
from sahem.models import User
from sahem.schemas.distribution import (
    ActionResponse,
    DistributionApproveRequest,
    DistributionApproveResponse,
    DistributionEventResponse,
    DistributionHistoryResponse,
    DistributionRejectRequest,
    DistributionRequestListResponse,
    DistributionSummary,
    HistoricalSummary,
    InvestorHistoryResponse,
    request_response,
)
from sahem.services.approval import approve_distribution_request
from sahem.services.errors import DistributionError
from sahem.services.review import (
    distribution_history,
    list_distribution_requests,
    reject_distribution_request,
)
from sahem.utils.audit import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profit-distribution-requests")


@router.get("", response_model=DistributionRequestListResponse)
async def list_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
):
    """All distribution requests, newest first."""
    requests = await list_distribution_requests(db, status=status, search=search)
    return DistributionRequestListResponse(
        requests=[request_response(r) for r in requests],
    )


@router.get("/{request_id}/history", response_model=DistributionHistoryResponse)
async def get_history(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """PARTIAL rounds of the deal, used to prepare a FINAL approval."""
    summary, investors = await distribution_history(db, request_id)
    return DistributionHistoryResponse(
        historical_summary=HistoricalSummary(
            total_partial_amount=summary.total_partial_amount,
            total_reserved=summary.total_reserved,
            total_sahem_commission=summary.total_sahem_commission,
            distribution_count=summary.distribution_count,
            total_partial_profit=summary.total_partial_profit,
            total_partial_capital=summary.total_partial_capital,
        ),
        investor_historical_data=[
            InvestorHistoryResponse(
                investor_id=item.investor_id,
                investor_name=item.investor_name,
                investor_email=item.investor_email,
                total_investment=item.total_investment,
                partial_capital_received=item.partial_capital_received,
                partial_profit_received=item.partial_profit_received,
                distribution_history=[
                    DistributionEventResponse(
                        date=event.date,
                        capital_amount=event.capital_amount,
                        profit_amount=event.profit_amount,
                        type=event.type,
                    )
                    for event in item.distribution_history
                ],
            )
            for item in investors
        ],
    )


@router.post("/{request_id}/approve", response_model=DistributionApproveResponse)
async def approve_request(
    request_id: int,
    request: Request,
    data: Optional[DistributionApproveRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Approve a request and credit every investor of the deal."""
    try:
        result = await approve_distribution_request(
            db,
            request_id=request_id,
            overrides=data or DistributionApproveRequest(),
            admin=current_user,
            ip_address=get_client_ip(request),
        )
    except DistributionError:
        raise
    except Exception:
        logger.exception(f"Failed to approve distribution request {request_id}")
        return JSONResponse(
            {"error": "Failed to approve profit distribution"},
            status_code=500,
        )

    breakdown = result.breakdown
    return DistributionApproveResponse(
        message=result.message,
        summary=DistributionSummary(
            total_profit=breakdown.total_profit,
            total_amount=breakdown.total_amount,
            investor_distribution_amount=breakdown.investor_profit_pool,
            capital_return_amount=breakdown.capital_return_pool,
            sahem_invest_amount=breakdown.sahem_invest_amount,
            reserved_amount=breakdown.reserved_amount,
            sahem_invest_percent=breakdown.sahem_invest_percent,
            reserved_gain_percent=breakdown.reserved_gain_percent,
            unique_investors=result.unique_investors,
            total_investments=result.total_investments,
            distribution_type=result.request.distribution_type.value,
            is_loss=breakdown.is_loss,
            estimated_gain_percent=result.estimated_gain_percent,
            estimated_closing_percent=result.estimated_closing_percent,
        ),
    )


@router.post("/{request_id}/reject", response_model=ActionResponse)
async def reject_request(
    request_id: int,
    data: DistributionRejectRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    await reject_distribution_request(
        db,
        request_id=request_id,
        reason=data.reason,
        admin=current_user,
        ip_address=get_client_ip(request),
    )
    return ActionResponse(message="Profit distribution request rejected")
