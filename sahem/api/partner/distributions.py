"""Partner endpoints for proposing and tracking profit distributions."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from sahem.auth.dependencies import require_partner
from sahem.db import get_db
from sahem.models import User
from sahem.schemas.distribution import (
    CommissionBreakdown,
    DistributionRequestListResponse,
    DistributionSubmitRequest,
    DistributionSubmitResponse,
    PartnerHistoricalSummary,
    PartnerRequestDetailResponse,
    ProfitabilityStatus,
    request_response,
)
from sahem.services.review import list_distribution_requests, partner_request_detail
from sahem.services.submission import submit_distribution_request
from sahem.utils.audit import get_client_ip

router = APIRouter()

PROFITABLE_MESSAGE = "The deal made a profit"
UNPROFITABLE_MESSAGE = "The deal did not reach the expected profit"


@router.post(
    "/profit-distribution",
    response_model=DistributionSubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_distribution(
    data: DistributionSubmitRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_partner),
):
    """Submit a distribution proposal for admin review."""
    result = await submit_distribution_request(
        db,
        partner=current_user,
        data=data,
        ip_address=get_client_ip(request),
    )
    submitted = result.request
    return DistributionSubmitResponse(
        message="Profit distribution request submitted for admin approval",
        request_id=submitted.id,
        total_amount=submitted.total_amount,
        estimated_profit=submitted.estimated_profit,
        estimated_return_capital=submitted.estimated_return_capital,
        distribution_type=submitted.distribution_type.value,
        investor_count=result.investor_count,
    )


@router.get("/profit-distribution-requests", response_model=DistributionRequestListResponse)
async def list_my_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_partner),
    status: Optional[str] = Query(None),
):
    requests = await list_distribution_requests(
        db,
        status=status,
        partner_id=current_user.id,
    )
    return DistributionRequestListResponse(
        requests=[request_response(r) for r in requests],
    )


@router.get(
    "/profit-distribution-requests/{request_id}",
    response_model=PartnerRequestDetailResponse,
)
async def get_my_request(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_partner),
):
    """One request with aggregated PARTIAL history and a commission preview."""
    detail = await partner_request_detail(db, request_id, current_user)
    commission = detail.commission
    return PartnerRequestDetailResponse(
        request=request_response(detail.request),
        deal_title=detail.request.project.title,
        deal_status=detail.request.project.status.value,
        historical_summary=PartnerHistoricalSummary(
            partial_distribution_count=detail.history.distribution_count,
            total_partial_amount=detail.history.total_partial_amount,
            distribution_dates=detail.history.distribution_dates,
        ),
        commission_breakdown=CommissionBreakdown(
            sahem_invest_amount=commission.sahem_invest_amount,
            sahem_percent=commission.sahem_percent,
            reserved_amount=commission.reserved_amount,
            reserve_percent=commission.reserve_percent,
            investor_pool=commission.investor_pool,
            total_profit=commission.total_profit,
        ),
        profitability_status=ProfitabilityStatus(
            is_profitable=commission.is_profitable,
            status_message=(
                PROFITABLE_MESSAGE if commission.is_profitable else UNPROFITABLE_MESSAGE
            ),
            profit_or_loss_amount=commission.total_profit,
        ),
    )
