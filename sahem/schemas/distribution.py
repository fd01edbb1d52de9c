"""
Profit distribution request/response schemas.

Wire format is camelCase; Python attributes stay snake_case.
Money goes out as JSON numbers.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema accepting and emitting camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ── Partner submission ───────────────────────────────────


class DistributionSubmitRequest(CamelModel):
    """Partner proposal. Ranges and type are checked by the service (400)."""

    deal_id: int
    estimated_gain_percent: Decimal
    estimated_closing_percent: Decimal
    total_amount: Decimal
    distribution_type: str
    description: str = Field(..., max_length=5000)


class DistributionSubmitResponse(CamelModel):
    success: bool = True
    message: str
    request_id: int
    total_amount: float
    estimated_profit: float
    estimated_return_capital: float
    distribution_type: str
    investor_count: int


# ── Admin approval ───────────────────────────────────────


class InvestorDistributionOverride(CamelModel):
    """Explicit amounts for one investor, used instead of the pro-rata split."""

    investor_id: int
    final_capital: Decimal = Field(default=Decimal("0"), ge=0)
    final_profit: Decimal = Field(default=Decimal("0"), ge=0)


class DistributionApproveRequest(CamelModel):
    """Optional admin edits applied before the distribution is computed."""

    total_amount: Optional[Decimal] = Field(None, gt=0)
    estimated_profit: Optional[Decimal] = None
    estimated_gain_percent: Optional[Decimal] = None
    estimated_closing_percent: Optional[Decimal] = None
    estimated_return_capital: Optional[Decimal] = Field(None, ge=0)
    sahem_invest_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    reserved_gain_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    reserved_amount: Optional[Decimal] = Field(None, ge=0)
    sahem_invest_amount: Optional[Decimal] = Field(None, ge=0)
    is_loss: Optional[bool] = None
    investor_distributions: Optional[List[InvestorDistributionOverride]] = None


class DistributionSummary(CamelModel):
    total_profit: float
    total_amount: float
    investor_distribution_amount: float
    capital_return_amount: float
    sahem_invest_amount: float
    reserved_amount: float
    sahem_invest_percent: float
    reserved_gain_percent: float
    unique_investors: int
    total_investments: int
    distribution_type: str
    is_loss: bool
    estimated_gain_percent: float
    estimated_closing_percent: float


class DistributionApproveResponse(CamelModel):
    success: bool = True
    message: str
    summary: DistributionSummary


class DistributionRejectRequest(CamelModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ActionResponse(CamelModel):
    success: bool = True
    message: str


# ── Listings ─────────────────────────────────────────────


class DealRef(CamelModel):
    id: int
    title: str
    current_funding: float
    funding_goal: float


class PartnerRef(CamelModel):
    id: int
    name: str
    email: str


class DistributionRequestResponse(CamelModel):
    id: int
    project_id: int
    partner_id: int
    description: str
    distribution_type: str
    status: str
    total_amount: float
    estimated_gain_percent: float
    estimated_closing_percent: float
    estimated_profit: float
    estimated_return_capital: float
    sahem_invest_percent: float
    reserved_gain_percent: float
    sahem_invest_amount: float
    reserved_amount: float
    is_loss: bool
    rejection_reason: Optional[str] = None
    requested_at: datetime
    reviewed_at: Optional[datetime] = None
    project: Optional[DealRef] = None
    partner: Optional[PartnerRef] = None


class DistributionRequestListResponse(CamelModel):
    requests: List[DistributionRequestResponse]


# ── History ──────────────────────────────────────────────


class HistoricalSummary(CamelModel):
    total_partial_amount: float = 0
    total_reserved: float = 0
    total_sahem_commission: float = 0
    distribution_count: int = 0
    total_partial_profit: float = 0
    total_partial_capital: float = 0


class DistributionEventResponse(CamelModel):
    date: datetime
    capital_amount: float
    profit_amount: float
    type: str


class InvestorHistoryResponse(CamelModel):
    investor_id: int
    investor_name: str
    investor_email: str
    total_investment: float
    partial_capital_received: float
    partial_profit_received: float
    distribution_history: List[DistributionEventResponse]


class DistributionHistoryResponse(CamelModel):
    historical_summary: HistoricalSummary
    investor_historical_data: List[InvestorHistoryResponse]


# ── Partner detail ───────────────────────────────────────


class PartnerHistoricalSummary(CamelModel):
    partial_distribution_count: int
    total_partial_amount: float
    distribution_dates: List[str]


class CommissionBreakdown(CamelModel):
    sahem_invest_amount: float
    sahem_percent: float
    reserved_amount: float
    reserve_percent: float
    investor_pool: float
    total_profit: float


class ProfitabilityStatus(CamelModel):
    is_profitable: bool
    status_message: str
    profit_or_loss_amount: float


class PartnerRequestDetailResponse(CamelModel):
    success: bool = True
    request: DistributionRequestResponse
    deal_title: str
    deal_status: str
    historical_summary: PartnerHistoricalSummary
    commission_breakdown: CommissionBreakdown
    profitability_status: ProfitabilityStatus


# ── Deal distributions ───────────────────────────────────


class DistributionRecordResponse(CamelModel):
    id: int
    request_id: int
    investor_id: int
    investment_id: int
    amount: float
    capital_amount: float
    profit_amount: float
    profit_rate: float
    investment_share: float
    status: str
    profit_period: str
    distribution_date: datetime


class DealDistributionsResponse(CamelModel):
    success: bool = True
    distributions: List[DistributionRecordResponse]
    count: int


def request_response(distribution_request, include_refs: bool = True) -> DistributionRequestResponse:
    """Build the wire shape of a request; project/partner must be loaded when include_refs."""
    project = distribution_request.project if include_refs else None
    partner = distribution_request.partner if include_refs else None
    return DistributionRequestResponse(
        id=distribution_request.id,
        project_id=distribution_request.project_id,
        partner_id=distribution_request.partner_id,
        description=distribution_request.description,
        distribution_type=distribution_request.distribution_type.value,
        status=distribution_request.status.value,
        total_amount=distribution_request.total_amount,
        estimated_gain_percent=distribution_request.estimated_gain_percent,
        estimated_closing_percent=distribution_request.estimated_closing_percent,
        estimated_profit=distribution_request.estimated_profit,
        estimated_return_capital=distribution_request.estimated_return_capital,
        sahem_invest_percent=distribution_request.sahem_invest_percent,
        reserved_gain_percent=distribution_request.reserved_gain_percent,
        sahem_invest_amount=distribution_request.sahem_invest_amount,
        reserved_amount=distribution_request.reserved_amount,
        is_loss=distribution_request.is_loss,
        rejection_reason=distribution_request.rejection_reason,
        requested_at=distribution_request.created_at,
        reviewed_at=distribution_request.reviewed_at,
        project=DealRef(
            id=project.id,
            title=project.title,
            current_funding=project.current_funding,
            funding_goal=project.funding_goal,
        ) if project else None,
        partner=PartnerRef(
            id=partner.id,
            name=partner.name,
            email=partner.email,
        ) if partner else None,
    )
