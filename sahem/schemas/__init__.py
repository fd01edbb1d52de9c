"""Pydantic schemas for request/response validation."""

from sahem.schemas.distribution import (
    ActionResponse,
    DealDistributionsResponse,
    DistributionApproveRequest,
    DistributionApproveResponse,
    DistributionHistoryResponse,
    DistributionRejectRequest,
    DistributionRequestListResponse,
    DistributionRequestResponse,
    DistributionSubmitRequest,
    DistributionSubmitResponse,
    DistributionSummary,
    InvestorDistributionOverride,
    PartnerRequestDetailResponse,
)

__all__ = [
    "ActionResponse",
    "DealDistributionsResponse",
    "DistributionApproveRequest",
    "DistributionApproveResponse",
    "DistributionHistoryResponse",
    "DistributionRejectRequest",
    "DistributionRequestListResponse",
    "DistributionRequestResponse",
    "DistributionSubmitRequest",
    "DistributionSubmitResponse",
    "DistributionSummary",
    "InvestorDistributionOverride",
    "PartnerRequestDetailResponse",
]
