"""Deal-level distribution records."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sahem.auth.dependencies import get_current_user
from sahem.db import get_db
from sahem.models import User
from sahem.schemas.distribution import DealDistributionsResponse, DistributionRecordResponse
from sahem.services.review import deal_distributions

router = APIRouter(prefix="/deals", tags=["Deals"])


@router.get("/{deal_id}/distributions", response_model=DealDistributionsResponse)
async def get_deal_distributions(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Distribution records of a deal.

    Investors get their own records only; partners only for deals they own.
    """
    records = await deal_distributions(db, deal_id, current_user)
    return DealDistributionsResponse(
        distributions=[
            DistributionRecordResponse(
                id=record.id,
                request_id=record.request_id,
                investor_id=record.investor_id,
                investment_id=record.investment_id,
                amount=record.amount,
                capital_amount=record.capital_amount,
                profit_amount=record.profit_amount,
                profit_rate=record.profit_rate,
                investment_share=record.investment_share,
                status=record.status.value,
                profit_period=record.profit_period.value,
                distribution_date=record.distribution_date,
            )
            for record in records
        ],
        count=len(records),
    )
