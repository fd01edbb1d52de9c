"""
Tests for partner submission of distribution requests.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from sahem.models import (
    AuditAction,
    AuditLog,
    DistributionType,
    Project,
    ProjectStatus,
    ProfitDistributionRequest,
    RequestStatus,
    User,
    UserRole,
)
from sahem.schemas.distribution import DistributionSubmitRequest
from sahem.services.errors import CapitalExceeded, DealNotFound, InvalidDistribution
from sahem.services.submission import submit_distribution_request


def _submit_data(deal_id, **overrides):
    data = dict(
        deal_id=deal_id,
        estimated_gain_percent=Decimal("20"),
        estimated_closing_percent=Decimal("100"),
        total_amount=Decimal("5000"),
        distribution_type="FINAL",
        description="Warehouse sold",
    )
    data.update(overrides)
    return DistributionSubmitRequest(**data)


class TestSubmitDistribution:
    async def test_creates_pending_request(self, db_session, partner, deal):
        result = await submit_distribution_request(db_session, partner, _submit_data(deal.id))

        request = result.request
        assert result.investor_count == 2
        assert request.status == RequestStatus.PENDING
        assert request.distribution_type == DistributionType.FINAL
        assert request.estimated_profit == Decimal("1000.00")
        assert request.estimated_return_capital == Decimal("4000.00")
        assert request.sahem_invest_amount == Decimal("0.00")
        assert request.reserved_amount == Decimal("0.00")

        audit = (await db_session.scalars(select(AuditLog))).all()
        assert [a.action for a in audit] == [AuditAction.SUBMIT_DISTRIBUTION]

    async def test_accepts_camel_case_payload(self, deal):
        data = DistributionSubmitRequest.model_validate({
            "dealId": deal.id,
            "estimatedGainPercent": 5,
            "estimatedClosingPercent": 50,
            "totalAmount": 2000,
            "distributionType": "PARTIAL",
            "description": "First rent collection",
        })
        assert data.deal_id == deal.id
        assert data.total_amount == Decimal("2000")

    async def test_deal_of_another_partner(self, db_session, deal):
        other = User(email="other@example.com", name="Other", role=UserRole.PARTNER)
        db_session.add(other)
        await db_session.commit()

        with pytest.raises(DealNotFound) as exc_info:
            await submit_distribution_request(db_session, other, _submit_data(deal.id))
        assert exc_info.value.status_code == 404

    async def test_deal_without_investments(self, db_session, partner, deal):
        empty = Project(
            title="Empty deal",
            description="",
            owner_id=partner.id,
            funding_goal=Decimal("1000"),
            status=ProjectStatus.ACTIVE,
        )
        db_session.add(empty)
        await db_session.commit()

        with pytest.raises(InvalidDistribution, match="no investments"):
            await submit_distribution_request(db_session, partner, _submit_data(empty.id))

    @pytest.mark.parametrize(
        "field, value, message",
        [
            ("total_amount", Decimal("0"), "greater than zero"),
            ("estimated_gain_percent", Decimal("101"), "gain percent"),
            ("estimated_closing_percent", Decimal("-1"), "closing percent"),
            ("distribution_type", "INTERIM", "PARTIAL or FINAL"),
            ("description", "   ", "required fields"),
        ],
    )
    async def test_invalid_fields(self, db_session, partner, deal, field, value, message):
        with pytest.raises(InvalidDistribution, match=message):
            await submit_distribution_request(
                db_session, partner, _submit_data(deal.id, **{field: value})
            )

    async def test_partial_over_remaining_capital(self, db_session, partner, deal):
        with pytest.raises(CapitalExceeded) as exc_info:
            await submit_distribution_request(
                db_session,
                partner,
                _submit_data(deal.id, distribution_type="PARTIAL", total_amount=Decimal("12000")),
            )
        assert exc_info.value.extra == {"remainingCapital": 10000.0, "maxTotalAmount": 10000.0}

    async def test_pending_requests_reduce_remaining_capital(self, db_session, partner, deal):
        await submit_distribution_request(
            db_session,
            partner,
            _submit_data(deal.id, distribution_type="PARTIAL", total_amount=Decimal("7000")),
        )

        with pytest.raises(CapitalExceeded) as exc_info:
            await submit_distribution_request(
                db_session,
                partner,
                _submit_data(deal.id, total_amount=Decimal("5000"), estimated_gain_percent=Decimal("20")),
            )
        # FINAL at 20% gain: 3,000 capital left allows a 3,750 total
        assert exc_info.value.remaining_capital == Decimal("3000.00")
        assert exc_info.value.max_total_amount == Decimal("3750.00")

        pending = (await db_session.scalars(select(ProfitDistributionRequest))).all()
        assert len(pending) == 1
