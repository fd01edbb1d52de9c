"""
Tests for rejection, listings and distribution history.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from sahem.models import (
    AuditAction,
    AuditLog,
    DistributionType,
    Notification,
    ProfitDistributionRequest,
    RequestStatus,
    User,
    UserRole,
)
from sahem.schemas.distribution import DistributionApproveRequest
from sahem.services import notifications
from sahem.services.approval import approve_distribution_request
from sahem.services.errors import (
    InvalidDistribution,
    RequestAlreadyProcessed,
    RequestForbidden,
    RequestNotFound,
)
from sahem.services.review import (
    deal_distributions,
    distribution_history,
    estimate_commission,
    list_distribution_requests,
    partner_request_detail,
    reject_distribution_request,
)


class _NullTriggers:
    async def notify_admin_profit_distribution(self, data):
        return None


async def _request(db, deal, partner, distribution_type=DistributionType.PARTIAL, total="2000.00", description="Rent"):
    total = Decimal(total)
    is_partial = distribution_type == DistributionType.PARTIAL
    profit = Decimal("0.00") if is_partial else Decimal("1000.00")
    request = ProfitDistributionRequest(
        project_id=deal.id,
        partner_id=partner.id,
        description=description,
        distribution_type=distribution_type,
        total_amount=total,
        estimated_gain_percent=Decimal("0") if is_partial else Decimal("10"),
        estimated_closing_percent=Decimal("50"),
        estimated_profit=profit,
        estimated_return_capital=total - profit,
        status=RequestStatus.PENDING,
    )
    db.add(request)
    await db.commit()
    return request


# ── Reject ───────────────────────────────────────────────


class TestReject:
    async def test_reject_pending(self, db_session, admin, partner, deal):
        request = await _request(db_session, deal, partner)

        await reject_distribution_request(db_session, request.id, " Numbers do not match ", admin)

        await db_session.refresh(request)
        assert request.status == RequestStatus.REJECTED
        assert request.rejection_reason == "Numbers do not match"
        assert request.reviewed_by_id == admin.id

        notification = await db_session.scalar(
            select(Notification).where(Notification.user_id == partner.id)
        )
        assert notification.type == notifications.DISTRIBUTION_REJECTED
        assert "Numbers do not match" in notification.message

        entry = await db_session.scalar(select(AuditLog))
        assert entry.action == AuditAction.REJECT_DISTRIBUTION

    async def test_reject_is_single_shot(self, db_session, admin, partner, deal):
        request = await _request(db_session, deal, partner)
        await reject_distribution_request(db_session, request.id, "No", admin)

        with pytest.raises(RequestAlreadyProcessed):
            await reject_distribution_request(db_session, request.id, "Again", admin)

    async def test_approved_request_cannot_be_rejected(self, db_session, admin, partner, deal):
        request = await _request(db_session, deal, partner)
        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=_NullTriggers()
        )

        with pytest.raises(RequestAlreadyProcessed):
            await reject_distribution_request(db_session, request.id, "Too late", admin)

    async def test_unknown_request(self, db_session, admin):
        with pytest.raises(RequestNotFound):
            await reject_distribution_request(db_session, 404, "Missing", admin)


# ── Listing ──────────────────────────────────────────────


class TestListRequests:
    async def test_filters(self, db_session, admin, partner, deal):
        first = await _request(db_session, deal, partner, description="Rent for January")
        second = await _request(db_session, deal, partner, description="Rent for February")
        await reject_distribution_request(db_session, second.id, "Duplicate", admin)

        everything = await list_distribution_requests(db_session, status="all")
        assert {r.id for r in everything} == {first.id, second.id}

        pending = await list_distribution_requests(db_session, status="pending")
        assert [r.id for r in pending] == [first.id]

        by_description = await list_distribution_requests(db_session, search="january")
        assert [r.id for r in by_description] == [first.id]

        by_deal = await list_distribution_requests(db_session, search="warehouse")
        assert len(by_deal) == 2

        by_partner = await list_distribution_requests(db_session, search="nour")
        assert len(by_partner) == 2

        assert await list_distribution_requests(db_session, search="nothing-matches") == []

    async def test_unknown_status(self, db_session):
        with pytest.raises(InvalidDistribution):
            await list_distribution_requests(db_session, status="archived")

    async def test_partner_scope(self, db_session, partner, deal):
        await _request(db_session, deal, partner)
        other = User(email="p2@example.com", name="Other", role=UserRole.PARTNER)
        db_session.add(other)
        await db_session.commit()

        assert len(await list_distribution_requests(db_session, partner_id=partner.id)) == 1
        assert await list_distribution_requests(db_session, partner_id=other.id) == []


# ── History ──────────────────────────────────────────────


class TestHistory:
    async def test_partial_rounds_before_final(self, db_session, admin, partner, investors, deal):
        a, b = investors
        partial = await _request(db_session, deal, partner)
        await approve_distribution_request(
            db_session,
            partial.id,
            DistributionApproveRequest(reserved_amount=Decimal("200"), sahem_invest_amount=Decimal("100")),
            admin,
            triggers=_NullTriggers(),
        )
        final = await _request(
            db_session, deal, partner, distribution_type=DistributionType.FINAL, total="9300.00"
        )

        summary, investor_data = await distribution_history(db_session, final.id)

        assert summary.distribution_count == 1
        assert summary.total_partial_amount == Decimal("2000.00")
        assert summary.total_reserved == Decimal("200.00")
        assert summary.total_sahem_commission == Decimal("100.00")
        assert summary.total_partial_capital == Decimal("1700.00")

        by_investor = {item.investor_id: item for item in investor_data}
        assert by_investor[a.id].total_investment == Decimal("6000.00")
        assert by_investor[a.id].partial_capital_received == Decimal("1020.00")
        assert by_investor[b.id].partial_capital_received == Decimal("680.00")
        assert len(by_investor[a.id].distribution_history) == 1

    async def test_partial_request_has_empty_history(self, db_session, partner, deal):
        request = await _request(db_session, deal, partner)
        summary, investor_data = await distribution_history(db_session, request.id)
        assert summary.distribution_count == 0
        assert investor_data == []


# ── Partner detail ───────────────────────────────────────


class TestPartnerDetail:
    async def test_commission_defaults(self, db_session, partner, deal):
        request = await _request(db_session, deal, partner, distribution_type=DistributionType.FINAL, total="5000.00")
        detail = await partner_request_detail(db_session, request.id, partner)

        commission = detail.commission
        assert commission.sahem_percent == Decimal("10")
        assert commission.reserve_percent == Decimal("10")
        assert commission.sahem_invest_amount == Decimal("100.00")
        assert commission.reserved_amount == Decimal("100.00")
        assert commission.investor_pool == Decimal("800.00")
        assert commission.is_profitable
        assert detail.history.distribution_count == 0

    async def test_other_partner_forbidden(self, db_session, partner, deal):
        request = await _request(db_session, deal, partner)
        other = User(email="p3@example.com", name="Other", role=UserRole.PARTNER)
        db_session.add(other)
        await db_session.commit()

        with pytest.raises(RequestForbidden):
            await partner_request_detail(db_session, request.id, other)

    def test_loss_is_not_profitable(self):
        request = ProfitDistributionRequest(
            estimated_profit=Decimal("-300"),
            sahem_invest_percent=Decimal("0"),
            reserved_gain_percent=Decimal("0"),
        )
        assert not estimate_commission(request).is_profitable


# ── Deal distributions ───────────────────────────────────


class TestDealDistributions:
    async def test_scoped_by_role(self, db_session, admin, partner, investors, deal):
        a, _ = investors
        request = await _request(db_session, deal, partner)
        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=_NullTriggers()
        )

        assert len(await deal_distributions(db_session, deal.id, admin)) == 2
        assert len(await deal_distributions(db_session, deal.id, partner)) == 2

        own = await deal_distributions(db_session, deal.id, a)
        assert [r.investor_id for r in own] == [a.id]

    async def test_partner_of_other_deal(self, db_session, partner, deal):
        other = User(email="p4@example.com", name="Other", role=UserRole.PARTNER)
        db_session.add(other)
        await db_session.commit()

        with pytest.raises(RequestForbidden):
            await deal_distributions(db_session, deal.id, other)
