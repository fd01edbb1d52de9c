"""
Tests for the distribution approval engine.

Covers:
- FINAL profit, FINAL loss and PARTIAL scenarios end to end
- Wallet and total-returns consistency
- Single-shot approval and rollback on failure
- A concurrent approval losing at the guarded update, and the timeout
- Deal completion and the post-commit admin email
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from sahem.config import settings
from sahem.models import (
    AuditAction,
    AuditLog,
    DistributionType,
    Notification,
    OutboxMessage,
    ProfitDistribution,
    ProfitDistributionRequest,
    ProjectStatus,
    RequestStatus,
    Transaction,
    TransactionType,
)
from sahem.schemas.distribution import DistributionApproveRequest, InvestorDistributionOverride
from sahem.services import approval, dispatch, notifications
from sahem.services.approval import approve_distribution_request
from sahem.services.calculator import Scenario
from sahem.services.email_triggers import EmailTriggers, ProfitDistributionEmail
from sahem.services.errors import (
    CapitalExceeded,
    InvalidDistribution,
    RequestAlreadyProcessed,
    RequestNotFound,
)


async def _create_request(db, deal, partner, **fields):
    values = dict(
        project_id=deal.id,
        partner_id=partner.id,
        description="Closing round",
        distribution_type=DistributionType.FINAL,
        total_amount=Decimal("11000.00"),
        estimated_gain_percent=Decimal("9.0909"),
        estimated_closing_percent=Decimal("100"),
        estimated_profit=Decimal("1000.00"),
        estimated_return_capital=Decimal("10000.00"),
        status=RequestStatus.PENDING,
    )
    values.update(fields)
    request = ProfitDistributionRequest(**values)
    db.add(request)
    await db.commit()
    return request


def _partial_fields(total="2000.00"):
    return dict(
        distribution_type=DistributionType.PARTIAL,
        total_amount=Decimal(total),
        estimated_gain_percent=Decimal("0"),
        estimated_profit=Decimal("0.00"),
        estimated_return_capital=Decimal(total),
    )


class _RecordingTriggers:
    def __init__(self):
        self.calls = []

    async def notify_admin_profit_distribution(self, data):
        self.calls.append(data)


class _FailingTriggers:
    async def notify_admin_profit_distribution(self, data):
        raise RuntimeError("smtp down")


@pytest.fixture
def triggers():
    return _RecordingTriggers()


async def _records(db, request_id):
    result = await db.scalars(
        select(ProfitDistribution).where(ProfitDistribution.request_id == request_id)
    )
    return {r.investor_id: r for r in result.all()}


# ── FINAL with profit ────────────────────────────────────


class TestFinalProfit:
    async def test_sixty_forty_example(self, db_session, admin, partner, investors, deal, triggers):
        a, b = investors
        request = await _create_request(db_session, deal, partner)

        result = await approve_distribution_request(
            db_session,
            request.id,
            DistributionApproveRequest(sahem_invest_percent=Decimal("10")),
            admin,
            triggers=triggers,
        )

        breakdown = result.breakdown
        assert breakdown.scenario == Scenario.PROFIT
        assert breakdown.sahem_invest_amount == Decimal("100.00")
        assert breakdown.investor_profit_pool == Decimal("900.00")
        assert result.unique_investors == 2

        records = await _records(db_session, request.id)
        assert records[a.id].profit_amount == Decimal("540.00")
        assert records[b.id].profit_amount == Decimal("360.00")
        assert records[a.id].capital_amount == Decimal("6000.00")
        assert records[b.id].capital_amount == Decimal("4000.00")
        assert records[a.id].profit_period == DistributionType.FINAL

        total_profit = sum(r.profit_amount for r in records.values())
        assert total_profit + breakdown.sahem_invest_amount == request.estimated_profit

    async def test_request_persists_effective_values(self, db_session, admin, partner, deal, triggers):
        request = await _create_request(db_session, deal, partner)

        await approve_distribution_request(
            db_session,
            request.id,
            DistributionApproveRequest(sahem_invest_percent=Decimal("10")),
            admin,
            triggers=triggers,
        )

        await db_session.refresh(request)
        assert request.status == RequestStatus.APPROVED
        assert request.reviewed_by_id == admin.id
        assert request.reviewed_at is not None
        assert request.sahem_invest_amount == Decimal("100.00")
        assert request.sahem_invest_percent == Decimal("10")
        assert request.is_loss is False
        assert request.estimated_return_capital == Decimal("10000.00")

    async def test_ledger_transactions(self, db_session, admin, partner, investors, deal, triggers):
        a, _ = investors
        request = await _create_request(db_session, deal, partner)

        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
        )

        rows = (await db_session.scalars(
            select(Transaction).where(Transaction.user_id == a.id).order_by(Transaction.id)
        )).all()
        assert [(t.type, t.amount) for t in rows] == [
            (TransactionType.RETURN, Decimal("6000.00")),
            (TransactionType.PROFIT_DISTRIBUTION, Decimal("600.00")),
        ]
        assert rows[0].reference == f"PDR-{request.id}-CAP-{a.id}"

    async def test_wallet_and_returns(self, db_session, admin, partner, investors, deal, triggers):
        a, b = investors
        request = await _create_request(db_session, deal, partner)

        await approve_distribution_request(
            db_session,
            request.id,
            DistributionApproveRequest(sahem_invest_percent=Decimal("10")),
            admin,
            triggers=triggers,
        )

        await db_session.refresh(a)
        await db_session.refresh(b)
        assert a.wallet_balance == Decimal("6540.00")
        assert a.total_returns == Decimal("540.00")
        assert b.wallet_balance == Decimal("4360.00")
        assert b.total_returns == Decimal("360.00")

    async def test_completes_deal(self, db_session, admin, partner, deal, triggers):
        request = await _create_request(db_session, deal, partner)
        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
        )

        await db_session.refresh(deal)
        assert deal.status == ProjectStatus.COMPLETED

    async def test_notifications_in_preferred_language(self, db_session, admin, partner, investors, deal, triggers):
        a, b = investors
        request = await _create_request(db_session, deal, partner)
        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
        )

        rows = (await db_session.scalars(select(Notification))).all()
        by_user = {n.user_id: n for n in rows}
        assert by_user[a.id].type == notifications.PROFIT_RECEIVED
        assert by_user[a.id].title == "New profits received"
        assert by_user[b.id].title == notifications.MESSAGES[notifications.PROFIT_RECEIVED]["ar"][0]
        assert by_user[partner.id].type == notifications.DISTRIBUTION_APPROVED
        assert by_user[a.id].notification_metadata["profitAmount"] == 600.0

    async def test_audit_entry(self, db_session, admin, partner, deal, triggers):
        request = await _create_request(db_session, deal, partner)
        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
        )

        entry = await db_session.scalar(
            select(AuditLog).where(AuditLog.action == AuditAction.APPROVE_DISTRIBUTION)
        )
        assert entry.target_id == request.id
        assert entry.action_metadata["scenario"] == "profit"


# ── FINAL with loss ──────────────────────────────────────


class TestFinalLoss:
    async def test_no_commission_and_no_returns(self, db_session, admin, partner, investors, deal, triggers):
        a, b = investors
        request = await _create_request(
            db_session,
            deal,
            partner,
            total_amount=Decimal("8000.00"),
            estimated_profit=Decimal("-2000.00"),
            estimated_return_capital=Decimal("8000.00"),
        )

        result = await approve_distribution_request(
            db_session,
            request.id,
            DistributionApproveRequest(sahem_invest_percent=Decimal("10"), reserved_gain_percent=Decimal("10")),
            admin,
            triggers=triggers,
        )

        assert result.breakdown.scenario == Scenario.LOSS
        assert result.breakdown.sahem_invest_amount == Decimal("0.00")
        assert result.breakdown.reserved_amount == Decimal("0.00")

        records = await _records(db_session, request.id)
        assert sum(r.capital_amount for r in records.values()) == Decimal("8000.00")
        assert all(r.profit_amount == Decimal("0.00") for r in records.values())

        await db_session.refresh(a)
        assert a.wallet_balance == Decimal("4800.00")
        assert a.total_returns == Decimal("0.00")

        await db_session.refresh(request)
        assert request.is_loss is True

        kinds = (await db_session.scalars(select(Transaction.type).distinct())).all()
        assert kinds == [TransactionType.RETURN]


# ── PARTIAL ──────────────────────────────────────────────


class TestPartial:
    async def test_two_thousand_example(self, db_session, admin, partner, investors, deal, triggers):
        a, b = investors
        request = await _create_request(db_session, deal, partner, **_partial_fields())

        result = await approve_distribution_request(
            db_session,
            request.id,
            DistributionApproveRequest(reserved_amount=Decimal("200"), sahem_invest_amount=Decimal("100")),
            admin,
            triggers=triggers,
        )

        assert result.breakdown.capital_return_pool == Decimal("1700.00")
        assert result.breakdown.investor_profit_pool == Decimal("0.00")

        records = await _records(db_session, request.id)
        assert records[a.id].capital_amount == Decimal("1020.00")
        assert records[b.id].capital_amount == Decimal("680.00")
        assert all(r.profit_period == DistributionType.PARTIAL for r in records.values())
        assert all(r.profit_amount == Decimal("0.00") for r in records.values())

        await db_session.refresh(a)
        assert a.total_returns == Decimal("0.00")
        assert a.wallet_balance == Decimal("1020.00")

    async def test_persists_capital_actually_returned(self, db_session, admin, partner, deal, triggers):
        request = await _create_request(db_session, deal, partner, **_partial_fields())

        await approve_distribution_request(
            db_session,
            request.id,
            DistributionApproveRequest(reserved_amount=Decimal("200"), sahem_invest_amount=Decimal("100")),
            admin,
            triggers=triggers,
        )

        await db_session.refresh(request)
        assert request.estimated_return_capital == Decimal("1700.00")
        assert request.reserved_amount == Decimal("200.00")
        assert request.sahem_invest_amount == Decimal("100.00")

    async def test_does_not_complete_deal(self, db_session, admin, partner, deal, triggers):
        request = await _create_request(db_session, deal, partner, **_partial_fields())
        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
        )

        await db_session.refresh(deal)
        assert deal.status == ProjectStatus.FUNDED


# ── Guards ───────────────────────────────────────────────


class TestApprovalGuards:
    async def test_unknown_request(self, db_session, admin, triggers):
        with pytest.raises(RequestNotFound):
            await approve_distribution_request(
                db_session, 999, DistributionApproveRequest(), admin, triggers=triggers
            )

    async def test_second_approval_is_rejected(self, db_session, admin, partner, investors, deal, triggers):
        a, _ = investors
        request = await _create_request(db_session, deal, partner)
        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
        )

        with pytest.raises(RequestAlreadyProcessed):
            await approve_distribution_request(
                db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
            )

        count = await db_session.scalar(
            select(func.count()).select_from(ProfitDistribution)
        )
        assert count == 2
        await db_session.refresh(a)
        assert a.wallet_balance == Decimal("6600.00")

    async def test_capital_overrun_leaves_request_pending(self, db_session, admin, partner, investors, deal, triggers):
        a, _ = investors
        request = await _create_request(
            db_session, deal, partner, estimated_return_capital=Decimal("12000.00")
        )

        with pytest.raises(CapitalExceeded):
            await approve_distribution_request(
                db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
            )

        await db_session.refresh(request)
        assert request.status == RequestStatus.PENDING
        assert await db_session.scalar(select(func.count()).select_from(Transaction)) == 0
        await db_session.refresh(a)
        assert a.wallet_balance == Decimal("0.00")

    async def test_override_for_unknown_investor(self, db_session, admin, partner, deal, triggers):
        request = await _create_request(db_session, deal, partner)
        overrides = DistributionApproveRequest(
            investor_distributions=[InvestorDistributionOverride(investor_id=12345, final_capital=Decimal("1"))],
        )

        with pytest.raises(InvalidDistribution):
            await approve_distribution_request(db_session, request.id, overrides, admin, triggers=triggers)

    async def test_overrides_used_verbatim(self, db_session, admin, partner, investors, deal, triggers):
        a, b = investors
        request = await _create_request(db_session, deal, partner)
        overrides = DistributionApproveRequest(
            investor_distributions=[
                InvestorDistributionOverride(investor_id=a.id, final_capital=Decimal("5000"), final_profit=Decimal("600")),
            ],
        )

        await approve_distribution_request(db_session, request.id, overrides, admin, triggers=triggers)

        records = await _records(db_session, request.id)
        assert records[a.id].capital_amount == Decimal("5000.00")
        assert records[a.id].profit_amount == Decimal("600.00")
        assert records[b.id].capital_amount == Decimal("4000.00")

    async def _assert_untouched(self, db_session, request, investor):
        await db_session.refresh(request)
        assert request.status == RequestStatus.PENDING
        assert await db_session.scalar(select(func.count()).select_from(Transaction)) == 0
        assert await db_session.scalar(select(func.count()).select_from(ProfitDistribution)) == 0
        await db_session.refresh(investor)
        assert investor.wallet_balance == Decimal("0.00")
        assert investor.total_returns == Decimal("0.00")

    async def test_override_profit_rejected_in_partial_round(self, db_session, admin, partner, investors, deal, triggers):
        a, _ = investors
        request = await _create_request(db_session, deal, partner, **_partial_fields())
        overrides = DistributionApproveRequest(
            investor_distributions=[
                InvestorDistributionOverride(investor_id=a.id, final_capital=Decimal("1000"), final_profit=Decimal("500")),
            ],
        )

        with pytest.raises(InvalidDistribution, match="profit cannot be distributed"):
            await approve_distribution_request(db_session, request.id, overrides, admin, triggers=triggers)

        await self._assert_untouched(db_session, request, a)

    async def test_override_profit_rejected_in_loss_round(self, db_session, admin, partner, investors, deal, triggers):
        a, _ = investors
        request = await _create_request(
            db_session,
            deal,
            partner,
            total_amount=Decimal("8000.00"),
            estimated_profit=Decimal("-2000.00"),
            estimated_return_capital=Decimal("8000.00"),
        )
        overrides = DistributionApproveRequest(
            investor_distributions=[
                InvestorDistributionOverride(investor_id=a.id, final_capital=Decimal("4800"), final_profit=Decimal("300")),
            ],
        )

        with pytest.raises(InvalidDistribution, match="profit cannot be distributed"):
            await approve_distribution_request(db_session, request.id, overrides, admin, triggers=triggers)

        await self._assert_untouched(db_session, request, a)

    async def test_capital_only_override_in_partial_round(self, db_session, admin, partner, investors, deal, triggers):
        a, b = investors
        request = await _create_request(db_session, deal, partner, **_partial_fields())
        overrides = DistributionApproveRequest(
            investor_distributions=[
                InvestorDistributionOverride(investor_id=a.id, final_capital=Decimal("1500")),
            ],
        )

        await approve_distribution_request(db_session, request.id, overrides, admin, triggers=triggers)

        records = await _records(db_session, request.id)
        assert records[a.id].capital_amount == Decimal("1500.00")
        assert records[a.id].profit_amount == Decimal("0.00")
        await db_session.refresh(a)
        assert a.total_returns == Decimal("0.00")


# ── Concurrency and timeout ──────────────────────────────


class TestApprovalRaceAndTimeout:
    async def test_concurrent_approval_loses_at_guarded_update(
        self, db_session, session_factory, admin, partner, investors, deal, triggers, monkeypatch
    ):
        """A second admin approves after this one has read the request as PENDING."""
        a, _ = investors
        request = await _create_request(db_session, deal, partner)
        real_distributed_capital = approval.distributed_capital
        competing = []

        async def distributed_capital_then_compete(db, project_id):
            value = await real_distributed_capital(db, project_id)
            if not competing:
                competing.append(True)
                async with session_factory() as other:
                    competing.append(
                        await approve_distribution_request(
                            other, request.id, DistributionApproveRequest(), admin, triggers=triggers
                        )
                    )
            return value

        monkeypatch.setattr(approval, "distributed_capital", distributed_capital_then_compete)

        with pytest.raises(RequestAlreadyProcessed):
            await approve_distribution_request(
                db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
            )

        winner = competing[1]
        assert winner.request.status == RequestStatus.APPROVED

        await db_session.refresh(request)
        assert request.status == RequestStatus.APPROVED
        assert await db_session.scalar(select(func.count()).select_from(ProfitDistribution)) == 2
        references = (await db_session.scalars(select(Transaction.reference))).all()
        assert len(references) == 4
        assert len(set(references)) == 4
        await db_session.refresh(a)
        assert a.wallet_balance == Decimal("6600.00")

    async def test_timeout_rolls_back(self, db_session, admin, partner, investors, deal, triggers, monkeypatch):
        a, _ = investors
        request = await _create_request(db_session, deal, partner)
        real_increments = approval._apply_wallet_increments

        async def slow_increments(db, allocations):
            await real_increments(db, allocations)
            await asyncio.sleep(5)

        monkeypatch.setattr(approval, "_apply_wallet_increments", slow_increments)
        monkeypatch.setattr(settings, "distribution_transaction_timeout_seconds", 0.1)

        with pytest.raises(asyncio.TimeoutError):
            await approve_distribution_request(
                db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
            )

        await db_session.refresh(request)
        assert request.status == RequestStatus.PENDING
        assert await db_session.scalar(select(func.count()).select_from(Transaction)) == 0
        assert await db_session.scalar(select(func.count()).select_from(ProfitDistribution)) == 0
        await db_session.refresh(a)
        assert a.wallet_balance == Decimal("0.00")
        assert triggers.calls == []


# ── Admin email ──────────────────────────────────────────


class TestAdminEmail:
    async def test_email_queued_after_commit(self, db_session, admin, partner, deal, session_factory, admin_email_setting):
        request = await _create_request(db_session, deal, partner)
        await approve_distribution_request(
            db_session,
            request.id,
            DistributionApproveRequest(),
            admin,
            triggers=EmailTriggers(session_factory=session_factory),
        )
        await dispatch.drain()

        message = await db_session.scalar(select(OutboxMessage))
        assert message.recipient == "ops@example.com"
        assert deal.title in message.subject

    async def test_failing_trigger_does_not_affect_result(self, db_session, admin, partner, deal):
        request = await _create_request(db_session, deal, partner)

        result = await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=_FailingTriggers()
        )
        await dispatch.drain()

        assert result.request.status == RequestStatus.APPROVED
        await db_session.refresh(request)
        assert request.status == RequestStatus.APPROVED

    async def test_email_summary(self, db_session, admin, partner, deal, triggers):
        request = await _create_request(db_session, deal, partner)
        await approve_distribution_request(
            db_session, request.id, DistributionApproveRequest(), admin, triggers=triggers
        )
        await dispatch.drain()

        assert len(triggers.calls) == 1
        summary = triggers.calls[0]
        assert summary.deal_title == deal.title
        assert summary.total_amount == Decimal("11000.00")
        assert summary.distribution_type == "FINAL"
        assert summary.investor_count == 2
        assert summary.approved_by == admin.name

    async def test_no_email_without_admin_address(self, db_session, session_factory):
        triggers = EmailTriggers(session_factory=session_factory)
        result = await triggers.notify_admin_profit_distribution(
            ProfitDistributionEmail(
                deal_title="Deal",
                total_amount=Decimal("10"),
                distribution_type="PARTIAL",
                investor_count=1,
                approved_by="Admin",
            )
        )

        assert result is None
        assert await db_session.scalar(select(func.count()).select_from(OutboxMessage)) == 0
