"""
Profit distribution calculation.

Pure functions over Decimal money; nothing here touches the database.

Scenarios:
- PARTIAL: commission and reserve come off the gross total, the rest is
  capital recovery. No profit is recognized.
- FINAL with loss: no commission, no reserve, the whole total goes back
  as capital.
- FINAL with profit: commission comes off the profit only, no reserve.
  Capital returned is the request's estimated return capital.
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sahem.models.distribution import DistributionType
from sahem.services.errors import InvalidDistribution

CENT = Decimal("0.01")
RATE_PRECISION = Decimal("0.0001")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")

# Tolerance when comparing sums of rounded amounts
MONEY_TOLERANCE = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Round any numeric value to cents, half-up."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_rate(value: Decimal) -> Decimal:
    return value.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return to_money(amount * percent / HUNDRED)


class Scenario(str, Enum):
    """Mutually exclusive outcome of a distribution round."""
    PARTIAL = "partial"
    LOSS = "loss"
    PROFIT = "profit"


@dataclass
class DistributionParameters:
    """Effective request values after admin overrides are applied."""
    distribution_type: DistributionType
    total_amount: Decimal
    estimated_profit: Decimal
    estimated_return_capital: Decimal
    sahem_invest_percent: Decimal = Decimal("0")
    reserved_gain_percent: Decimal = Decimal("0")
    # Explicit amounts win over the percentages when given
    sahem_invest_amount: Optional[Decimal] = None
    reserved_amount: Optional[Decimal] = None
    is_loss: bool = False


@dataclass
class DistributionBreakdown:
    """Aggregate pools for one round."""
    scenario: Scenario
    total_amount: Decimal
    total_profit: Decimal
    sahem_invest_amount: Decimal
    reserved_amount: Decimal
    sahem_invest_percent: Decimal
    reserved_gain_percent: Decimal
    investor_profit_pool: Decimal
    capital_return_pool: Decimal

    @property
    def is_loss(self) -> bool:
        return self.scenario == Scenario.LOSS


@dataclass
class InvestorHolding:
    """An investor's combined position in one deal."""
    investor_id: int
    total_investment: Decimal
    first_investment_id: int
    investment_count: int = 1


@dataclass
class InvestorOverride:
    """Admin-supplied amounts for one investor, used verbatim."""
    investor_id: int
    capital_amount: Decimal
    profit_amount: Decimal


@dataclass
class InvestorAllocation:
    investor_id: int
    investment_id: int
    total_investment: Decimal
    share: Decimal
    capital_amount: Decimal
    profit_amount: Decimal
    overridden: bool = False

    @property
    def amount(self) -> Decimal:
        return self.capital_amount + self.profit_amount

    @property
    def investment_share_percent(self) -> Decimal:
        return to_rate(self.share * HUNDRED)

    @property
    def profit_rate(self) -> Decimal:
        """Profit as a percent of the investor's capital in the deal."""
        if self.total_investment <= 0:
            return Decimal("0")
        return to_rate(self.profit_amount / self.total_investment * HUNDRED)


def classify_scenario(params: DistributionParameters) -> Scenario:
    if params.distribution_type == DistributionType.PARTIAL:
        return Scenario.PARTIAL
    if params.is_loss or params.estimated_profit < 0:
        return Scenario.LOSS
    return Scenario.PROFIT


def calculate_breakdown(params: DistributionParameters) -> DistributionBreakdown:
    """
    Compute commission, reserve and the two investor pools.

    Raises:
        InvalidDistribution: negative inputs, or carve-outs larger than
            the amount they are taken from.
    """
    total = to_money(params.total_amount)
    profit = to_money(params.estimated_profit)
    commission_percent = Decimal(params.sahem_invest_percent or 0)
    reserve_percent = Decimal(params.reserved_gain_percent or 0)

    if total <= 0:
        raise InvalidDistribution("Total amount must be greater than zero")
    if commission_percent < 0 or commission_percent > HUNDRED:
        raise InvalidDistribution("Commission percent must be between 0 and 100")
    if reserve_percent < 0 or reserve_percent > HUNDRED:
        raise InvalidDistribution("Reserve percent must be between 0 and 100")

    scenario = classify_scenario(params)

    if scenario == Scenario.PARTIAL:
        reserved = (
            to_money(params.reserved_amount)
            if params.reserved_amount is not None
            else percent_of(total, reserve_percent)
        )
        commission = (
            to_money(params.sahem_invest_amount)
            if params.sahem_invest_amount is not None
            else percent_of(total, commission_percent)
        )
        if reserved < 0 or commission < 0:
            raise InvalidDistribution("Reserve and commission amounts cannot be negative")
        net = total - reserved - commission
        if net < 0:
            raise InvalidDistribution(
                "Reserve and commission exceed the total amount of the distribution"
            )
        return DistributionBreakdown(
            scenario=scenario,
            total_amount=total,
            total_profit=profit,
            sahem_invest_amount=commission,
            reserved_amount=reserved,
            sahem_invest_percent=commission_percent,
            reserved_gain_percent=reserve_percent,
            investor_profit_pool=ZERO,
            capital_return_pool=net,
        )

    if scenario == Scenario.LOSS:
        return DistributionBreakdown(
            scenario=scenario,
            total_amount=total,
            total_profit=profit,
            sahem_invest_amount=ZERO,
            reserved_amount=ZERO,
            sahem_invest_percent=Decimal("0"),
            reserved_gain_percent=Decimal("0"),
            investor_profit_pool=ZERO,
            capital_return_pool=total,
        )

    commission = (
        to_money(params.sahem_invest_amount)
        if params.sahem_invest_amount is not None
        else percent_of(profit, commission_percent)
    )
    capital = to_money(params.estimated_return_capital)
    if commission < 0:
        raise InvalidDistribution("Commission amount cannot be negative")
    if commission > profit:
        raise InvalidDistribution("Commission cannot exceed the estimated profit")
    if capital < 0:
        raise InvalidDistribution("Estimated return capital cannot be negative")

    return DistributionBreakdown(
        scenario=scenario,
        total_amount=total,
        total_profit=profit,
        sahem_invest_amount=commission,
        reserved_amount=ZERO,
        sahem_invest_percent=commission_percent,
        reserved_gain_percent=Decimal("0"),
        investor_profit_pool=profit - commission,
        capital_return_pool=capital,
    )


def group_investments(investments: Iterable[Any]) -> List[InvestorHolding]:
    """
    Combine investment rows by investor.

    Accepts anything with investor_id, amount and id attributes.
    Result is ordered largest holding first, ties by investor id.
    """
    holdings: Dict[int, InvestorHolding] = {}
    for investment in investments:
        amount = to_money(investment.amount)
        holding = holdings.get(investment.investor_id)
        if holding is None:
            holdings[investment.investor_id] = InvestorHolding(
                investor_id=investment.investor_id,
                total_investment=amount,
                first_investment_id=investment.id,
            )
            continue
        holding.total_investment += amount
        holding.investment_count += 1
        holding.first_investment_id = min(holding.first_investment_id, investment.id)

    return sorted(
        holdings.values(),
        key=lambda h: (-h.total_investment, h.investor_id),
    )


def split_pool(pool: Decimal, holdings: List[InvestorHolding]) -> List[Decimal]:
    """
    Split a pool proportionally to holdings, rounded to cents.

    The rounding residue goes to the first (largest) holding so the parts
    always add up to the pool exactly.
    """
    total_investment = sum((h.total_investment for h in holdings), Decimal("0"))
    if total_investment <= 0:
        raise InvalidDistribution("Deal has no invested capital to distribute against")

    parts = [to_money(pool * h.total_investment / total_investment) for h in holdings]
    if parts:
        parts[0] += pool - sum(parts, Decimal("0"))
    return parts


def allocate(
    holdings: List[InvestorHolding],
    breakdown: DistributionBreakdown,
    overrides: Optional[Dict[int, InvestorOverride]] = None,
) -> List[InvestorAllocation]:
    """
    Compute each investor's capital and profit for the round.

    Investors with an override get exactly the override amounts; everyone
    else gets their proportional share of the breakdown pools.
    """
    overrides = overrides or {}
    total_investment = sum((h.total_investment for h in holdings), Decimal("0"))
    if total_investment <= 0:
        raise InvalidDistribution("Deal has no invested capital to distribute against")

    capital_parts = split_pool(breakdown.capital_return_pool, holdings)
    profit_parts = split_pool(breakdown.investor_profit_pool, holdings)

    allocations = []
    for holding, capital, profit in zip(holdings, capital_parts, profit_parts):
        override = overrides.get(holding.investor_id)
        if override is not None:
            capital = to_money(override.capital_amount)
            profit = to_money(override.profit_amount)

        allocations.append(
            InvestorAllocation(
                investor_id=holding.investor_id,
                investment_id=holding.first_investment_id,
                total_investment=holding.total_investment,
                share=holding.total_investment / total_investment,
                capital_amount=capital,
                profit_amount=profit,
                overridden=override is not None,
            )
        )

    return allocations


def max_total_for_capital(
    remaining_capital: Decimal,
    distribution_type: DistributionType,
    gain_percent: Decimal,
) -> Decimal:
    """
    Largest total amount whose implied capital return fits the remaining capital.

    PARTIAL rounds return the whole total as capital. FINAL rounds return
    total minus the estimated profit, i.e. total * (1 - gain% / 100).
    """
    remaining = max(to_money(remaining_capital), ZERO)
    if distribution_type == DistributionType.PARTIAL:
        return remaining
    capital_fraction = (HUNDRED - Decimal(gain_percent)) / HUNDRED
    if capital_fraction <= 0:
        # Everything is profit, any total leaves capital untouched
        return remaining
    return (remaining / capital_fraction).quantize(CENT, rounding=ROUND_DOWN)


def proposed_capital_return(
    distribution_type: DistributionType,
    total_amount: Decimal,
    estimated_return_capital: Decimal,
) -> Decimal:
    """Capital a request would return if approved as submitted."""
    if distribution_type == DistributionType.PARTIAL:
        return to_money(total_amount)
    return to_money(estimated_return_capital)
