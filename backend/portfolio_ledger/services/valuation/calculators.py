# backend/portfolio_ledger/services/valuation/calculators.py
"""
Pure valuation calculators.

Nothing here touches the database or the provider. Inputs are decoded
records and quotes; outputs are the frozen types in valuation/types.py.

Calculators:
    HoldingValuationCalculator - quotes × holdings → PortfolioValuation
    SummaryCalculator          - valuation + cash + deposits → PortfolioSummary
    SectorAllocationCalculator - valuation → list[SectorAllocation]
"""

from collections import defaultdict
from decimal import Decimal

from portfolio_ledger.services.constants import (
    HUNDRED,
    PERCENT_PRECISION,
    PRICE_UNAVAILABLE_ALL,
    PRICE_UNAVAILABLE_SYMBOL,
    QUANTITY_PRECISION,
    UNKNOWN_SECTOR,
    ZERO,
)
from portfolio_ledger.services.market_data.base import Quote
from portfolio_ledger.services.records import HoldingRecord
from portfolio_ledger.services.valuation.types import (
    HoldingValuation,
    PortfolioSummary,
    PortfolioValuation,
    PriceStatus,
    SectorAllocation,
)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole × 100, or 0 when whole is not positive."""
    if whole <= ZERO:
        return ZERO
    return (part / whole * HUNDRED).quantize(PERCENT_PRECISION)


class HoldingValuationCalculator:
    """
    Joins holdings with quotes.

    A holding has a price when its quote exists and the price is > 0.
    Weights are computed after all market values are known, so they sum
    to 100 across priced holdings.
    """

    def calculate(
            self,
            portfolio_id: int,
            holdings: list[HoldingRecord],
            quotes: dict[str, Quote],
            quotes_failed: bool = False,
    ) -> PortfolioValuation:
        priced: list[tuple[HoldingRecord, Quote | None]] = []
        total_market_value = ZERO

        for holding in holdings:
            quote = quotes.get(holding.symbol)
            if quote is None or quote.price <= ZERO:
                quote = None
            else:
                total_market_value += self._market_value(holding, quote)
            priced.append((holding, quote))

        valuations = [
            self._value_one(holding, quote, total_market_value, quotes_failed)
            for holding, quote in priced
        ]

        return PortfolioValuation(
            portfolio_id=portfolio_id,
            holdings=valuations,
            total_market_value=total_market_value,
            total_cost_basis=sum((h.total_cost_basis for h in holdings), ZERO),
            total_day_change=sum((v.day_change for v in valuations), ZERO),
            quotes_failed=quotes_failed,
        )

    @staticmethod
    def _market_value(holding: HoldingRecord, quote: Quote) -> Decimal:
        return (holding.quantity * quote.price).quantize(QUANTITY_PRECISION)

    def _value_one(
            self,
            holding: HoldingRecord,
            quote: Quote | None,
            total_market_value: Decimal,
            quotes_failed: bool,
    ) -> HoldingValuation:
        target = holding.target_allocation_percent

        if quote is None:
            reason = PRICE_UNAVAILABLE_ALL if quotes_failed else PRICE_UNAVAILABLE_SYMBOL.format(symbol=holding.symbol)
            return HoldingValuation(
                holding=holding,
                current_price=ZERO,
                market_value=ZERO,
                weight_percent=ZERO,
                drift_percent=None if target is None else -target,
                day_change=ZERO,
                day_change_percent=ZERO,
                unrealized_gain_loss=None,
                unrealized_gain_loss_percent=None,
                previous_close=None,
                company_name=None,
                price_status=PriceStatus.UNAVAILABLE,
                unavailable_reason=reason,
            )

        market_value = self._market_value(holding, quote)
        weight = percent_of(market_value, total_market_value)
        gain_loss = market_value - holding.total_cost_basis

        return HoldingValuation(
            holding=holding,
            current_price=quote.price,
            market_value=market_value,
            weight_percent=weight,
            drift_percent=None if target is None else weight - target,
            day_change=(quote.change * holding.quantity).quantize(QUANTITY_PRECISION),
            day_change_percent=quote.change_percent,
            unrealized_gain_loss=gain_loss,
            unrealized_gain_loss_percent=percent_of(gain_loss, holding.total_cost_basis)
            if holding.total_cost_basis > ZERO else ZERO,
            previous_close=quote.previous_close,
            company_name=quote.name,
            price_status=PriceStatus.LIVE,
        )


class SummaryCalculator:
    """
    Portfolio-level figures.

        equity           = cash + holdings value
        day change %     = day change / (equity - day change) × 100
        total return     = equity - net deposits
        total return %   = total return / net deposits × 100 (0 if deposits <= 0)
        daily alpha      = day change % - benchmark change %
    """

    def calculate(
            self,
            valuation: PortfolioValuation,
            cash_balance: Decimal,
            net_deposits: Decimal,
            benchmark_symbol: str,
            benchmark_quote: Quote | None,
    ) -> PortfolioSummary:
        holdings_value = valuation.total_market_value
        equity = cash_balance + holdings_value
        day_change = valuation.total_day_change
        day_change_percent = self._day_change_percent(equity, day_change)

        total_return = equity - net_deposits
        total_return_percent = percent_of(total_return, net_deposits) if net_deposits > ZERO else ZERO

        benchmark_change = benchmark_quote.change_percent if benchmark_quote is not None else None
        daily_alpha = None if benchmark_change is None else day_change_percent - benchmark_change

        unrealized = sum(
            (h.unrealized_gain_loss for h in valuation.holdings if h.unrealized_gain_loss is not None),
            ZERO,
        )

        return PortfolioSummary(
            portfolio_id=valuation.portfolio_id,
            cash_balance=cash_balance,
            holdings_value=holdings_value,
            total_equity=equity,
            total_cost_basis=valuation.total_cost_basis,
            day_change=day_change,
            day_change_percent=day_change_percent,
            net_deposits=net_deposits,
            total_return=total_return,
            total_return_percent=total_return_percent,
            unrealized_gain_loss=unrealized,
            holdings_count=len(valuation.holdings),
            unavailable_count=valuation.unavailable_count,
            benchmark_symbol=benchmark_symbol,
            benchmark_change_percent=benchmark_change,
            daily_alpha=daily_alpha,
        )

    @staticmethod
    def _day_change_percent(equity: Decimal, day_change: Decimal) -> Decimal:
        previous_equity = equity - day_change
        if previous_equity <= ZERO:
            return ZERO
        return (day_change / previous_equity * HUNDRED).quantize(PERCENT_PRECISION)


class SectorAllocationCalculator:
    """Groups priced holdings by sector; unknown sectors go to "Other"."""

    def calculate(self, valuation: PortfolioValuation) -> list[SectorAllocation]:
        groups: dict[str, list] = defaultdict(list)
        for h in valuation.holdings:
            groups[h.holding.sector or UNKNOWN_SECTOR].append(h)

        total = valuation.total_market_value
        allocations = []
        for sector, members in groups.items():
            market_value = sum((m.market_value for m in members), ZERO)
            weighted = sum((m.day_change_percent * m.market_value for m in members), ZERO)
            day_change_percent = (
                (weighted / market_value).quantize(PERCENT_PRECISION) if market_value > ZERO else ZERO
            )
            allocations.append(SectorAllocation(
                sector=sector,
                market_value=market_value,
                weight_percent=percent_of(market_value, total),
                holdings_count=len(members),
                day_change_percent=day_change_percent,
                symbols=tuple(m.symbol for m in members),
            ))

        allocations.sort(key=lambda a: (-a.market_value, a.sector))
        return allocations
