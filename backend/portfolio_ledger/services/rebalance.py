# backend/portfolio_ledger/services/rebalance.py
"""
Rebalancing advisor.

Turns a PortfolioValuation into trade suggestions for holdings whose
weight drifted from their target by at least a threshold:

    target value = target % / 100 × total market value
    trade value  = target value - current market value
    shares       = trade value / current price  (0 without a price)

Suggestions are ordered by absolute drift, largest first.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import Session

from portfolio_ledger.services.constants import HUNDRED, QUANTITY_PRECISION, ZERO
from portfolio_ledger.services.exceptions import INVALID_VALUE, ValidationError
from portfolio_ledger.services.valuation import PortfolioValuation, ValuationService

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_PERCENT = Decimal("2")


class RebalanceAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass(frozen=True)
class RebalanceSuggestion:
    """
    One suggested trade.

    suggested_trade_value and suggested_shares are magnitudes; the
    direction is carried by action.
    """

    symbol: str
    current_weight: Decimal
    target_weight: Decimal
    drift_percent: Decimal
    action: RebalanceAction
    suggested_trade_value: Decimal
    suggested_shares: Decimal


class RebalanceAdvisor:
    """Pure function of a valuation; no I/O."""

    def suggest(
            self,
            valuation: PortfolioValuation,
            threshold_percent: Decimal = DEFAULT_THRESHOLD_PERCENT,
    ) -> list[RebalanceSuggestion]:
        total = valuation.total_market_value
        suggestions = []

        for h in valuation.holdings:
            if h.target_allocation_percent is None or h.drift_percent is None:
                continue
            if abs(h.drift_percent) < threshold_percent:
                continue

            target_value = h.target_allocation_percent / HUNDRED * total
            trade_value = target_value - h.market_value
            shares = trade_value / h.current_price if h.current_price > ZERO else ZERO

            if trade_value > ZERO:
                action = RebalanceAction.BUY
            elif trade_value < ZERO:
                action = RebalanceAction.SELL
            else:
                action = RebalanceAction.HOLD

            suggestions.append(RebalanceSuggestion(
                symbol=h.symbol,
                current_weight=h.weight_percent,
                target_weight=h.target_allocation_percent,
                drift_percent=h.drift_percent,
                action=action,
                suggested_trade_value=abs(trade_value).quantize(QUANTITY_PRECISION),
                suggested_shares=abs(shares).quantize(QUANTITY_PRECISION),
            ))

        suggestions.sort(key=lambda s: abs(s.drift_percent), reverse=True)
        return suggestions


class RebalanceService:
    """Values the portfolio, then asks the advisor."""

    def __init__(
            self,
            valuation_service: ValuationService,
            default_threshold: Decimal = DEFAULT_THRESHOLD_PERCENT,
    ) -> None:
        self._valuation_service = valuation_service
        self._default_threshold = default_threshold
        self._advisor = RebalanceAdvisor()

    def get_suggestions(
            self,
            db: Session,
            portfolio_id: int,
            threshold_percent: Decimal | None = None,
            owner_id: int | None = None,
    ) -> list[RebalanceSuggestion]:
        threshold = self._default_threshold if threshold_percent is None else threshold_percent
        if threshold < ZERO:
            raise ValidationError("Threshold cannot be negative", field="threshold", code=INVALID_VALUE)

        valuation = self._valuation_service.valuate(db, portfolio_id, owner_id)
        suggestions = self._advisor.suggest(valuation, threshold)
        logger.debug(f"Portfolio {portfolio_id}: {len(suggestions)} rebalance suggestions at {threshold}%")
        return suggestions
