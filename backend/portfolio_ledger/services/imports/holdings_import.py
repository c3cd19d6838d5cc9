# backend/portfolio_ledger/services/imports/holdings_import.py
"""
Holdings snapshot import.

Writes positions straight into the holdings cache without creating
ledger entries, for seeding a portfolio from a broker statement. Each
row is an upsert on (portfolio, symbol); valid rows are written even
when other rows fail.

Note: rebuild_holdings() replays the ledger, so it removes imported rows
that have no BUY history behind them. The same replay runs after every
SELL: selling any part of an imported position passes the share check
against the cached quantity, then deletes the whole row.
"""

import logging
import re
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_ledger.models import Holding
from portfolio_ledger.services.constants import QUANTITY_PRECISION, SYMBOL_PATTERN, ZERO
from portfolio_ledger.services.exceptions import ValidationError
from portfolio_ledger.services.imports.types import ImportResult, ImportRowError
from portfolio_ledger.services.ledger import queries
from portfolio_ledger.services.ledger.cost_basis import lookup_sector
from portfolio_ledger.services.ledger.validation import optional_decimal
from portfolio_ledger.services.market_data.base import MarketDataProvider

logger = logging.getLogger(__name__)

_SYMBOL_RE = re.compile(SYMBOL_PATTERN)


def _parse_row(row: Mapping[str, Any]) -> tuple[str, Decimal, Decimal]:
    symbol = str(row.get("symbol") or "").strip().upper()
    if not _SYMBOL_RE.match(symbol):
        raise ValidationError("Symbol must be 1-10 characters (letters, digits, '.' or '-')", field="symbol")

    quantity = optional_decimal(row.get("quantity"), "quantity")
    if quantity is None or quantity <= ZERO:
        raise ValidationError("Quantity must be a positive number", field="quantity")

    average_cost = optional_decimal(row.get("average_cost_basis"), "average_cost_basis")
    if average_cost is None or average_cost < ZERO:
        raise ValidationError("Average cost basis must be a non-negative number", field="average_cost_basis")

    return symbol, quantity, average_cost


class HoldingsImportService:
    """
    Args:
        provider: Optional source of sectors for new rows, best-effort
    """

    def __init__(self, provider: MarketDataProvider | None = None) -> None:
        self._provider = provider

    def import_holdings(
            self,
            db: Session,
            portfolio_id: int,
            rows: Sequence[Mapping[str, Any]],
            owner_id: int | None = None,
    ) -> ImportResult:
        """
        Upsert holdings rows; per-row failures are collected, not raised.

        Raises:
            PortfolioNotFoundError: Unknown portfolio
        """
        queries.require_portfolio(db, portfolio_id, owner_id)
        result = ImportResult(success=True)
        for row_number, row in enumerate(rows, start=1):
            try:
                symbol, quantity, average_cost = _parse_row(row)
            except ValidationError as e:
                result.failed += 1
                result.errors.append(ImportRowError.of(row_number, e.field, row.get(e.field or ""), e.message))
                continue

            holding = db.scalars(
                select(Holding).where(Holding.portfolio_id == portfolio_id, Holding.symbol == symbol)
            ).first()
            if holding is None:
                holding = Holding(portfolio_id=portfolio_id, symbol=symbol)
                db.add(holding)
                result.imported += 1
            else:
                result.updated += 1

            holding.quantity = quantity
            holding.average_cost_basis = average_cost
            holding.total_cost_basis = (quantity * average_cost).quantize(QUANTITY_PRECISION)
            if holding.sector is None:
                holding.sector = lookup_sector(self._provider, symbol)
            db.flush()

        db.commit()
        result.success = result.failed == 0
        logger.info(
            f"Holdings import into portfolio {portfolio_id}: "
            f"{result.imported} new, {result.updated} updated, {result.failed} failed"
        )
        return result
