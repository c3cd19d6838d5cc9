# backend/portfolio_ledger/services/portfolio_service.py
"""
Portfolio CRUD.

Each portfolio belongs to one owner. An owner has at most one default
portfolio: marking a portfolio as default clears the flag on the others
in the same commit.

Ownership: every method that takes owner_id reports a portfolio owned by
someone else as not found, never as forbidden.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from portfolio_ledger.models import Portfolio
from portfolio_ledger.services.constants import MAX_PORTFOLIO_NAME_LENGTH
from portfolio_ledger.services.exceptions import (
    INVALID_VALUE,
    REQUIRED,
    TOO_LONG,
    PortfolioNotFoundError,
    ValidationError,
)
from portfolio_ledger.services.ledger.queries import require_portfolio
from portfolio_ledger.services.records import PortfolioRecord

logger = logging.getLogger(__name__)

# Sentinel for "field not supplied" in partial updates
_UNSET = object()


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Portfolio name is required", field="name", code=REQUIRED)
    if len(name) > MAX_PORTFOLIO_NAME_LENGTH:
        raise ValidationError(
            f"Portfolio name must be {MAX_PORTFOLIO_NAME_LENGTH} characters or less",
            field="name",
            code=TOO_LONG,
        )
    return name


def _clean_currency(currency: str | None) -> str:
    currency = (currency or "").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValidationError("Currency must be a 3-letter code", field="currency", code=INVALID_VALUE)
    return currency


class PortfolioService:
    """
    Args:
        default_currency: Currency used when create() receives none
    """

    def __init__(self, default_currency: str = "USD") -> None:
        self._default_currency = default_currency

    def create(
            self,
            db: Session,
            owner_id: int,
            name: str,
            description: str | None = None,
            currency: str | None = None,
            is_default: bool = False,
    ) -> PortfolioRecord:
        portfolio = Portfolio(
            owner_id=owner_id,
            name=_clean_name(name),
            description=description,
            currency=_clean_currency(currency or self._default_currency),
            is_default=is_default,
        )

        if is_default:
            self._clear_default(db, owner_id)
        db.add(portfolio)
        db.commit()

        logger.info(f"Created portfolio {portfolio.id} '{portfolio.name}' for owner {owner_id}")
        return self.get(db, portfolio.id)

    def get(self, db: Session, portfolio_id: int, owner_id: int | None = None) -> PortfolioRecord:
        return require_portfolio(db, portfolio_id, owner_id)

    def list(self, db: Session, owner_id: int) -> list[PortfolioRecord]:
        """Default portfolio first, then oldest first."""
        stmt = (
            select(*Portfolio.__table__.c)
            .where(Portfolio.owner_id == owner_id)
            .order_by(Portfolio.is_default.desc(), Portfolio.created_at.asc(), Portfolio.id.asc())
        )
        return [PortfolioRecord.from_row(row) for row in db.execute(stmt).mappings()]

    def get_default(self, db: Session, owner_id: int) -> PortfolioRecord | None:
        stmt = select(*Portfolio.__table__.c).where(
            Portfolio.owner_id == owner_id,
            Portfolio.is_default.is_(True),
        )
        row = db.execute(stmt).mappings().first()
        return None if row is None else PortfolioRecord.from_row(row)

    def update(
            self,
            db: Session,
            portfolio_id: int,
            owner_id: int | None = None,
            name=_UNSET,
            description=_UNSET,
            currency=_UNSET,
            is_default=_UNSET,
    ) -> PortfolioRecord:
        """Partial update: only the supplied fields change."""
        portfolio = self._load(db, portfolio_id, owner_id)

        if name is not _UNSET:
            portfolio.name = _clean_name(name)
        if description is not _UNSET:
            portfolio.description = description
        if currency is not _UNSET:
            portfolio.currency = _clean_currency(currency)
        if is_default is not _UNSET:
            if is_default:
                self._clear_default(db, portfolio.owner_id, except_id=portfolio.id)
            portfolio.is_default = bool(is_default)

        db.commit()
        logger.info(f"Updated portfolio {portfolio_id}")
        return self.get(db, portfolio_id)

    def delete(self, db: Session, portfolio_id: int, owner_id: int | None = None) -> None:
        """Delete a portfolio with its ledger, holdings and snapshots."""
        portfolio = self._load(db, portfolio_id, owner_id)
        db.delete(portfolio)
        db.commit()
        logger.info(f"Deleted portfolio {portfolio_id}")

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _load(db: Session, portfolio_id: int, owner_id: int | None) -> Portfolio:
        portfolio = db.get(Portfolio, portfolio_id)
        if portfolio is None or (owner_id is not None and portfolio.owner_id != owner_id):
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    @staticmethod
    def _clear_default(db: Session, owner_id: int, except_id: int | None = None) -> None:
        stmt = (
            update(Portfolio)
            .where(Portfolio.owner_id == owner_id, Portfolio.is_default.is_(True))
            .values(is_default=False)
        )
        if except_id is not None:
            stmt = stmt.where(Portfolio.id != except_id)
        db.execute(stmt)
