# backend/portfolio_ledger/services/records.py
"""
Typed row decoders for the storage boundary.

Every row that leaves the database is converted exactly once into one of
the frozen records below. Numeric columns become Decimal, date columns
become date, enums become TransactionType. A value with the wrong shape
(None in a required column, non-numeric text, NaN, an unknown enum value)
raises DataIntegrityError immediately instead of leaking into arithmetic.

Rows are read as mappings (``session.execute(select(*Table.__table__.c))
.mappings()``) rather than ORM entities so a read always reflects the
database and never a stale identity map.

Usage:
    rows = db.execute(select(*Holding.__table__.c)).mappings()
    holdings = [HoldingRecord.from_row(r) for r in rows]
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from portfolio_ledger.models import TransactionType
from portfolio_ledger.services.exceptions import DataIntegrityError


# =============================================================================
# SCALAR CONVERTERS
# =============================================================================

def to_decimal(value: Any, column: str = "value", table: str | None = None) -> Decimal:
    """
    Convert a database-native numeric value to a finite Decimal.

    Accepts Decimal, int, float and numeric strings. Floats go through
    str() so 0.1 stays 0.1 rather than its binary expansion.
    """
    if isinstance(value, bool) or value is None:
        raise DataIntegrityError(f"{column} must be numeric, got {value!r}", table, column)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise DataIntegrityError(f"{column} is not a number: {value!r}", table, column) from None
    else:
        raise DataIntegrityError(
            f"{column} has unsupported type {type(value).__name__}", table, column
        )

    if not result.is_finite():
        raise DataIntegrityError(f"{column} is not finite: {value!r}", table, column)
    return result


def to_optional_decimal(value: Any, column: str = "value", table: str | None = None) -> Decimal | None:
    return None if value is None else to_decimal(value, column, table)


def to_date(value: Any, column: str = "date", table: str | None = None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise DataIntegrityError(f"{column} is not a date: {value!r}", table, column)


def to_optional_date(value: Any, column: str = "date", table: str | None = None) -> date | None:
    return None if value is None else to_date(value, column, table)


def _required(row: Mapping[str, Any], key: str, table: str) -> Any:
    try:
        value = row[key]
    except KeyError:
        raise DataIntegrityError(f"{table} row is missing column '{key}'", table, key) from None
    if value is None:
        raise DataIntegrityError(f"{table}.{key} is NULL", table, key)
    return value


def _int(row: Mapping[str, Any], key: str, table: str) -> int:
    value = _required(row, key, table)
    if isinstance(value, bool) or not isinstance(value, int):
        raise DataIntegrityError(f"{table}.{key} must be an integer, got {value!r}", table, key)
    return value


def _str(row: Mapping[str, Any], key: str, table: str) -> str:
    value = _required(row, key, table)
    if not isinstance(value, str):
        raise DataIntegrityError(f"{table}.{key} must be text, got {value!r}", table, key)
    return value


def _optional_str(row: Mapping[str, Any], key: str, table: str) -> str | None:
    value = row.get(key)
    if value is not None and not isinstance(value, str):
        raise DataIntegrityError(f"{table}.{key} must be text, got {value!r}", table, key)
    return value


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class PortfolioRecord:
    id: int
    owner_id: int
    name: str
    description: str | None
    currency: str
    is_default: bool
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PortfolioRecord":
        t = "portfolios"
        return cls(
            id=_int(row, "id", t),
            owner_id=_int(row, "owner_id", t),
            name=_str(row, "name", t),
            description=_optional_str(row, "description", t),
            currency=_str(row, "currency", t),
            is_default=bool(row.get("is_default")),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    portfolio_id: int
    symbol: str | None
    transaction_type: TransactionType
    quantity: Decimal | None
    price_per_share: Decimal | None
    fees: Decimal
    total_amount: Decimal
    transaction_date: date
    notes: str | None
    prediction_id: int | None
    created_at: datetime | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TransactionRecord":
        t = "portfolio_transactions"
        raw_type = _required(row, "transaction_type", t)
        try:
            transaction_type = TransactionType(getattr(raw_type, "value", raw_type))
        except ValueError:
            raise DataIntegrityError(
                f"{t}.transaction_type has unknown value {raw_type!r}", t, "transaction_type"
            ) from None

        return cls(
            id=_int(row, "id", t),
            portfolio_id=_int(row, "portfolio_id", t),
            symbol=_optional_str(row, "symbol", t),
            transaction_type=transaction_type,
            quantity=to_optional_decimal(row.get("quantity"), "quantity", t),
            price_per_share=to_optional_decimal(row.get("price_per_share"), "price_per_share", t),
            fees=to_decimal(row.get("fees") if row.get("fees") is not None else 0, "fees", t),
            total_amount=to_decimal(_required(row, "total_amount", t), "total_amount", t),
            transaction_date=to_date(_required(row, "transaction_date", t), "transaction_date", t),
            notes=_optional_str(row, "notes", t),
            prediction_id=row.get("prediction_id"),
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class HoldingRecord:
    id: int
    portfolio_id: int
    symbol: str
    quantity: Decimal
    average_cost_basis: Decimal
    total_cost_basis: Decimal
    target_allocation_percent: Decimal | None
    sector: str | None
    first_purchase_date: date | None
    last_transaction_date: date | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HoldingRecord":
        t = "portfolio_holdings"
        quantity = to_decimal(_required(row, "quantity", t), "quantity", t)
        if quantity <= 0:
            raise DataIntegrityError(f"{t}.quantity must be positive, got {quantity}", t, "quantity")

        return cls(
            id=_int(row, "id", t),
            portfolio_id=_int(row, "portfolio_id", t),
            symbol=_str(row, "symbol", t),
            quantity=quantity,
            average_cost_basis=to_decimal(_required(row, "average_cost_basis", t), "average_cost_basis", t),
            total_cost_basis=to_decimal(_required(row, "total_cost_basis", t), "total_cost_basis", t),
            target_allocation_percent=to_optional_decimal(
                row.get("target_allocation_percent"), "target_allocation_percent", t
            ),
            sector=_optional_str(row, "sector", t),
            first_purchase_date=to_optional_date(row.get("first_purchase_date"), "first_purchase_date", t),
            last_transaction_date=to_optional_date(row.get("last_transaction_date"), "last_transaction_date", t),
        )


@dataclass(frozen=True)
class PerformanceRecord:
    id: int
    portfolio_id: int
    date: date
    total_equity: Decimal
    cash_balance: Decimal
    holdings_value: Decimal
    daily_return_percent: Decimal | None
    total_return_percent: Decimal | None
    net_deposits: Decimal
    benchmark_primary_close: Decimal | None
    benchmark_secondary_close: Decimal | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PerformanceRecord":
        t = "portfolio_daily_performance"
        return cls(
            id=_int(row, "id", t),
            portfolio_id=_int(row, "portfolio_id", t),
            date=to_date(_required(row, "date", t), "date", t),
            total_equity=to_decimal(_required(row, "total_equity", t), "total_equity", t),
            cash_balance=to_decimal(_required(row, "cash_balance", t), "cash_balance", t),
            holdings_value=to_decimal(_required(row, "holdings_value", t), "holdings_value", t),
            daily_return_percent=to_optional_decimal(row.get("daily_return_percent"), "daily_return_percent", t),
            total_return_percent=to_optional_decimal(row.get("total_return_percent"), "total_return_percent", t),
            net_deposits=to_decimal(_required(row, "net_deposits", t), "net_deposits", t),
            benchmark_primary_close=to_optional_decimal(
                row.get("benchmark_primary_close"), "benchmark_primary_close", t
            ),
            benchmark_secondary_close=to_optional_decimal(
                row.get("benchmark_secondary_close"), "benchmark_secondary_close", t
            ),
        )


def columns_of(model_instance: Any) -> dict[str, Any]:
    """Column values of an ORM instance as a plain mapping, for from_row()."""
    return {c.key: getattr(model_instance, c.key) for c in model_instance.__table__.columns}
