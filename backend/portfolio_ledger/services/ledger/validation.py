# backend/portfolio_ledger/services/ledger/validation.py
"""
Pure validation and sign normalization for new ledger entries.

No I/O happens here. validate_transaction() either returns a
ValidatedTransaction whose fields are strictly typed and whose cash delta
is already signed, or raises ValidationError naming the offending field
and a violation code.

Sign rules (cash delta stored in total_amount):
    BUY       -(gross + fees)
    WITHDRAW  -(gross + fees)
    SELL      +(gross - fees)
    DEPOSIT   +(gross - fees)
    DIVIDEND  +(gross - fees)

For BUY and SELL the gross amount defaults to quantity x price when the
caller does not supply one. The gross amount must be positive, and on the
inflow side fees must stay below it so no inflow is stored as a debit.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from portfolio_ledger.models import POSITION_TYPES, TransactionType
from portfolio_ledger.services.constants import (
    MAX_NOTES_LENGTH,
    MAX_SYMBOL_LENGTH,
    QUANTITY_PRECISION,
    ZERO,
)
from portfolio_ledger.services.exceptions import (
    INVALID_ENUM,
    INVALID_VALUE,
    REQUIRED,
    TOO_LONG,
    ValidationError,
)

CASH_OUT_TYPES = frozenset({TransactionType.BUY, TransactionType.WITHDRAW})
SYMBOL_REQUIRED_TYPES = frozenset({TransactionType.BUY, TransactionType.SELL, TransactionType.DIVIDEND})


@dataclass(frozen=True)
class NewTransaction:
    """
    A transaction as requested by a caller, before validation.

    Values are accepted loosely (strings, ints, Decimals) and tightened by
    validate_transaction().
    """

    transaction_type: TransactionType | str | None
    transaction_date: date | str | None
    total_amount: Decimal | int | str | None = None
    symbol: str | None = None
    quantity: Decimal | int | str | None = None
    price_per_share: Decimal | int | str | None = None
    fees: Decimal | int | str | None = None
    notes: str | None = None
    prediction_id: int | None = None


@dataclass(frozen=True)
class ValidatedTransaction:
    transaction_type: TransactionType
    transaction_date: date
    symbol: str | None
    quantity: Decimal | None
    price_per_share: Decimal | None
    fees: Decimal
    gross_amount: Decimal
    total_amount: Decimal
    notes: str | None
    prediction_id: int | None

    @property
    def required_cash(self) -> Decimal:
        """Cash a BUY consumes: gross plus fees."""
        return self.gross_amount + self.fees


def signed_amount(transaction_type: TransactionType, gross: Decimal, fees: Decimal) -> Decimal:
    """Cash delta for a transaction of the given type. gross must be positive."""
    if transaction_type in CASH_OUT_TYPES:
        return -(gross + fees)
    return gross - fees


def validate_transaction(request: NewTransaction) -> ValidatedTransaction:
    """
    Validate a requested transaction and derive its signed cash delta.

    Raises:
        ValidationError: with field and code (REQUIRED, INVALID_ENUM,
            INVALID_VALUE, TOO_LONG)
    """
    transaction_type = parse_transaction_type(request.transaction_type)
    transaction_date = _parse_date(request.transaction_date)

    symbol = (request.symbol or "").strip().upper() or None
    if symbol is None and transaction_type in SYMBOL_REQUIRED_TYPES:
        raise ValidationError(
            f"Symbol is required for {transaction_type.value} transactions",
            field="symbol",
            code=REQUIRED,
        )
    if symbol is not None and len(symbol) > MAX_SYMBOL_LENGTH:
        raise ValidationError(
            f"Symbol cannot exceed {MAX_SYMBOL_LENGTH} characters",
            field="symbol",
            code=TOO_LONG,
        )

    quantity = optional_decimal(request.quantity, "quantity")
    price = optional_decimal(request.price_per_share, "price_per_share")

    if transaction_type in POSITION_TYPES:
        if quantity is None:
            raise ValidationError("Quantity is required", field="quantity", code=REQUIRED)
        if quantity <= ZERO:
            raise ValidationError("Quantity must be positive", field="quantity", code=INVALID_VALUE)
        if price is None:
            raise ValidationError("Price per share is required", field="price_per_share", code=REQUIRED)
        if price <= ZERO:
            raise ValidationError("Price per share must be positive", field="price_per_share", code=INVALID_VALUE)

    fees = optional_decimal(request.fees, "fees") or ZERO
    if fees < ZERO:
        raise ValidationError("Fees cannot be negative", field="fees", code=INVALID_VALUE)

    gross = optional_decimal(request.total_amount, "total_amount")
    if gross is None and quantity is not None and price is not None:
        gross = (quantity * price).quantize(QUANTITY_PRECISION)
    if gross is None:
        raise ValidationError("Total amount is required", field="total_amount", code=REQUIRED)
    if gross <= ZERO:
        raise ValidationError("Total amount must be positive", field="total_amount", code=INVALID_VALUE)
    if transaction_type not in CASH_OUT_TYPES and fees >= gross:
        raise ValidationError("Fees must be less than the total amount", field="fees", code=INVALID_VALUE)

    notes = request.notes.strip() if request.notes else None
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes cannot exceed {MAX_NOTES_LENGTH} characters",
            field="notes",
            code=TOO_LONG,
        )

    return ValidatedTransaction(
        transaction_type=transaction_type,
        transaction_date=transaction_date,
        symbol=symbol,
        quantity=quantity,
        price_per_share=price,
        fees=fees,
        gross_amount=gross,
        total_amount=signed_amount(transaction_type, gross, fees),
        notes=notes or None,
        prediction_id=request.prediction_id,
    )


def parse_transaction_type(value: Any) -> TransactionType:
    if value is None or value == "":
        raise ValidationError("Transaction type is required", field="transaction_type", code=REQUIRED)
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).strip().upper())
    except ValueError:
        valid = ", ".join(t.value for t in TransactionType)
        raise ValidationError(
            f"Invalid transaction type '{value}'. Must be one of: {valid}",
            field="transaction_type",
            code=INVALID_ENUM,
        ) from None


def _parse_date(value: Any) -> date:
    if value is None or value == "":
        raise ValidationError("Transaction date is required", field="transaction_date", code=REQUIRED)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(
            f"Invalid transaction date '{value}'",
            field="transaction_date",
            code=INVALID_VALUE,
        ) from None


def optional_decimal(value: Any, field: str) -> Decimal | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field, code=INVALID_VALUE)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number", field=field, code=INVALID_VALUE) from None
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field, code=INVALID_VALUE)
    return result
