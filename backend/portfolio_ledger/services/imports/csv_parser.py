# backend/portfolio_ledger/services/imports/csv_parser.py
"""
CSV transaction file parser.

Turns an uploaded CSV file into row dicts accepted by
TransactionImportService. Parsing only: business validation (amount
signs, cash, share counts) happens in the import service.

Expected CSV Format:
    date,type,symbol,quantity,price,amount,fees,notes
    2024-01-02,DEPOSIT,,,,10000,0,Initial funding
    2024-01-03,BUY,AAPL,10,150,,5,

Column Mapping:
    CSV Column (any of)                      -> Internal Field
    -------------------------------------------------------------
    date, trade_date, transaction_date       -> transaction_date
    type, action, transaction_type, side     -> transaction_type
    symbol, ticker                           -> symbol
    quantity, qty, shares, units             -> quantity
    price, price_per_share, unit_price       -> price_per_share
    amount, total, total_amount, value       -> total_amount
    fees, fee, commission                    -> fees
    notes, note, description, memo           -> notes

Date Format Handling:
    The caller declares the format to avoid M/D vs D/M ambiguity:
    - ISO: YYYY-MM-DD (default)
    - US: M/D/YYYY
    - EU: D/M/YYYY
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, BinaryIO

from portfolio_ledger.services.imports.types import ImportRowError

logger = logging.getLogger(__name__)


class DateFormat(str, Enum):
    ISO = "ISO"  # YYYY-MM-DD
    US = "US"  # M/D/YYYY
    EU = "EU"  # D/M/YYYY


@dataclass
class CSVParseResult:
    """
    Attributes:
        rows: Parsed rows, keyed like TransactionImportService expects
        row_numbers: File line of each parsed row (header is line 1)
        errors: Rows that could not be parsed
    """
    rows: list[dict[str, Any]] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)
    total_rows: int = 0

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class TransactionCSVParser:
    """
    Example:
        parser = TransactionCSVParser()
        with open("transactions.csv", "rb") as f:
            result = parser.parse(f, "transactions.csv", DateFormat.US)
    """

    COLUMN_MAPPING: dict[str, list[str]] = {
        "transaction_date": ["date", "trade_date", "transaction_date"],
        "transaction_type": ["type", "action", "transaction_type", "side"],
        "symbol": ["symbol", "ticker"],
        "quantity": ["quantity", "qty", "shares", "units"],
        "price_per_share": ["price", "price_per_share", "unit_price"],
        "total_amount": ["amount", "total", "total_amount", "value"],
        "fees": ["fees", "fee", "commission"],
        "notes": ["notes", "note", "description", "memo"],
    }

    TYPE_MAPPING: dict[str, str] = {
        "buy": "BUY",
        "b": "BUY",
        "purchase": "BUY",
        "sell": "SELL",
        "s": "SELL",
        "sale": "SELL",
        "deposit": "DEPOSIT",
        "withdraw": "WITHDRAW",
        "withdrawal": "WITHDRAW",
        "dividend": "DIVIDEND",
        "div": "DIVIDEND",
    }

    DATE_FORMAT_PATTERNS: dict[DateFormat, list[str]] = {
        DateFormat.ISO: ["%Y-%m-%d", "%Y/%m/%d"],
        DateFormat.US: ["%m/%d/%Y", "%m-%d-%Y", "%m/%d/%y"],
        DateFormat.EU: ["%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%d/%m/%y"],
    }

    REQUIRED_COLUMNS: tuple[str, ...] = ("transaction_date", "transaction_type")

    def parse(self, file: BinaryIO, filename: str, date_format: DateFormat = DateFormat.ISO) -> CSVParseResult:
        logger.info(f"Parsing CSV file: {filename} (date_format={date_format.value})")
        result = CSVParseResult()
        content = self._read_file_content(file)

        try:
            reader = csv.DictReader(io.StringIO(content))
            if not reader.fieldnames:
                result.errors.append(ImportRowError.of(0, "", "", "CSV file has no headers"))
                return result

            column_map = self._build_column_map(reader.fieldnames)
            missing = [c for c in self.REQUIRED_COLUMNS if c not in column_map]
            if missing:
                result.errors.append(
                    ImportRowError.of(0, "", "", f"Missing required columns: {', '.join(missing)}")
                )
                return result

            for row_number, row in enumerate(reader, start=2):
                result.total_rows += 1
                parsed, error = self._parse_row(row_number, row, column_map, date_format)
                if error is not None:
                    result.errors.append(error)
                else:
                    result.rows.append(parsed)
                    result.row_numbers.append(row_number)

        except csv.Error as e:
            logger.error(f"CSV parsing error in {filename}: {e}")
            result.errors.append(ImportRowError.of(0, "", "", f"Invalid CSV format: {e}"))

        logger.info(f"Parsed {filename}: {len(result.rows)} rows OK, {len(result.errors)} errors")
        return result

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    @staticmethod
    def _read_file_content(file: BinaryIO) -> str:
        """UTF-8 (with or without BOM), falling back to Latin-1."""
        raw_content = file.read()
        try:
            return raw_content.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.warning("File is not UTF-8, falling back to Latin-1 encoding")
            return raw_content.decode("latin-1")

    def _build_column_map(self, headers: list[str]) -> dict[str, str]:
        normalized_headers = {h.lower().strip(): h for h in headers if h}
        column_map: dict[str, str] = {}
        for internal_field, possible_names in self.COLUMN_MAPPING.items():
            for name in possible_names:
                if name in normalized_headers:
                    column_map[internal_field] = normalized_headers[name]
                    break
        return column_map

    def _parse_row(
            self,
            row_number: int,
            row: dict[str, str],
            column_map: dict[str, str],
            date_format: DateFormat,
    ) -> tuple[dict[str, Any] | None, ImportRowError | None]:
        values = {f: (row.get(col) or "").strip() for f, col in column_map.items()}

        raw_type = values.get("transaction_type", "")
        transaction_type = self.TYPE_MAPPING.get(raw_type.lower())
        if transaction_type is None:
            return None, ImportRowError.of(
                row_number, "transaction_type", raw_type,
                f"Invalid transaction type: '{raw_type}'",
            )

        raw_date = values.get("transaction_date", "")
        parsed_date = self._parse_date(raw_date, date_format)
        if parsed_date is None:
            return None, ImportRowError.of(
                row_number, "transaction_date", raw_date,
                f"Invalid date: '{raw_date}' for format {date_format.value}",
            )

        parsed: dict[str, Any] = {
            "transaction_type": transaction_type,
            "transaction_date": parsed_date,
        }
        for name in ("symbol", "quantity", "price_per_share", "total_amount", "fees", "notes"):
            value = values.get(name)
            parsed[name] = value or None

        # Some brokers export signed amounts; the ledger derives the sign from the type
        for name in ("total_amount", "quantity"):
            if parsed[name] and parsed[name].startswith("-"):
                parsed[name] = parsed[name][1:]
        for name in ("total_amount", "price_per_share", "fees"):
            if parsed[name]:
                parsed[name] = parsed[name].replace(",", "").replace("$", "")

        if parsed["total_amount"] is None:
            parsed["total_amount"] = "0"

        return parsed, None

    def _parse_date(self, value: str, date_format: DateFormat) -> date | None:
        for fmt in self.DATE_FORMAT_PATTERNS.get(date_format, []):
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                continue

        # ISO with a time component is accepted for every format
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
