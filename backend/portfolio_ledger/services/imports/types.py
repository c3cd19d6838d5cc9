# backend/portfolio_ledger/services/imports/types.py
"""
Result types shared by the transaction and holdings importers.

Row numbers are 1-based positions in the submitted list (for CSV files,
the file line, header being line 1). Row 0 reports a batch-level problem.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ImportRowError:
    row: int
    field: str
    value: str
    message: str

    @classmethod
    def of(cls, row: int, field_name: str | None, value: Any, message: str) -> "ImportRowError":
        return cls(row=row, field=field_name or "", value="" if value is None else str(value), message=message)

    def to_dict(self) -> dict:
        return {"row": self.row, "field": self.field, "value": self.value, "message": self.message}


@dataclass
class ImportResult:
    """
    Outcome of an import.

    Attributes:
        imported: Rows written as new entries
        updated: Existing entries overwritten (holdings import only)
        failed: Rows rejected
    """
    success: bool
    imported: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[ImportRowError] = field(default_factory=list)

    @classmethod
    def rejected(cls, errors: list[ImportRowError], failed: int | None = None) -> "ImportResult":
        return cls(success=False, failed=len(errors) if failed is None else failed, errors=errors)
