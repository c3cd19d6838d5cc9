# backend/portfolio_ledger/utils/logging.py
"""
Logging setup for the Portfolio Ledger service.

setup_logging() is called once by the application factory with the
level and format from Settings. Every record carries the request
correlation id, so one request can be followed across the processor,
the valuation engine and the market data provider.

Log Levels:
    DEBUG   - Recomputation details, quote batches
    INFO    - Committed transactions, snapshots, imports
    WARNING - Degraded reads (missing quotes, sector, benchmark), rejections
    ERROR   - Unexpected failures

Formats:
    text - "timestamp | level | correlation_id | logger | message"
    json - one JSON object per line, for log aggregation
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from portfolio_ledger.utils.context import get_correlation_id

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_CORRELATION_ID = "-"

# Third-party loggers lowered to WARNING
NOISY_LOGGERS = [
    "yfinance",
    "peewee",
    "urllib3",
    "urllib3.connectionpool",
    "requests",
    "httpx",
    "httpcore",
    "multipart",
]

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "correlation_id",
    "message",
    "asctime",
}


class CorrelationIdFilter(logging.Filter):
    """Stamps each record with the current correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record:

        {"timestamp": ..., "level": ..., "logger": ..., "correlation_id": ...,
         "message": ..., "exception": ..., "extra": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", log_format: str = "text", suppress_noisy_loggers: bool = True) -> None:
    """
    Install a single stdout handler on the root logger.

    Raises:
        ValueError: Unknown level name
    """
    numeric_level = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: '{level}'")

    if log_format.lower() == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()
    root.addHandler(handler)

    if suppress_noisy_loggers:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level.upper()}, format={log_format}")
