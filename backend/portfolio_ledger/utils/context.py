# backend/portfolio_ledger/utils/context.py
"""
Request-scoped context for log correlation.

contextvars keep the value isolated per request, including across
await points and the threadpool FastAPI runs sync endpoints in.
"""

from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)
