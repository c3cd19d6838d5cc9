# backend/portfolio_ledger/services/circuit_breaker.py
"""
Circuit breaker guarding calls to the market data provider.

Valuation, sector lookup and benchmark closes all degrade gracefully when
the provider fails. Without a breaker, a provider outage still costs every
request the full retry/backoff delay before degrading. Once the breaker
opens, calls fail immediately with CircuitBreakerOpen, which callers treat
like any other provider failure.

States:
    CLOSED    - Calls pass through, consecutive failures are counted
    OPEN      - Calls are rejected until recovery_timeout has elapsed
    HALF_OPEN - One trial call is let through; success closes, failure reopens

Usage:
    breaker = CircuitBreaker(name="yahoo", failure_threshold=5)

    with breaker:
        quote = fetch_quote()
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """
    Raised when the breaker rejects a call.

    Attributes:
        breaker_name: Name of the circuit breaker
        time_remaining: Seconds until a trial call will be allowed
    """

    def __init__(self, breaker_name: str, time_remaining: float) -> None:
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{breaker_name}' is open. "
            f"Retry in {time_remaining:.1f} seconds."
        )


@dataclass
class CircuitBreakerStats:
    """Counters exposed on the health endpoint."""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0


@dataclass
class CircuitBreaker:
    """
    Thread-safe consecutive-failure circuit breaker.

    Attributes:
        name: Identifier used in logs and errors
        failure_threshold: Consecutive failures that open the circuit
        recovery_timeout: Seconds the circuit stays open
        excluded_exceptions: Exceptions that do not count as failures
            (e.g. an unknown ticker says nothing about provider health)
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    excluded_exceptions: tuple[type[BaseException], ...] = field(default_factory=tuple)

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _consecutive_failures: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _trial_in_flight: bool = field(default=False, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)
    _stats: CircuitBreakerStats = field(default_factory=CircuitBreakerStats, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def stats(self) -> CircuitBreakerStats:
        with self._lock:
            return CircuitBreakerStats(**vars(self._stats))

    def reset(self) -> None:
        """Close the circuit and forget past failures."""
        with self._lock:
            self._consecutive_failures = 0
            self._trial_in_flight = False
            self._set_state(CircuitState.CLOSED)

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self) -> "CircuitBreaker":
        with self._lock:
            self._stats.total_calls += 1
            self._maybe_half_open()

            if self._state == CircuitState.OPEN or (
                self._state == CircuitState.HALF_OPEN and self._trial_in_flight
            ):
                self._stats.rejected_calls += 1
                raise CircuitBreakerOpen(self.name, self._time_until_trial())

            if self._state == CircuitState.HALF_OPEN:
                self._trial_in_flight = True

        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        with self._lock:
            self._trial_in_flight = False
            if exc_val is None or isinstance(exc_val, self.excluded_exceptions):
                self._on_success()
            else:
                self._on_failure()
        return False

    # =========================================================================
    # STATE MACHINE (call with the lock held)
    # =========================================================================

    def _on_success(self) -> None:
        self._stats.successful_calls += 1
        self._consecutive_failures = 0
        if self._state == CircuitState.HALF_OPEN:
            self._set_state(CircuitState.CLOSED)

    def _on_failure(self) -> None:
        self._stats.failed_calls += 1
        self._consecutive_failures += 1

        if self._state == CircuitState.HALF_OPEN or self._consecutive_failures >= self.failure_threshold:
            self._opened_at = time.monotonic()
            self._set_state(CircuitState.OPEN)

    def _maybe_half_open(self) -> None:
        if self._state == CircuitState.OPEN and self._time_until_trial() <= 0:
            self._set_state(CircuitState.HALF_OPEN)

    def _time_until_trial(self) -> float:
        return max(0.0, self.recovery_timeout - (time.monotonic() - self._opened_at))

    def _set_state(self, new_state: CircuitState) -> None:
        if new_state == self._state:
            return
        old_state = self._state
        self._state = new_state
        if new_state == CircuitState.CLOSED:
            self._consecutive_failures = 0
        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"CircuitBreaker '{self.name}' state change: {old_state.value} -> {new_state.value}")
