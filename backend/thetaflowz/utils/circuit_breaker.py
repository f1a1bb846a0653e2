"""
ThetaFlowz - Circuit Breaker

Stops hammering a quote provider that keeps failing, so the fallback chain
moves on to the next provider without waiting for another timeout.

State machine:
    CLOSED  → requests pass normally; failures are counted
    OPEN    → requests immediately fail; after cooldown, transition to HALF_OPEN
    HALF_OPEN → one probe request allowed; success → CLOSED, failure → OPEN

While the probe is in flight, concurrent callers are rejected with
CircuitOpenError just as in OPEN.

Usage::

    breaker = CircuitBreaker("finnhub", failure_threshold=5, recovery_timeout=30)

    try:
        quote = await breaker.call(lambda: finnhub.get_quote("AAPL"))
    except CircuitOpenError:
        # Provider is cooling down, try the next one
        ...
"""

from __future__ import annotations

import time
from enum import Enum, auto
from typing import Awaitable, Callable, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = auto()
    OPEN = auto()
    HALF_OPEN = auto()


class CircuitOpenError(Exception):
    """Raised when the circuit is open and the request is rejected."""

    def __init__(self, service: str, retry_after: float):
        self.service = service
        self.retry_after = retry_after
        super().__init__(
            f"Circuit breaker OPEN for '{service}', retry after {retry_after:.0f}s"
        )


class CircuitBreaker:
    """Per-provider circuit breaker driven from a single event loop."""

    def __init__(
        self,
        service_name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        excluded: tuple[type[BaseException], ...] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            service_name: Identifier for the external service.
            failure_threshold: Consecutive failures before opening circuit.
            recovery_timeout: Seconds to wait before allowing a probe request.
            excluded: Exception types that say nothing about the service's
                health. They propagate to the caller without being counted.
            clock: Monotonic seconds source.
        """
        self.service_name = service_name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.excluded = excluded
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float = 0.0
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            elapsed = self._clock() - self._last_failure_time
            if elapsed >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                log.info(
                    "circuit_breaker.half_open",
                    service=self.service_name,
                    elapsed=round(elapsed, 1),
                )
        return self._state

    def _retry_after(self) -> float:
        return max(0.0, self.recovery_timeout - (self._clock() - self._last_failure_time))

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """Await a coroutine factory through the circuit breaker.

        Args:
            func: Zero-argument callable returning an awaitable.

        Returns:
            The awaited result of func().

        Raises:
            CircuitOpenError: If the circuit is open, or half-open with the
                probe already in flight.
        """
        current_state = self.state

        if current_state == CircuitState.OPEN:
            raise CircuitOpenError(self.service_name, self._retry_after())

        probing = current_state == CircuitState.HALF_OPEN
        if probing:
            if self._probe_in_flight:
                raise CircuitOpenError(self.service_name, 0.0)
            self._probe_in_flight = True

        try:
            result = await func()
        except self.excluded:
            self._on_success()
            raise
        except Exception as exc:
            self._on_failure(exc)
            raise
        finally:
            if probing:
                self._probe_in_flight = False
        self._on_success()
        return result

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            log.info(
                "circuit_breaker.closed",
                service=self.service_name,
                detail="probe succeeded, circuit recovered",
            )
        self._state = CircuitState.CLOSED
        self._failure_count = 0

    def _on_failure(self, exc: Exception) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            log.warning(
                "circuit_breaker.reopened",
                service=self.service_name,
                error=str(exc),
            )
        elif self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            log.warning(
                "circuit_breaker.opened",
                service=self.service_name,
                failures=self._failure_count,
                threshold=self.failure_threshold,
                error=str(exc),
            )

    def reset(self) -> None:
        """Manually reset the circuit to CLOSED."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = 0.0
        self._probe_in_flight = False
        log.info("circuit_breaker.reset", service=self.service_name)
