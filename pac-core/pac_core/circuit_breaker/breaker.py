"""
Circuit Breaker Core
====================
Async circuit breaker with a sliding failure window.

One instance guards one logical remote connection (a tenant's credential
set) and must outlive individual calls, otherwise it forgets past failures.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

import structlog

from ..clock import Clock, SYSTEM_CLOCK
from ..metrics import record_circuit_state
from .models import (
    CircuitState,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitBreakerStats,
    CircuitBreakerError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitBreaker:
    """
    Async-compatible circuit breaker.

    Example:
        breaker = CircuitBreaker("tenant-42")

        try:
            result = await breaker.execute(transport.query_status, ref)
        except CircuitBreakerError:
            defer_job()
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock or SYSTEM_CLOCK
        self._state = CircuitBreakerState(last_state_change=self._clock.monotonic())
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state.state

    def get_stats(self) -> CircuitBreakerStats:
        s = self._state
        now = self._clock.monotonic()
        cutoff = now - self.config.monitoring_period
        retry_after = 0.0
        if s.next_attempt_time is not None:
            retry_after = max(0.0, s.next_attempt_time - now)
        return CircuitBreakerStats(
            name=self.name,
            state=s.state,
            failures=sum(1 for t in s.failure_timestamps if t >= cutoff),
            successes_in_half_open=s.successes_in_half_open,
            last_failure_time=s.last_failure_time,
            next_attempt_time=s.next_attempt_time,
            retry_after=retry_after,
            total_requests=s.total_requests,
            total_failures=s.total_failures,
            total_successes=s.total_successes,
            total_rejections=s.total_rejections,
        )

    def reset(self) -> None:
        """Force CLOSED and clear every counter (operator override)."""
        self._state = CircuitBreakerState(last_state_change=self._clock.monotonic())
        record_circuit_state(self.name, CircuitState.CLOSED)
        logger.info("circuit_reset", service=self.name)

    def _transition(self, new_state: CircuitState, now: float) -> None:
        s = self._state
        s.state = new_state
        s.last_state_change = now
        s.half_open_in_flight = 0
        s.successes_in_half_open = 0
        if new_state == CircuitState.OPEN:
            s.next_attempt_time = now + self.config.timeout
        else:
            s.next_attempt_time = None
        if new_state == CircuitState.CLOSED:
            s.failure_timestamps.clear()
        record_circuit_state(self.name, new_state)

    async def _admit(self) -> bool:
        """Admit or reject a call. Returns True when the call is a half-open trial."""
        async with self._lock:
            s = self._state
            s.total_requests += 1
            now = self._clock.monotonic()

            if s.state == CircuitState.OPEN:
                if now < s.next_attempt_time:
                    s.total_rejections += 1
                    raise CircuitBreakerError(
                        self.name, CircuitState.OPEN, s.next_attempt_time - now
                    )
                self._transition(CircuitState.HALF_OPEN, now)
                logger.info("circuit_half_open", service=self.name)

            if s.state == CircuitState.HALF_OPEN:
                if s.half_open_in_flight >= self.config.half_open_max_calls:
                    s.total_rejections += 1
                    raise CircuitBreakerError(self.name, CircuitState.HALF_OPEN, 0.0)
                s.half_open_in_flight += 1
                return True

            return False

    def _release_trial(self, trial: bool) -> None:
        if trial and self._state.half_open_in_flight > 0:
            self._state.half_open_in_flight -= 1

    async def _record_success(self, trial: bool) -> None:
        async with self._lock:
            s = self._state
            s.total_successes += 1
            self._release_trial(trial)

            if s.state == CircuitState.HALF_OPEN and trial:
                s.successes_in_half_open += 1
                if s.successes_in_half_open >= self.config.success_threshold:
                    self._transition(CircuitState.CLOSED, self._clock.monotonic())
                    logger.info("circuit_closed", service=self.name)
            elif s.state == CircuitState.CLOSED:
                s.failure_timestamps.clear()

    async def _record_failure(self, exc: Exception, trial: bool) -> None:
        async with self._lock:
            s = self._state
            if isinstance(exc, self.config.excluded_exceptions):
                self._release_trial(trial)
                return

            now = self._clock.monotonic()
            s.total_failures += 1
            s.last_failure_time = now
            s.failure_timestamps.append(now)
            cutoff = now - self.config.monitoring_period
            while s.failure_timestamps and s.failure_timestamps[0] < cutoff:
                s.failure_timestamps.popleft()
            self._release_trial(trial)

            if s.state == CircuitState.HALF_OPEN:
                if not trial:
                    # Admitted before the breaker opened; only the trial decides
                    return
                self._transition(CircuitState.OPEN, now)
                logger.warning("circuit_reopened", service=self.name, error=str(exc))
            elif (
                s.state == CircuitState.CLOSED
                and len(s.failure_timestamps) >= self.config.failure_threshold
            ):
                failures = len(s.failure_timestamps)
                self._transition(CircuitState.OPEN, now)
                logger.warning(
                    "circuit_opened",
                    service=self.name,
                    failures=failures,
                    window=self.config.monitoring_period,
                )

    @asynccontextmanager
    async def guard(self) -> AsyncIterator[None]:
        """
        Guard an arbitrary block.

            async with breaker.guard():
                response = await client.post(...)
        """
        trial = await self._admit()
        try:
            yield
        except Exception as exc:
            await self._record_failure(exc, trial)
            raise
        except BaseException:
            # Cancellation: free the trial slot without judging the remote
            self._release_trial(trial)
            raise
        else:
            await self._record_success(trial)

    async def execute(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run ``func(*args, **kwargs)`` with circuit breaker protection.

        ``func`` is not invoked at all when the call is rejected.

        Raises:
            CircuitBreakerError: If the breaker rejects the call
        """
        async with self.guard():
            return await func(*args, **kwargs)
