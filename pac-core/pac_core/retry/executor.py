"""
Protected Executor
==================
Composes the circuit breaker, the error classifier and the retry strategy
into the single entry point for remote calls.

The executor is the only place that decides retry versus surface. Callers
above it treat any raised error as final for that attempt.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState

from ..circuit_breaker import CircuitBreaker, CircuitBreakerError
from ..clock import Clock, SYSTEM_CLOCK
from ..errors.classifier import ErrorClassifier
from ..errors.exceptions import OperationCancelled, RemoteCallError
from ..errors.models import ClassifiedError
from ..metrics import record_call
from .metrics import CallMetric, MetricsBuffer
from .strategy import RetryDecision, RetryStrategy

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ProtectedExecutor:
    """
    Breaker + classification + retry around one tenant connection.

    Example:
        executor = ProtectedExecutor(breaker)
        status = await executor.call("query_status", transport.query_status, ref)

    Args:
        breaker: The long-lived breaker for this connection
        classifier: Maps raw failures to ClassifiedError
        strategy: Retry policy
        clock: Time source for durations and backoff waits
        shutdown: Event that aborts pending backoff waits when set
        metrics_capacity: Ring buffer size for CallMetric history
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        classifier: Optional[ErrorClassifier] = None,
        strategy: Optional[RetryStrategy] = None,
        clock: Optional[Clock] = None,
        shutdown: Optional[asyncio.Event] = None,
        metrics_capacity: int = 100,
    ):
        self.breaker = breaker
        self.classifier = classifier or ErrorClassifier()
        self.strategy = strategy or RetryStrategy()
        self._clock = clock or SYSTEM_CLOCK
        self._shutdown = shutdown
        self._metrics = MetricsBuffer(metrics_capacity)

    @property
    def metrics(self) -> MetricsBuffer:
        return self._metrics

    async def call(
        self,
        operation_name: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        cancel: Optional[asyncio.Event] = None,
        **kwargs: Any,
    ) -> T:
        """
        Run ``func(*args, **kwargs)`` through the breaker, retrying per strategy.

        Raises:
            CircuitBreakerError: The breaker rejected an attempt (never retried)
            RemoteCallError: The call failed and no retry is due
            OperationCancelled: The shutdown signal fired during a backoff wait
        """
        cancel = cancel or self._shutdown
        started = self._clock.monotonic()
        decisions: List[RetryDecision] = []
        attempts = 0

        def should_retry(retry_state: RetryCallState) -> bool:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            if not isinstance(exc, RemoteCallError):
                return False
            decision = self.strategy.decide(exc.error, retry_state.attempt_number - 1)
            decisions.append(decision)
            if decision.should_retry:
                logger.warning(
                    "pac_call_retrying",
                    operation=operation_name,
                    service=self.breaker.name,
                    attempt=retry_state.attempt_number,
                    delay_ms=decision.delay_ms,
                    code=exc.code,
                )
            return decision.should_retry

        def wait(retry_state: RetryCallState) -> float:
            return decisions[-1].delay_seconds

        async def sleep(seconds: float) -> None:
            await self._clock.sleep(seconds, cancel)

        retrying = AsyncRetrying(retry=should_retry, wait=wait, sleep=sleep)

        try:
            async for attempt in retrying:
                with attempt:
                    attempts += 1
                    try:
                        result = await self.breaker.execute(func, *args, **kwargs)
                    except CircuitBreakerError:
                        raise
                    except Exception as exc:
                        error = self.classifier.classify(exc)
                        raise RemoteCallError(error, operation_name) from exc
        except CircuitBreakerError as exc:
            await self._record(operation_name, started, False, attempts, self.classifier.classify(exc))
            logger.warning(
                "pac_call_rejected",
                operation=operation_name,
                service=self.breaker.name,
                retry_after=exc.retry_after,
            )
            raise
        except RemoteCallError as exc:
            await self._record(operation_name, started, False, attempts, exc.error)
            logger.error(
                "pac_call_failed",
                operation=operation_name,
                service=self.breaker.name,
                attempts=attempts,
                code=exc.code,
                category=exc.error.category.value,
            )
            raise
        except OperationCancelled as exc:
            await self._record(operation_name, started, False, attempts, self.classifier.classify(exc))
            logger.info("pac_call_cancelled", operation=operation_name, attempts=attempts)
            raise

        await self._record(operation_name, started, True, attempts, None)
        return result

    async def _record(
        self,
        operation_name: str,
        started: float,
        success: bool,
        attempts: int,
        error: Optional[ClassifiedError],
    ) -> None:
        elapsed = self._clock.monotonic() - started
        await self._metrics.record(
            CallMetric(
                operation_name=operation_name,
                duration_ms=int(elapsed * 1000),
                success=success,
                attempts=attempts,
                error=error,
            )
        )
        record_call(
            self.breaker.name,
            operation_name,
            success,
            elapsed,
            error.code if error else "",
        )

    def get_stats(self) -> dict:
        """Aggregated call history plus the breaker's own snapshot."""
        stats = self._metrics.summary()
        stats["circuit_breaker"] = self.breaker.get_stats().to_dict()
        return stats
