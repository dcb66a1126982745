"""
Circuit Breaker Tests
=====================
State transitions, sliding window and concurrency of the breaker.
"""

import asyncio

import pytest

from pac_core.circuit_breaker import (
    BreakerRegistry,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerError,
    CircuitState,
)


class Boom(Exception):
    pass


class CountingOperation:
    """Async callable that counts invocations and fails while ``failing``."""

    def __init__(self, failing: bool = False):
        self.calls = 0
        self.failing = failing

    async def __call__(self):
        self.calls += 1
        if self.failing:
            raise Boom("remote down")
        return "ok"


async def trip(breaker, clock, failures=5, spacing=2.0):
    op = CountingOperation(failing=True)
    for _ in range(failures):
        with pytest.raises(Boom):
            await breaker.execute(op)
        clock.advance(spacing)
    return op


class TestClosedState:
    """Failure counting while CLOSED."""

    @pytest.mark.asyncio
    async def test_opens_after_threshold_within_window(self, clock):
        """Five failures inside ten seconds open the breaker and block the next call."""
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(), clock)

        await trip(breaker, clock, failures=5, spacing=2.0)
        assert breaker.state == CircuitState.OPEN

        op = CountingOperation()
        with pytest.raises(CircuitBreakerError) as exc_info:
            await breaker.execute(op)

        assert op.calls == 0
        assert exc_info.value.code == "CIRCUIT_OPEN"
        assert exc_info.value.retry_after > 0

    @pytest.mark.asyncio
    async def test_old_failures_fall_out_of_window(self, clock):
        """Failures older than the monitoring period no longer count."""
        breaker = CircuitBreaker(
            "tenant-1", CircuitBreakerConfig(failure_threshold=5, monitoring_period=120.0), clock
        )

        await trip(breaker, clock, failures=4, spacing=1.0)
        clock.advance(121.0)
        await trip(breaker, clock, failures=1)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_stats().failures == 1

    @pytest.mark.asyncio
    async def test_failure_exactly_one_period_old_still_counts(self, clock):
        breaker = CircuitBreaker(
            "tenant-1", CircuitBreakerConfig(failure_threshold=2, monitoring_period=120.0), clock
        )

        await trip(breaker, clock, failures=1, spacing=120.0)
        await trip(breaker, clock, failures=1)

        assert breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_concurrent_failures_keep_counters_consistent(self, clock):
        """Twenty callers failing together open the breaker once and lose no counts."""
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(failure_threshold=5, timeout=60.0), clock)
        gate = asyncio.Event()

        async def failing():
            await gate.wait()
            raise Boom("remote down")

        tasks = [asyncio.create_task(breaker.execute(failing)) for _ in range(20)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, Boom) for r in results)
        stats = breaker.get_stats()
        assert stats.state == CircuitState.OPEN
        assert stats.total_requests == 20
        assert stats.total_failures == 20
        assert stats.total_rejections == 0
        assert stats.failures == 20
        assert stats.retry_after == pytest.approx(60.0)

        rejected = await asyncio.gather(
            *(breaker.execute(CountingOperation()) for _ in range(5)),
            return_exceptions=True,
        )
        assert all(isinstance(r, CircuitBreakerError) for r in rejected)
        assert breaker.get_stats().total_rejections == 5

    @pytest.mark.asyncio
    async def test_success_clears_failure_window(self, clock):
        """A success while CLOSED resets the window."""
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(), clock)

        await trip(breaker, clock, failures=4)
        assert await breaker.execute(CountingOperation()) == "ok"
        await trip(breaker, clock, failures=4)

        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_excluded_exceptions_do_not_count(self, clock):
        """Excluded exception types pass through without tripping."""
        config = CircuitBreakerConfig(failure_threshold=2, excluded_exceptions=(Boom,))
        breaker = CircuitBreaker("tenant-1", config, clock)

        await trip(breaker, clock, failures=3)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_stats().total_failures == 0

    @pytest.mark.asyncio
    async def test_next_attempt_time_only_while_open(self, clock):
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(timeout=60.0), clock)
        assert breaker.get_stats().next_attempt_time is None

        await trip(breaker, clock, failures=5, spacing=0.0)
        stats = breaker.get_stats()
        assert stats.state == CircuitState.OPEN
        assert stats.next_attempt_time == pytest.approx(clock.monotonic() + 60.0)


class TestHalfOpen:
    """Recovery through trial calls."""

    @pytest.mark.asyncio
    async def test_closes_after_success_threshold(self, clock):
        """After the timeout, two successful trials close the breaker."""
        breaker = CircuitBreaker(
            "tenant-1", CircuitBreakerConfig(timeout=60.0, success_threshold=2), clock
        )
        await trip(breaker, clock, failures=5, spacing=0.0)

        clock.advance(60.0)
        op = CountingOperation()

        assert await breaker.execute(op) == "ok"
        assert op.calls == 1
        assert breaker.state == CircuitState.HALF_OPEN

        await breaker.execute(op)
        assert breaker.state == CircuitState.CLOSED
        assert breaker.get_stats().failures == 0
        assert breaker.get_stats().next_attempt_time is None

    @pytest.mark.asyncio
    async def test_trial_failure_reopens_with_fresh_timeout(self, clock):
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(timeout=60.0), clock)
        await trip(breaker, clock, failures=5, spacing=0.0)

        clock.advance(61.0)
        with pytest.raises(Boom):
            await breaker.execute(CountingOperation(failing=True))

        stats = breaker.get_stats()
        assert stats.state == CircuitState.OPEN
        assert stats.next_attempt_time == pytest.approx(clock.monotonic() + 60.0)

    @pytest.mark.asyncio
    async def test_only_one_concurrent_trial(self, clock):
        """A second caller during an in-flight trial is rejected, not invoked."""
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(timeout=60.0), clock)
        await trip(breaker, clock, failures=5, spacing=0.0)
        clock.advance(60.0)

        gate = asyncio.Event()

        async def slow_trial():
            await gate.wait()
            return "ok"

        trial = asyncio.create_task(breaker.execute(slow_trial))
        for _ in range(3):
            await asyncio.sleep(0)

        second = CountingOperation()
        with pytest.raises(CircuitBreakerError) as exc_info:
            await breaker.execute(second)
        assert exc_info.value.state == CircuitState.HALF_OPEN
        assert second.calls == 0

        gate.set()
        assert await trial == "ok"
        assert breaker.get_stats().successes_in_half_open == 1

    @pytest.mark.asyncio
    async def test_late_failure_from_before_opening_does_not_reopen(self, clock):
        """A call admitted while CLOSED that fails during HALF_OPEN is counted but not judged."""
        breaker = CircuitBreaker(
            "tenant-1", CircuitBreakerConfig(timeout=60.0, success_threshold=2), clock
        )
        gate = asyncio.Event()

        async def slow_failure():
            await gate.wait()
            raise Boom("late")

        straggler = asyncio.create_task(breaker.execute(slow_failure))
        await asyncio.sleep(0)

        await trip(breaker, clock, failures=5, spacing=0.0)
        clock.advance(60.0)
        assert await breaker.execute(CountingOperation()) == "ok"
        assert breaker.state == CircuitState.HALF_OPEN

        gate.set()
        with pytest.raises(Boom):
            await straggler

        stats = breaker.get_stats()
        assert stats.state == CircuitState.HALF_OPEN
        assert stats.successes_in_half_open == 1
        assert stats.total_failures == 6

        await breaker.execute(CountingOperation())
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_cancelled_trial_frees_slot(self, clock):
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(timeout=60.0), clock)
        await trip(breaker, clock, failures=5, spacing=0.0)
        clock.advance(60.0)

        async def hang():
            await asyncio.Event().wait()

        task = asyncio.create_task(breaker.execute(hang))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await breaker.execute(CountingOperation()) == "ok"


class TestOperations:
    """Reset, stats and the context manager form."""

    @pytest.mark.asyncio
    async def test_reset_forces_closed(self, clock):
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(), clock)
        await trip(breaker, clock, failures=5, spacing=0.0)

        breaker.reset()

        stats = breaker.get_stats()
        assert stats.state == CircuitState.CLOSED
        assert stats.failures == 0
        assert stats.total_requests == 0
        assert stats.next_attempt_time is None

    @pytest.mark.asyncio
    async def test_stats_count_rejections(self, clock):
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(), clock)
        await trip(breaker, clock, failures=5, spacing=0.0)

        for _ in range(3):
            with pytest.raises(CircuitBreakerError):
                await breaker.execute(CountingOperation())

        stats = breaker.get_stats()
        assert stats.total_requests == 8
        assert stats.total_failures == 5
        assert stats.total_rejections == 3
        assert stats.to_dict()["state"] == "OPEN"

    @pytest.mark.asyncio
    async def test_get_stats_does_not_mutate(self, clock):
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(), clock)
        await trip(breaker, clock, failures=5, spacing=0.0)
        clock.advance(120.0)

        breaker.get_stats()

        assert breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_guard_context_manager(self, clock):
        breaker = CircuitBreaker("tenant-1", CircuitBreakerConfig(failure_threshold=1), clock)

        with pytest.raises(Boom):
            async with breaker.guard():
                raise Boom("remote down")

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerError):
            async with breaker.guard():
                pass


class TestBreakerRegistry:
    """Long-lived breakers per key."""

    @pytest.mark.asyncio
    async def test_same_breaker_per_name(self, clock):
        registry = BreakerRegistry(clock=clock)

        first = await registry.get("tenant-1")
        second = await registry.get("tenant-1")
        other = await registry.get("tenant-2")

        assert first is second
        assert first is not other
        assert registry.get_sync("tenant-1") is first
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_reset_and_stats(self, clock):
        registry = BreakerRegistry(CircuitBreakerConfig(failure_threshold=1), clock=clock)
        breaker = await registry.get("tenant-1")
        await trip(breaker, clock, failures=1)

        assert registry.get_all_stats()["tenant-1"]["state"] == "OPEN"
        assert registry.reset("tenant-1") is True
        assert registry.reset("missing") is False
        assert breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_reset_all(self, clock):
        registry = BreakerRegistry(CircuitBreakerConfig(failure_threshold=1), clock=clock)
        for name in ("tenant-1", "tenant-2"):
            await trip(registry.get_sync(name), clock, failures=1)

        registry.reset_all()

        assert {s["state"] for s in registry.get_all_stats().values()} == {"CLOSED"}
