"""
PAC Core - Circuit Breaker
==========================
Async circuit breaker guarding calls to the certification provider.

States:

1. CLOSED: Normal operation, calls flow through
2. OPEN: Too many recent failures, calls are rejected without being sent
3. HALF_OPEN: A trial call tests whether the remote has recovered

Usage:
    from pac_core.circuit_breaker import BreakerRegistry, CircuitBreakerError

    registry = BreakerRegistry()
    breaker = await registry.get("tenant-42")

    result = await breaker.execute(transport.query_status, ref)

    # Or as a context manager
    async with breaker.guard():
        response = await client.post(...)
"""

from .models import (
    CircuitState,
    CircuitBreakerError,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitBreakerStats,
)

from .breaker import CircuitBreaker

from .registry import BreakerRegistry

__all__ = [
    # Models
    "CircuitState",
    "CircuitBreakerError",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitBreakerStats",
    # Breaker
    "CircuitBreaker",
    # Registry
    "BreakerRegistry",
]
