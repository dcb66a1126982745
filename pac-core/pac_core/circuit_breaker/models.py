"""
Circuit Breaker Models
======================
Data models and enums for the circuit breaker pattern.
"""

from collections import deque
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Deque, Dict, Optional

from ..errors.exceptions import PACError


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "CLOSED"        # Normal operation
    OPEN = "OPEN"            # Failing, reject requests
    HALF_OPEN = "HALF_OPEN"  # One trial call tests recovery


class CircuitBreakerError(PACError):
    """Raised when the breaker rejects a call without invoking it."""

    code = "CIRCUIT_OPEN"

    def __init__(self, service_name: str, state: CircuitState, retry_after: float):
        self.service_name = service_name
        self.state = state
        self.retry_after = retry_after
        self.message = (
            f"Circuit breaker for '{service_name}' is {state.value}. "
            f"Retry after {retry_after:.1f}s"
        )
        super().__init__(self.message)


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Configuration for a circuit breaker. Times are in seconds."""
    failure_threshold: int = 5        # Failures within the window before opening
    success_threshold: int = 2        # Trial successes to close from half-open
    timeout: float = 60.0             # Seconds to stay open before half-open
    monitoring_period: float = 120.0  # Sliding window for counting failures
    half_open_max_calls: int = 1      # Concurrent trial calls in half-open
    excluded_exceptions: tuple = ()   # Exceptions that don't count as failures


@dataclass
class CircuitBreakerState:
    """Runtime state of a circuit breaker."""
    state: CircuitState = CircuitState.CLOSED
    failure_timestamps: Deque[float] = field(default_factory=deque)
    successes_in_half_open: int = 0
    half_open_in_flight: int = 0
    next_attempt_time: Optional[float] = None  # Set only while OPEN
    last_failure_time: Optional[float] = None
    last_state_change: float = 0.0

    # Lifetime counters
    total_requests: int = 0
    total_failures: int = 0
    total_successes: int = 0
    total_rejections: int = 0


@dataclass(frozen=True)
class CircuitBreakerStats:
    """Read-only snapshot for dashboards."""
    name: str
    state: CircuitState
    failures: int
    successes_in_half_open: int
    last_failure_time: Optional[float]
    next_attempt_time: Optional[float]
    retry_after: float
    total_requests: int
    total_failures: int
    total_successes: int
    total_rejections: int

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["state"] = self.state.value
        return d
