"""
Retry and Protected Execution
=============================
Retry policy over classified errors and the executor that applies it.
"""

from .strategy import RetryDecision, RetryStrategy, RETRYABLE_CATEGORIES
from .metrics import CallMetric, MetricsBuffer
from .executor import ProtectedExecutor

__all__ = [
    # Strategy
    "RetryDecision",
    "RetryStrategy",
    "RETRYABLE_CATEGORIES",
    # Metrics
    "CallMetric",
    "MetricsBuffer",
    # Executor
    "ProtectedExecutor",
]
