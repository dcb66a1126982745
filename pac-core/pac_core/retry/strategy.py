"""
Retry Strategy
==============
Pure retry policy over classified errors.

Only transport-level categories are retried. Validation and business-rule
failures must be corrected and resubmitted as a new request, never replayed.
"""

import random
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional

from ..errors.models import ClassifiedError, ErrorCategory

RETRYABLE_CATEGORIES: FrozenSet[ErrorCategory] = frozenset(
    {ErrorCategory.NETWORK, ErrorCategory.SYSTEM}
)


@dataclass(frozen=True)
class RetryDecision:
    should_retry: bool
    delay_ms: int
    max_retries: int

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0


NO_RETRY = RetryDecision(should_retry=False, delay_ms=0, max_retries=0)


class RetryStrategy:
    """
    Exponential backoff policy.

    ``delay_ms = base_delay_ms * 2 ** attempt_index`` for NETWORK and SYSTEM
    errors, up to ``max_retries`` retries. With ``jitter=True`` each delay is
    scaled by a random factor in [0.5, 1.5).
    """

    def __init__(
        self,
        base_delay_ms: int = 2000,
        max_retries: int = 5,
        jitter: bool = False,
        rng: Optional[Callable[[], float]] = None,
    ):
        self.base_delay_ms = base_delay_ms
        self.max_retries = max_retries
        self.jitter = jitter
        self._rng = rng or random.random

    def decide(self, error: ClassifiedError, attempt_index: int) -> RetryDecision:
        if not error.retryable:
            return NO_RETRY

        if error.category not in RETRYABLE_CATEGORIES:
            return NO_RETRY

        if attempt_index >= self.max_retries:
            return RetryDecision(should_retry=False, delay_ms=0, max_retries=self.max_retries)

        delay_ms = self.base_delay_ms * (2 ** attempt_index)
        if self.jitter:
            delay_ms = int(delay_ms * (0.5 + self._rng()))

        return RetryDecision(should_retry=True, delay_ms=delay_ms, max_retries=self.max_retries)
