"""
Circuit Breaker Registry
========================
Keeps one long-lived breaker per key (tenant or connection name).
"""

import asyncio
from typing import Any, Dict, Optional

import structlog

from ..clock import Clock, SYSTEM_CLOCK
from .models import CircuitBreakerConfig
from .breaker import CircuitBreaker

logger = structlog.get_logger(__name__)


class BreakerRegistry:
    """
    Get-or-create store of circuit breakers.

    Breakers must survive across calls, so every caller for the same key has
    to obtain the breaker through the same registry instance.
    """

    def __init__(
        self,
        default_config: Optional[CircuitBreakerConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.default_config = default_config or CircuitBreakerConfig()
        self._clock = clock or SYSTEM_CLOCK
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = asyncio.Lock()

    async def get(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
    ) -> CircuitBreaker:
        """
        Get or create the breaker for ``name``.

        Args:
            name: Breaker key
            config: Optional configuration (only used if creating new breaker)
        """
        if name not in self._breakers:
            async with self._lock:
                if name not in self._breakers:
                    self._breakers[name] = self._create(name, config)
        return self._breakers[name]

    def get_sync(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
    ) -> CircuitBreaker:
        """Synchronous version of get."""
        if name not in self._breakers:
            self._breakers[name] = self._create(name, config)
        return self._breakers[name]

    def _create(self, name: str, config: Optional[CircuitBreakerConfig]) -> CircuitBreaker:
        logger.debug("circuit_breaker_created", service=name)
        return CircuitBreaker(
            name=name,
            config=config or self.default_config,
            clock=self._clock,
        )

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Stats snapshot for every registered breaker."""
        return {
            name: breaker.get_stats().to_dict()
            for name, breaker in self._breakers.items()
        }

    def reset(self, name: str) -> bool:
        """Reset a breaker to CLOSED. Returns False if it doesn't exist."""
        breaker = self._breakers.get(name)
        if breaker is None:
            return False
        breaker.reset()
        return True

    def reset_all(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()

    def __contains__(self, name: str) -> bool:
        return name in self._breakers

    def __len__(self) -> int:
        return len(self._breakers)
