"""
Connection Registry
===================
One long-lived breaker, executor and client per tenant.

A breaker created per call would forget every failure it saw, so clients are
built once on first use and reused for the lifetime of the registry.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

from ..circuit_breaker import BreakerRegistry
from ..clock import Clock, SYSTEM_CLOCK
from ..errors.classifier import ErrorClassifier
from ..errors.exceptions import CredentialsNotConfiguredError
from ..retry import ProtectedExecutor, RetryStrategy
from .client import ProtectedPACClient
from .models import Credentials
from .transport import PACTransport

logger = structlog.get_logger(__name__)

TransportFactory = Callable[[Credentials], PACTransport]
CredentialsProvider = Callable[[str], Awaitable[Optional[Credentials]]]


class ConnectionRegistry:
    """
    Get-or-create store of ProtectedPACClient keyed by tenant.

    Args:
        transport_factory: Builds a transport from decrypted credentials
        credentials_provider: Returns a tenant's credentials, or None
        breakers: Breaker registry (shared so ops endpoints see the same breakers)
        classifier: Shared error classifier
        strategy: Shared retry strategy
        clock: Time source for breakers and executors
        shutdown: Event that aborts pending backoff waits
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        credentials_provider: CredentialsProvider,
        breakers: Optional[BreakerRegistry] = None,
        classifier: Optional[ErrorClassifier] = None,
        strategy: Optional[RetryStrategy] = None,
        clock: Optional[Clock] = None,
        shutdown: Optional[asyncio.Event] = None,
    ):
        self._transport_factory = transport_factory
        self._credentials_provider = credentials_provider
        self._clock = clock or SYSTEM_CLOCK
        self.breakers = breakers if breakers is not None else BreakerRegistry(clock=self._clock)
        self.classifier = classifier or ErrorClassifier()
        self.strategy = strategy or RetryStrategy()
        self._shutdown = shutdown
        self._clients: Dict[str, ProtectedPACClient] = {}
        self._lock = asyncio.Lock()

    async def has_credentials(self, tenant_id: str) -> bool:
        if tenant_id in self._clients:
            return True
        return await self._credentials_provider(tenant_id) is not None

    async def get(self, tenant_id: str) -> ProtectedPACClient:
        """
        Get or create the tenant's client.

        Raises:
            CredentialsNotConfiguredError: If the tenant has no credentials
        """
        if tenant_id not in self._clients:
            async with self._lock:
                if tenant_id not in self._clients:
                    self._clients[tenant_id] = await self._create(tenant_id)
        return self._clients[tenant_id]

    async def _create(self, tenant_id: str) -> ProtectedPACClient:
        credentials = await self._credentials_provider(tenant_id)
        if credentials is None:
            raise CredentialsNotConfiguredError(tenant_id)

        breaker = await self.breakers.get(tenant_id)
        executor = ProtectedExecutor(
            breaker,
            classifier=self.classifier,
            strategy=self.strategy,
            clock=self._clock,
            shutdown=self._shutdown,
        )
        logger.info("pac_connection_created", tenant_id=tenant_id)
        return ProtectedPACClient(self._transport_factory(credentials), executor)

    def get_existing(self, tenant_id: str) -> Optional[ProtectedPACClient]:
        return self._clients.get(tenant_id)

    def tenants(self) -> List[str]:
        return list(self._clients)

    def breaker_stats(self) -> Dict[str, Dict[str, Any]]:
        return self.breakers.get_all_stats()

    def reset_breaker(self, tenant_id: str) -> bool:
        return self.breakers.reset(tenant_id)

    async def aclose(self) -> None:
        """Close every transport. The registry can't be used afterwards."""
        async with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            await client.aclose()
