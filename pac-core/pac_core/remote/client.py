"""
Protected PAC Client
====================
Every provider operation routed through one tenant's ProtectedExecutor.
"""

from typing import Any, Dict, Optional

import structlog

from ..circuit_breaker import CircuitBreakerStats
from ..retry import ProtectedExecutor
from .models import (
    AnnulResponse,
    ArtifactKind,
    ArtifactResponse,
    DocumentRef,
    EmailResponse,
    EmailTrackingResponse,
    QuotaResponse,
    StatusResponse,
    SubmitResponse,
    TaxpayerIdResponse,
)
from .transport import PACTransport

logger = structlog.get_logger(__name__)


class ProtectedPACClient:
    """
    Resilient facade over a PACTransport.

    Operation names are stable and show up in call metrics and logs.
    """

    def __init__(self, transport: PACTransport, executor: ProtectedExecutor):
        self.transport = transport
        self.executor = executor

    async def submit(
        self, document_b64: str, idempotency_key: Optional[str] = None
    ) -> SubmitResponse:
        return await self.executor.call(
            "submit", self.transport.submit, document_b64, idempotency_key=idempotency_key
        )

    async def query_status(self, ref: DocumentRef) -> StatusResponse:
        return await self.executor.call("query_status", self.transport.query_status, ref)

    async def annul(self, ref: DocumentRef, reason: str) -> AnnulResponse:
        return await self.executor.call("annul", self.transport.annul, ref, reason)

    async def download_artifact(self, ref: DocumentRef, kind: ArtifactKind) -> ArtifactResponse:
        return await self.executor.call(
            "download_artifact", self.transport.download_artifact, ref, kind
        )

    async def check_quota(self) -> QuotaResponse:
        return await self.executor.call("check_quota", self.transport.check_quota)

    async def send_email(self, ref: DocumentRef, email: str) -> EmailResponse:
        return await self.executor.call("send_email", self.transport.send_email, ref, email)

    async def track_email(self, ref: DocumentRef) -> EmailTrackingResponse:
        return await self.executor.call("track_email", self.transport.track_email, ref)

    async def validate_taxpayer_id(self, taxpayer_id: str) -> TaxpayerIdResponse:
        return await self.executor.call(
            "validate_taxpayer_id", self.transport.validate_taxpayer_id, taxpayer_id
        )

    async def test_connection(self) -> bool:
        """Check credentials and reachability with a quota query."""
        try:
            quota = await self.check_quota()
        except Exception as e:
            logger.warning("pac_connection_test_failed", service=self.executor.breaker.name, error=str(e))
            return False
        return quota.available >= 0

    def get_stats(self) -> Dict[str, Any]:
        return self.executor.get_stats()

    def breaker_stats(self) -> CircuitBreakerStats:
        return self.executor.breaker.get_stats()

    def reset_breaker(self) -> None:
        self.executor.breaker.reset()

    async def aclose(self) -> None:
        await self.transport.aclose()
