"""
PAC Transport Protocol
======================
The opaque RPC boundary to the certification provider.

A transport performs exactly one remote call per method invocation and raises
on failure. It never retries; retry and breaker decisions belong to the
ProtectedExecutor.
"""

from typing import Optional, Protocol, runtime_checkable

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


@runtime_checkable
class PACTransport(Protocol):
    """One tenant's connection to the provider."""

    async def submit(
        self, document_b64: str, idempotency_key: Optional[str] = None
    ) -> SubmitResponse:
        ...

    async def query_status(self, ref: DocumentRef) -> StatusResponse:
        ...

    async def annul(self, ref: DocumentRef, reason: str) -> AnnulResponse:
        ...

    async def download_artifact(self, ref: DocumentRef, kind: ArtifactKind) -> ArtifactResponse:
        ...

    async def check_quota(self) -> QuotaResponse:
        ...

    async def send_email(self, ref: DocumentRef, email: str) -> EmailResponse:
        ...

    async def track_email(self, ref: DocumentRef) -> EmailTrackingResponse:
        ...

    async def validate_taxpayer_id(self, taxpayer_id: str) -> TaxpayerIdResponse:
        ...

    async def aclose(self) -> None:
        ...
