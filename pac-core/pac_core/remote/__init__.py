"""
PAC Remote Layer
================
Transport boundary to the certification provider and its protected facade.

Usage:
    from pac_core.remote import ConnectionRegistry, HttpTransport

    connections = ConnectionRegistry(
        transport_factory=lambda creds: HttpTransport(base_url, creds),
        credentials_provider=load_tenant_credentials,
    )
    client = await connections.get(tenant_id)
    status = await client.query_status(ref)
"""

from .models import (
    SUCCESS_CODES,
    is_success,
    RemoteStatus,
    ArtifactKind,
    Credentials,
    DocumentRef,
    SubmitResponse,
    StatusResponse,
    AnnulResponse,
    ArtifactResponse,
    QuotaResponse,
    EmailResponse,
    EmailTrackingResponse,
    TaxpayerIdResponse,
)
from .transport import PACTransport
from .http_transport import HttpTransport
from .client import ProtectedPACClient
from .connections import ConnectionRegistry, TransportFactory, CredentialsProvider

__all__ = [
    # Models
    "SUCCESS_CODES",
    "is_success",
    "RemoteStatus",
    "ArtifactKind",
    "Credentials",
    "DocumentRef",
    "SubmitResponse",
    "StatusResponse",
    "AnnulResponse",
    "ArtifactResponse",
    "QuotaResponse",
    "EmailResponse",
    "EmailTrackingResponse",
    "TaxpayerIdResponse",
    # Transport
    "PACTransport",
    "HttpTransport",
    # Client
    "ProtectedPACClient",
    "ConnectionRegistry",
    "TransportFactory",
    "CredentialsProvider",
]
