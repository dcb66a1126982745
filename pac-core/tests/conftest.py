"""
Shared fixtures for pac-core tests.
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from pac_core.audit import AuditLogger, InMemoryAuditSink
from pac_core.clock import Clock
from pac_core.documents import DocumentRecord, DocumentStatus, InMemoryDocumentStore
from pac_core.errors.exceptions import OperationCancelled
from pac_core.remote import (
    AnnulResponse,
    ArtifactResponse,
    ConnectionRegistry,
    Credentials,
    DocumentRef,
    EmailResponse,
    EmailTrackingResponse,
    QuotaResponse,
    StatusResponse,
    SubmitResponse,
    TaxpayerIdResponse,
)

TENANT = "tenant-1"
START = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Clock whose time only moves when told to; sleeps are recorded and instant."""

    def __init__(self, start: datetime = START):
        self._start = start
        self._elapsed = 0.0
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self._elapsed

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def advance(self, seconds: float) -> None:
        self._elapsed += seconds

    async def sleep(self, seconds: float, cancel: Optional[asyncio.Event] = None) -> None:
        if cancel is not None and cancel.is_set():
            raise OperationCancelled("Wait aborted by shutdown signal")
        self.sleeps.append(seconds)
        self._elapsed += seconds
        await asyncio.sleep(0)


class StubTransport:
    """
    Scripted PACTransport.

    ``statuses`` maps a document number to a list of responses (or exceptions)
    returned in order; the last entry repeats once the list is drained.
    """

    def __init__(self) -> None:
        self.calls: Dict[str, int] = defaultdict(int)
        self.submit_results: List[Any] = []
        self.statuses: Dict[str, List[Any]] = {}
        self.quota: Any = QuotaResponse(available=100, used=0, total=100)
        self.idempotency_keys: List[Optional[str]] = []
        self.closed = False

    @staticmethod
    def _take(script: List[Any]) -> Any:
        item = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(item, BaseException):
            raise item
        return item

    async def submit(self, document_b64: str, idempotency_key: Optional[str] = None) -> SubmitResponse:
        self.calls["submit"] += 1
        self.idempotency_keys.append(idempotency_key)
        return self._take(self.submit_results)

    async def query_status(self, ref: DocumentRef) -> StatusResponse:
        self.calls["query_status"] += 1
        return self._take(self.statuses[ref.document_number])

    async def annul(self, ref: DocumentRef, reason: str) -> AnnulResponse:
        self.calls["annul"] += 1
        return AnnulResponse(code="00", message="annulled")

    async def download_artifact(self, ref, kind) -> ArtifactResponse:
        self.calls["download_artifact"] += 1
        return ArtifactResponse(code="00", content="UERG")

    async def check_quota(self) -> QuotaResponse:
        self.calls["check_quota"] += 1
        if isinstance(self.quota, BaseException):
            raise self.quota
        return self.quota

    async def send_email(self, ref: DocumentRef, email: str) -> EmailResponse:
        self.calls["send_email"] += 1
        return EmailResponse(code="00")

    async def track_email(self, ref: DocumentRef) -> EmailTrackingResponse:
        self.calls["track_email"] += 1
        return EmailTrackingResponse(delivery_status="DELIVERED")

    async def validate_taxpayer_id(self, taxpayer_id: str) -> TaxpayerIdResponse:
        self.calls["validate_taxpayer_id"] += 1
        return TaxpayerIdResponse(check_digit="77", full_id=f"{taxpayer_id} DV 77", valid=True)

    async def aclose(self) -> None:
        self.closed = True


class RecordingStore(InMemoryDocumentStore):
    """In-memory store that remembers every update call."""

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.updates: List[Tuple[str, Dict[str, Any]]] = []

    async def update(self, document_id: str, **changes: Any) -> DocumentRecord:
        self.updates.append((document_id, changes))
        return await super().update(document_id, **changes)

    def updated_ids(self) -> List[str]:
        return [doc_id for doc_id, _ in self.updates]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def store(clock):
    return RecordingStore(clock)


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def audit(audit_sink, clock):
    return AuditLogger("pac-core-tests", audit_sink, clock)


@pytest.fixture
def credentials_by_tenant():
    return {TENANT: Credentials(company_token="token", password="secret")}


@pytest.fixture
def connections(transport, credentials_by_tenant, clock):
    async def provider(tenant_id: str):
        return credentials_by_tenant.get(tenant_id)

    return ConnectionRegistry(lambda creds: transport, provider, clock=clock)


@pytest.fixture
def make_record(store, clock):
    """Factory adding a DocumentRecord to the store."""

    def factory(
        document_id: str,
        status: DocumentStatus = DocumentStatus.PROCESSING,
        tenant_id: str = TENANT,
        number: Optional[str] = None,
        age: float = 60.0,
        **fields: Any,
    ) -> DocumentRecord:
        created = clock.now() - timedelta(seconds=age)
        record = DocumentRecord(
            id=document_id,
            tenant_id=tenant_id,
            ref=DocumentRef(document_number=number or document_id),
            status=status,
            created_at=created,
            processing_started_at=created if status == DocumentStatus.PROCESSING else None,
            **fields,
        )
        return store.add(record)

    return factory
