"""
Document Models
===============
Local view of a fiscal document and its certification status.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..remote.models import DocumentRef, RemoteStatus


class DocumentStatus(str, Enum):
    DRAFT = "DRAFT"
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    AUTHORIZED = "AUTHORIZED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    ANNULLED = "ANNULLED"


# Statuses a poll can settle on without further remote queries
TERMINAL_STATUSES = frozenset(
    {DocumentStatus.AUTHORIZED, DocumentStatus.REJECTED, DocumentStatus.ANNULLED}
)

# Never sent to the provider
UNSUBMITTED_STATUSES = frozenset({DocumentStatus.DRAFT, DocumentStatus.CANCELLED})

REMOTE_TO_LOCAL: Dict[str, DocumentStatus] = {
    RemoteStatus.ACEPTADO.value: DocumentStatus.AUTHORIZED,
    RemoteStatus.RECHAZADO.value: DocumentStatus.REJECTED,
    RemoteStatus.EN_PROCESO.value: DocumentStatus.PROCESSING,
    RemoteStatus.ANULADO.value: DocumentStatus.ANNULLED,
}


@dataclass
class DocumentRecord:
    id: str
    tenant_id: str
    ref: DocumentRef
    status: DocumentStatus = DocumentStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    processing_started_at: Optional[datetime] = None
    external_id: Optional[str] = None
    remote_status: Optional[str] = None
    message: Optional[str] = None
    retry_count: int = 0
    last_error: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
