"""
Documents
=========
Local document records and the store interface the resilience layer uses.
"""

from .models import (
    DocumentStatus,
    DocumentRecord,
    REMOTE_TO_LOCAL,
    TERMINAL_STATUSES,
    UNSUBMITTED_STATUSES,
)
from .store import DocumentStore, InMemoryDocumentStore

__all__ = [
    "DocumentStatus",
    "DocumentRecord",
    "REMOTE_TO_LOCAL",
    "TERMINAL_STATUSES",
    "UNSUBMITTED_STATUSES",
    "DocumentStore",
    "InMemoryDocumentStore",
]
