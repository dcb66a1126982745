"""
Document Store
==============
Durable read/write of document records, as seen by the resilience layer.
"""

import asyncio
import dataclasses
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..clock import Clock, SYSTEM_CLOCK
from ..errors.exceptions import DocumentNotFoundError
from .models import DocumentRecord, DocumentStatus


class DocumentStore(Protocol):

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        ...

    async def update(self, document_id: str, **changes: Any) -> DocumentRecord:
        """Apply ``changes`` to the record. Raises DocumentNotFoundError."""
        ...

    async def find_stuck(
        self,
        status: DocumentStatus,
        older_than: datetime,
        limit: int,
    ) -> List[DocumentRecord]:
        """Records in ``status`` since before ``older_than``, oldest first."""
        ...

    async def find_created_since(
        self,
        since: datetime,
        statuses: Iterable[DocumentStatus],
    ) -> List[DocumentRecord]:
        ...


class InMemoryDocumentStore:
    """Dict-backed DocumentStore for development and tests."""

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SYSTEM_CLOCK
        self._records: Dict[str, DocumentRecord] = {}
        self._lock = asyncio.Lock()

    def add(self, record: DocumentRecord) -> DocumentRecord:
        if record.created_at is None:
            record.created_at = self._clock.now()
        self._records[record.id] = record
        return record

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        record = self._records.get(document_id)
        return dataclasses.replace(record) if record else None

    async def update(self, document_id: str, **changes: Any) -> DocumentRecord:
        async with self._lock:
            record = self._records.get(document_id)
            if record is None:
                raise DocumentNotFoundError(document_id)
            updated = dataclasses.replace(record, updated_at=self._clock.now(), **changes)
            self._records[document_id] = updated
            return dataclasses.replace(updated)

    async def find_stuck(
        self,
        status: DocumentStatus,
        older_than: datetime,
        limit: int,
    ) -> List[DocumentRecord]:
        def since(r: DocumentRecord) -> datetime:
            return r.processing_started_at or r.updated_at or r.created_at

        matches = [
            r for r in self._records.values()
            if r.status == status and since(r) is not None and since(r) < older_than
        ]
        matches.sort(key=since)
        return [dataclasses.replace(r) for r in matches[:limit]]

    async def find_created_since(
        self,
        since: datetime,
        statuses: Iterable[DocumentStatus],
    ) -> List[DocumentRecord]:
        wanted = set(statuses)
        matches = [
            r for r in self._records.values()
            if r.status in wanted and r.created_at is not None and r.created_at >= since
        ]
        matches.sort(key=lambda r: r.created_at)
        return [dataclasses.replace(r) for r in matches]
