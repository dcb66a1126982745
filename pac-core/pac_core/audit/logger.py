"""
Audit Logger
============
Hash-chained audit logging onto an append-only sink.
"""

import asyncio
import uuid
from typing import Any, Dict, List, Optional, Protocol, Union

import structlog

from ..clock import Clock, SYSTEM_CLOCK
from .event_types import AuditEventType
from .hashing import compute_event_hash
from .models import AuditEvent

logger = structlog.get_logger(__name__)


class AuditSink(Protocol):
    """Append-only destination for audit events."""

    async def append(self, event: AuditEvent) -> None:
        ...


class InMemoryAuditSink:
    """Sink that keeps events in a list. For development and tests."""

    def __init__(self) -> None:
        self.events: List[AuditEvent] = []

    async def append(self, event: AuditEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: Union[AuditEventType, str]) -> List[AuditEvent]:
        value = getattr(event_type, "value", event_type)
        return [e for e in self.events if e.event_type == value]

    @property
    def last_hash(self) -> Optional[str]:
        return self.events[-1].hash if self.events else None


class AuditLogger:
    """
    High-level audit logging interface.

    Events are chained in the order they are appended; the lock keeps the
    chain linear when several tasks log at once.
    """

    def __init__(
        self,
        service_name: str,
        sink: Optional[AuditSink] = None,
        clock: Optional[Clock] = None,
    ):
        self.service_name = service_name
        self.sink = sink if sink is not None else InMemoryAuditSink()
        self._clock = clock or SYSTEM_CLOCK
        self._previous_hash: Optional[str] = None
        self._lock = asyncio.Lock()

    def set_previous_hash(self, hash_value: Optional[str]) -> None:
        """Resume the chain from a persisted head (e.g. on startup)."""
        self._previous_hash = hash_value

    async def log(
        self,
        event_type: Union[AuditEventType, str],
        action: str,
        outcome: str = "success",
        tenant_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        """
        Append an audit event.

        Args:
            event_type: Type of event
            action: Human-readable action description
            outcome: "success", "failure" or "corrected"
            tenant_id: Owning tenant
            resource_type: Type of affected resource
            resource_id: ID of affected resource
            payload: Additional event data
        """
        payload = payload or {}
        event_type_str = getattr(event_type, "value", event_type)

        async with self._lock:
            timestamp = self._clock.now()
            event_hash = compute_event_hash(
                self._previous_hash,
                timestamp,
                self.service_name,
                event_type_str,
                resource_id,
                payload,
            )
            event = AuditEvent(
                id=str(uuid.uuid4()),
                timestamp=timestamp,
                service=self.service_name,
                event_type=event_type_str,
                tenant_id=tenant_id,
                resource_type=resource_type,
                resource_id=resource_id,
                action=action,
                outcome=outcome,
                payload=payload,
                hash=event_hash,
                previous_hash=self._previous_hash,
            )
            await self.sink.append(event)
            self._previous_hash = event_hash

        logger.info(
            "audit_event_logged",
            event_id=event.id,
            event_type=event.event_type,
            resource_id=resource_id,
            outcome=outcome,
        )
        return event
