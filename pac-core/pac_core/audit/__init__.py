"""
Audit Logging Module
====================
Append-only, tamper-evident audit trail with hash chaining.
"""

from .event_types import AuditEventType
from .models import AuditEvent
from .hashing import compute_event_hash, verify_chain_integrity
from .logger import AuditLogger, AuditSink, InMemoryAuditSink

__all__ = [
    # Event Types
    "AuditEventType",
    # Models
    "AuditEvent",
    # Hashing
    "compute_event_hash",
    "verify_chain_integrity",
    # Logger
    "AuditLogger",
    "AuditSink",
    "InMemoryAuditSink",
]
