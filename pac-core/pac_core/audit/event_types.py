"""
Audit Event Types
=================
Audit event types emitted by the PAC resilience layer.
"""

from enum import Enum


class AuditEventType(str, Enum):
    """Audit event types for document certification."""
    # Submission
    DOCUMENT_AUTHORIZED = "document.authorized"
    DOCUMENT_REJECTED = "document.rejected"
    SUBMISSION_ERROR = "document.submission_error"

    # Polling
    STATUS_POLLED = "document.status_polled"

    # Reconciliation
    RECONCILIATION_FIX = "reconciliation.fix"
    RECONCILIATION_RUN = "reconciliation.run"

    # Operations
    BREAKER_RESET = "ops.breaker_reset"
