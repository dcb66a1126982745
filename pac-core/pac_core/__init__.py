"""
PAC Core Library
================
Resilience and consistency layer for calls to an electronic-invoice
certification provider (PAC).
"""

__version__ = "0.1.0"

# Clock
from pac_core.clock import Clock, SYSTEM_CLOCK

# Errors
from pac_core.errors import (
    PACError,
    TransportError,
    RemoteCallError,
    OperationCancelled,
    DocumentNotFoundError,
    CredentialsNotConfiguredError,
    UnknownRemoteStatusError,
    ErrorCategory,
    ErrorSeverity,
    ClassifiedError,
    ErrorCatalog,
    ErrorClassifier,
    format_for_log,
    format_for_user,
)

# Circuit Breaker
from pac_core.circuit_breaker import (
    CircuitState,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerError,
    CircuitBreakerStats,
    BreakerRegistry,
)

# Retry
from pac_core.retry import (
    RetryDecision,
    RetryStrategy,
    CallMetric,
    ProtectedExecutor,
)

# Remote
from pac_core.remote import (
    Credentials,
    DocumentRef,
    RemoteStatus,
    PACTransport,
    HttpTransport,
    ProtectedPACClient,
    ConnectionRegistry,
)

# Documents
from pac_core.documents import (
    DocumentStatus,
    DocumentRecord,
    DocumentStore,
    InMemoryDocumentStore,
)

# Audit
from pac_core.audit import (
    AuditEventType,
    AuditEvent,
    AuditLogger,
    InMemoryAuditSink,
    verify_chain_integrity,
)

# Polling
from pac_core.polling import StatusPoller, PollOutcome, PollingResult

# Reconciliation
from pac_core.reconciliation import ReconciliationEngine, ReconciliationReport

# Workers
from pac_core.workers import SubmissionJob, SubmissionProcessor

# Config
from pac_core.config import Settings, PACConfig

# Logging
from pac_core.log_config import setup_logging

# Ops
from pac_core.ops import create_ops_router

__all__ = [
    "__version__",
    # Clock
    "Clock",
    "SYSTEM_CLOCK",
    # Errors
    "PACError",
    "TransportError",
    "RemoteCallError",
    "OperationCancelled",
    "DocumentNotFoundError",
    "CredentialsNotConfiguredError",
    "UnknownRemoteStatusError",
    "ErrorCategory",
    "ErrorSeverity",
    "ClassifiedError",
    "ErrorCatalog",
    "ErrorClassifier",
    "format_for_log",
    "format_for_user",
    # Circuit Breaker
    "CircuitState",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitBreakerStats",
    "BreakerRegistry",
    # Retry
    "RetryDecision",
    "RetryStrategy",
    "CallMetric",
    "ProtectedExecutor",
    # Remote
    "Credentials",
    "DocumentRef",
    "RemoteStatus",
    "PACTransport",
    "HttpTransport",
    "ProtectedPACClient",
    "ConnectionRegistry",
    # Documents
    "DocumentStatus",
    "DocumentRecord",
    "DocumentStore",
    "InMemoryDocumentStore",
    # Audit
    "AuditEventType",
    "AuditEvent",
    "AuditLogger",
    "InMemoryAuditSink",
    "verify_chain_integrity",
    # Polling
    "StatusPoller",
    "PollOutcome",
    "PollingResult",
    # Reconciliation
    "ReconciliationEngine",
    "ReconciliationReport",
    # Workers
    "SubmissionJob",
    "SubmissionProcessor",
    # Config
    "Settings",
    "PACConfig",
    # Logging
    "setup_logging",
    # Ops
    "create_ops_router",
]
