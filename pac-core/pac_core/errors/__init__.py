"""
PAC Errors
==========
Exceptions, error classification and formatting.

Usage:
    from pac_core.errors import ErrorClassifier, format_for_user

    classifier = ErrorClassifier()
    error = classifier.classify(exc)
    if error.retryable:
        ...
    message = format_for_user(error)
"""

from .exceptions import (
    PACError,
    TransportError,
    RemoteCallError,
    OperationCancelled,
    DocumentNotFoundError,
    CredentialsNotConfiguredError,
    UnknownRemoteStatusError,
)
from .models import ErrorCategory, ErrorSeverity, ClassifiedError
from .catalog import CatalogEntry, ErrorCatalog, DEFAULT_ENTRIES
from .classifier import ErrorClassifier, EXCEPTION_CODES, FALLBACK_PATTERNS
from .formatting import format_for_log, format_for_user, BREAKER_OPEN_CODE

__all__ = [
    # Exceptions
    "PACError",
    "TransportError",
    "RemoteCallError",
    "OperationCancelled",
    "DocumentNotFoundError",
    "CredentialsNotConfiguredError",
    "UnknownRemoteStatusError",
    # Models
    "ErrorCategory",
    "ErrorSeverity",
    "ClassifiedError",
    # Catalog
    "CatalogEntry",
    "ErrorCatalog",
    "DEFAULT_ENTRIES",
    # Classifier
    "ErrorClassifier",
    "EXCEPTION_CODES",
    "FALLBACK_PATTERNS",
    # Formatting
    "format_for_log",
    "format_for_user",
    "BREAKER_OPEN_CODE",
]
