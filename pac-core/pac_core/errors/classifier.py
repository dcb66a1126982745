"""
Error Classifier
================
Maps any raw failure onto a ClassifiedError.

Lookup order:
1. A code found on the failure (``code`` attribute, embedded response code,
   a bare code string, or a known exception type) and present in the catalog.
2. Substring patterns on the failure text. This branch is a last resort:
   wording from remote services drifts, so keep the patterns few and tested.
3. UNKNOWN, not retryable, flagged for manual review.

``classify`` never raises.
"""

import asyncio
import socket
from typing import Any, Mapping, Optional, Tuple, Type

import structlog

from .catalog import ErrorCatalog
from .models import ClassifiedError, ErrorCategory, ErrorSeverity

logger = structlog.get_logger(__name__)


# Exception types that carry no code but mean a known transport failure.
# Order matters: subclasses before their bases.
EXCEPTION_CODES: Tuple[Tuple[Type[BaseException], str], ...] = (
    (socket.gaierror, "ENOTFOUND"),
    (ConnectionRefusedError, "ECONNREFUSED"),
    (asyncio.TimeoutError, "ETIMEDOUT"),
    (TimeoutError, "ETIMEDOUT"),
)

# (code, substrings, category, severity, retryable, manual, suggested action)
FALLBACK_PATTERNS = (
    (
        "TIMEOUT",
        ("timeout", "timed out"),
        ErrorCategory.NETWORK,
        ErrorSeverity.MEDIUM,
        True,
        False,
        "Timeout detected. Retrying with exponential backoff.",
    ),
    (
        "NETWORK_ERROR",
        ("network", "connection"),
        ErrorCategory.NETWORK,
        ErrorSeverity.HIGH,
        True,
        False,
        "Network error. Check connectivity; retrying automatically.",
    ),
    (
        "AUTH_ERROR",
        ("auth", "unauthorized"),
        ErrorCategory.AUTHENTICATION,
        ErrorSeverity.CRITICAL,
        False,
        True,
        "Authentication error. Check the PAC credentials.",
    ),
)

UNKNOWN_ACTION = "Unknown error. Review the logs and contact technical support."


def _lookup(container: Any, *names: str) -> Optional[Any]:
    """Read the first present attribute/key among ``names``."""
    if container is None:
        return None
    for name in names:
        if isinstance(container, Mapping):
            value = container.get(name)
        else:
            value = getattr(container, name, None)
        if value:
            return value
    return None


def _describe(raw: Any) -> str:
    try:
        message = getattr(raw, "message", None)
        if isinstance(message, str) and message:
            return message
        if isinstance(raw, Mapping):
            mapped = _lookup(raw, "message", "mensaje")
            if mapped:
                return str(mapped)
        text = str(raw)
        return text or type(raw).__name__
    except Exception:
        return type(raw).__name__


class ErrorClassifier:
    """Total function from raw failure to ClassifiedError."""

    def __init__(self, catalog: Optional[ErrorCatalog] = None):
        self.catalog = catalog if catalog is not None else ErrorCatalog.default()

    def extract_code(self, raw: Any) -> Optional[str]:
        """Best-effort extraction of a domain code from a failure."""
        if isinstance(raw, str):
            return raw.strip() or None

        code = _lookup(raw, "code")
        if code is None:
            response = _lookup(raw, "response")
            code = _lookup(response, "code", "codigo")
        if code is not None:
            return str(code)

        if isinstance(raw, BaseException):
            for exc_type, mapped in EXCEPTION_CODES:
                if isinstance(raw, exc_type):
                    return mapped
        return None

    def classify(self, raw: Any) -> ClassifiedError:
        try:
            return self._classify(raw)
        except Exception as exc:
            logger.error("error_classification_failed", error=repr(exc))
            return self._unknown("UNKNOWN", type(raw).__name__)

    def _classify(self, raw: Any) -> ClassifiedError:
        message = _describe(raw)
        code = self.extract_code(raw)

        entry = self.catalog.get(code)
        if entry is not None:
            return ClassifiedError(
                code=code,
                message=message,
                category=entry.category,
                severity=entry.severity,
                retryable=entry.retryable,
                requires_manual_intervention=entry.requires_manual_intervention,
                suggested_action=entry.suggested_action,
            )

        haystack = message.lower()
        for fallback_code, needles, category, severity, retryable, manual, action in FALLBACK_PATTERNS:
            if any(needle in haystack for needle in needles):
                return ClassifiedError(
                    code=fallback_code,
                    message=message,
                    category=category,
                    severity=severity,
                    retryable=retryable,
                    requires_manual_intervention=manual,
                    suggested_action=action,
                )

        if code:
            logger.warning("unrecognized_error_code", code=code)
        return self._unknown(code or "UNKNOWN", message)

    @staticmethod
    def _unknown(code: str, message: str) -> ClassifiedError:
        return ClassifiedError(
            code=code,
            message=message,
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.HIGH,
            retryable=False,
            requires_manual_intervention=True,
            suggested_action=UNKNOWN_ACTION,
        )
