"""
Error Classification Tests
==========================
Catalog lookups, fallback patterns and user-facing formatting.
"""

import asyncio
import json
import socket

import pytest
from pydantic import ValidationError

from pac_core.circuit_breaker import CircuitBreakerError, CircuitState
from pac_core.errors import (
    ErrorCatalog,
    ErrorCategory,
    ErrorClassifier,
    ErrorSeverity,
    TransportError,
    format_for_log,
    format_for_user,
)


@pytest.fixture
def classifier():
    return ErrorClassifier()


class TestCatalogLookup:
    """Codes found on the failure resolve through the catalog."""

    @pytest.mark.parametrize("code,category,retryable,manual", [
        ("ERR_001", ErrorCategory.AUTHENTICATION, False, True),
        ("ERR_003", ErrorCategory.AUTHENTICATION, False, True),
        ("ERR_002", ErrorCategory.VALIDATION, False, False),
        ("ERR_009", ErrorCategory.VALIDATION, False, False),
        ("ERR_004", ErrorCategory.BUSINESS_RULE, False, True),
        ("ERR_010", ErrorCategory.BUSINESS_RULE, False, False),
        ("ETIMEDOUT", ErrorCategory.NETWORK, True, False),
        ("ECONNREFUSED", ErrorCategory.NETWORK, True, False),
        ("SERVER_ERROR", ErrorCategory.SYSTEM, True, False),
        ("CIRCUIT_OPEN", ErrorCategory.SYSTEM, False, False),
    ])
    def test_catalog_codes(self, classifier, code, category, retryable, manual):
        error = classifier.classify(TransportError("provider said no", code=code))

        assert error.code == code
        assert error.category == category
        assert error.retryable is retryable
        assert error.requires_manual_intervention is manual
        assert error.message == "provider said no"

    def test_bare_code_string(self, classifier):
        assert classifier.classify("ERR_005").category == ErrorCategory.VALIDATION

    def test_embedded_response_code(self, classifier):
        """A mapping with a nested response code is recognised."""
        error = classifier.classify({"message": "rejected", "response": {"codigo": "ERR_004"}})

        assert error.code == "ERR_004"
        assert error.category == ErrorCategory.BUSINESS_RULE
        assert error.message == "rejected"

    @pytest.mark.parametrize("exc,code", [
        (asyncio.TimeoutError(), "ETIMEDOUT"),
        (ConnectionRefusedError(), "ECONNREFUSED"),
        (socket.gaierror(-2, "Name or service not known"), "ENOTFOUND"),
    ])
    def test_exception_types(self, classifier, exc, code):
        error = classifier.classify(exc)

        assert error.code == code
        assert error.category == ErrorCategory.NETWORK
        assert error.retryable is True

    def test_breaker_error_is_not_retryable(self, classifier):
        error = classifier.classify(CircuitBreakerError("tenant-1", CircuitState.OPEN, 30.0))

        assert error.code == "CIRCUIT_OPEN"
        assert error.retryable is False


class TestFallbackPatterns:
    """Substring matching when no catalog code is available."""

    @pytest.mark.parametrize("text,code,category,retryable", [
        ("socket timeout while reading", "TIMEOUT", ErrorCategory.NETWORK, True),
        ("Read timed out", "TIMEOUT", ErrorCategory.NETWORK, True),
        ("Connection reset by peer", "NETWORK_ERROR", ErrorCategory.NETWORK, True),
        ("Unauthorized", "AUTH_ERROR", ErrorCategory.AUTHENTICATION, False),
    ])
    def test_patterns(self, classifier, text, code, category, retryable):
        error = classifier.classify(RuntimeError(text))

        assert error.code == code
        assert error.category == category
        assert error.retryable is retryable

    def test_unknown_is_conservative(self, classifier):
        """Unrecognised failures are never retried and always flagged."""
        error = classifier.classify(ValueError("something odd"))

        assert error.category == ErrorCategory.UNKNOWN
        assert error.retryable is False
        assert error.requires_manual_intervention is True

    def test_unknown_code_keeps_code(self, classifier):
        error = classifier.classify(TransportError("new failure", code="ERR_999"))

        assert error.code == "ERR_999"
        assert error.category == ErrorCategory.UNKNOWN

    def test_never_raises(self, classifier):
        class Hostile:
            def __str__(self):
                raise RuntimeError("no")

        error = classifier.classify(Hostile())

        assert error.category == ErrorCategory.UNKNOWN
        assert classifier.classify(None).category == ErrorCategory.UNKNOWN


class TestErrorCatalog:
    """Catalog as runtime-extensible data."""

    def test_register_new_code(self):
        catalog = ErrorCatalog.default()
        catalog.register("ERR_011", {
            "category": "VALIDATION",
            "severity": "LOW",
            "retryable": False,
            "requires_manual_intervention": False,
            "suggested_action": "Fix the receiver email.",
        })

        error = ErrorClassifier(catalog).classify("ERR_011")

        assert error.category == ErrorCategory.VALIDATION
        assert error.severity == ErrorSeverity.LOW

    def test_register_rejects_invalid_entry(self):
        with pytest.raises(ValidationError):
            ErrorCatalog.default().register("ERR_012", {"category": "NOPE"})

    def test_from_file_layers_over_default(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({
            "ERR_004": {
                "category": "BUSINESS_RULE",
                "severity": "HIGH",
                "retryable": False,
                "requires_manual_intervention": True,
                "suggested_action": "Buy more folios.",
            }
        }))

        catalog = ErrorCatalog.from_file(path)

        assert "ERR_001" in catalog
        assert catalog["ERR_004"].suggested_action == "Buy more folios."

    def test_from_file_over_empty_base(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({
            "ERR_050": {
                "category": "NETWORK",
                "severity": "LOW",
                "retryable": True,
                "requires_manual_intervention": False,
                "suggested_action": "Retry.",
            }
        }))

        catalog = ErrorCatalog.from_file(path, base=ErrorCatalog())

        assert list(catalog) == ["ERR_050"]

    def test_empty_catalog_is_kept(self):
        """An empty catalog is still the caller's catalog, not a cue to load the defaults."""
        catalog = ErrorCatalog()
        classifier = ErrorClassifier(catalog)

        assert classifier.catalog is catalog
        assert classifier.classify("ERR_001").category == ErrorCategory.UNKNOWN

        catalog.register("ERR_001", {
            "category": "AUTHENTICATION",
            "severity": "CRITICAL",
            "retryable": False,
            "requires_manual_intervention": True,
            "suggested_action": "Check credentials.",
        })
        assert classifier.classify("ERR_001").category == ErrorCategory.AUTHENTICATION


class TestFormatting:
    """Log and user renderings."""

    def test_validation_shows_suggested_action(self, classifier):
        error = classifier.classify(TransportError("Bad totals", code="ERR_005"))

        message = format_for_user(error)

        assert "Bad totals" in message
        assert error.suggested_action in message

    def test_network_reads_as_transient(self, classifier):
        message = format_for_user(classifier.classify(TransportError("down", code="ETIMEDOUT")))

        assert "retrying automatically" in message

    def test_breaker_open_reads_as_suspended(self, classifier):
        error = classifier.classify(CircuitBreakerError("tenant-1", CircuitState.OPEN, 10.0))

        message = format_for_user(error)

        assert "temporarily suspended" in message
        assert "retry later" in message

    def test_log_format(self, classifier):
        line = format_for_log(classifier.classify(TransportError("x", code="ERR_001")))

        assert line.startswith("[AUTHENTICATION/CRITICAL] ERR_001")
