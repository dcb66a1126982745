"""
Prometheus Metrics
==================
Metric definitions and recording helpers for PAC traffic.

All metrics live in a dedicated registry so tests and embedding services
don't collide with the default global one.
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

PAC_REGISTRY = CollectorRegistry()

PAC_CALL_DURATION = Histogram(
    name="pac_call_duration_seconds",
    documentation="Time spent on protected PAC calls, retries included",
    labelnames=["service", "operation", "outcome"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=PAC_REGISTRY,
)

PAC_CALLS_TOTAL = Counter(
    name="pac_calls_total",
    documentation="Total protected PAC calls by outcome",
    labelnames=["service", "operation", "outcome", "error_code"],
    registry=PAC_REGISTRY,
)

CIRCUIT_BREAKER_STATE = Gauge(
    name="pac_circuit_breaker_state",
    documentation="Circuit breaker state (0=closed, 1=half-open, 2=open)",
    labelnames=["service"],
    registry=PAC_REGISTRY,
)

POLL_OUTCOMES = Counter(
    name="pac_poll_outcomes_total",
    documentation="Status polling results",
    labelnames=["outcome"],
    registry=PAC_REGISTRY,
)

RECONCILIATION_CHECKED = Counter(
    name="pac_reconciliation_checked_total",
    documentation="Documents compared against the PAC during reconciliation",
    registry=PAC_REGISTRY,
)

RECONCILIATION_FIXES = Counter(
    name="pac_reconciliation_fixes_total",
    documentation="Local status corrections applied by reconciliation",
    labelnames=["from_status", "to_status"],
    registry=PAC_REGISTRY,
)

RECONCILIATION_ERRORS = Counter(
    name="pac_reconciliation_errors_total",
    documentation="Documents that could not be reconciled",
    registry=PAC_REGISTRY,
)

_STATE_VALUES = {"CLOSED": 0, "HALF_OPEN": 1, "OPEN": 2}


def record_call(
    service: str,
    operation: str,
    success: bool,
    duration_seconds: float,
    error_code: str = "",
) -> None:
    """Record a terminal protected-call outcome."""
    outcome = "success" if success else "failure"
    PAC_CALL_DURATION.labels(
        service=service, operation=operation, outcome=outcome
    ).observe(duration_seconds)
    PAC_CALLS_TOTAL.labels(
        service=service, operation=operation, outcome=outcome, error_code=error_code
    ).inc()


def record_circuit_state(service: str, state: str) -> None:
    """Record a circuit breaker state change."""
    value = _STATE_VALUES.get(getattr(state, "value", state), -1)
    CIRCUIT_BREAKER_STATE.labels(service=service).set(value)


def record_poll_outcome(outcome: str) -> None:
    POLL_OUTCOMES.labels(outcome=getattr(outcome, "value", outcome)).inc()


def record_reconciliation(checked: int, errors: int) -> None:
    RECONCILIATION_CHECKED.inc(checked)
    RECONCILIATION_ERRORS.inc(errors)


def record_reconciliation_fix(from_status: str, to_status: str) -> None:
    RECONCILIATION_FIXES.labels(
        from_status=getattr(from_status, "value", from_status),
        to_status=getattr(to_status, "value", to_status),
    ).inc()


def get_metrics_text() -> bytes:
    """Render the PAC registry in Prometheus exposition format."""
    return generate_latest(PAC_REGISTRY)


__all__ = [
    "PAC_REGISTRY",
    "CONTENT_TYPE_LATEST",
    "record_call",
    "record_circuit_state",
    "record_poll_outcome",
    "record_reconciliation",
    "record_reconciliation_fix",
    "get_metrics_text",
]
