"""
Configuration
=============
Dataclass configs with ``PAC_*`` environment defaults.

Environment variables are read when a config is instantiated, so
``Settings.from_env()`` always reflects the current environment.
The ``Settings.build_*`` methods apply these values to live objects.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Callable, Optional

from .audit import AuditLogger
from .circuit_breaker import BreakerRegistry, CircuitBreakerConfig
from .clock import Clock
from .documents.store import DocumentStore
from .errors.catalog import ErrorCatalog
from .errors.classifier import ErrorClassifier
from .polling import StatusPoller
from .reconciliation import ReconciliationEngine
from .remote.connections import ConnectionRegistry, CredentialsProvider, TransportFactory
from .remote.http_transport import HttpTransport
from .remote.models import Credentials
from .retry import RetryStrategy

PAC_ENDPOINTS = {
    "demo": "https://demointegracion.thefactoryhka.com.pa/api/v1",
    "production": "https://integracion.thefactoryhka.com.pa/api/v1",
}


def _env_str(name: str, default: str) -> Callable[[], str]:
    return lambda: os.environ.get(name, default)


def _env_float(name: str, default: float) -> Callable[[], float]:
    return lambda: float(os.environ.get(name, default))


def _env_int(name: str, default: int) -> Callable[[], int]:
    return lambda: int(os.environ.get(name, default))


def _env_bool(name: str, default: bool) -> Callable[[], bool]:
    def read() -> bool:
        value = os.environ.get(name)
        if value is None:
            return default
        return value.strip().lower() in ("1", "true", "yes", "on")
    return read


@dataclass
class BreakerSettings:
    """Circuit breaker settings, in seconds."""
    failure_threshold: int = field(default_factory=_env_int("PAC_BREAKER_FAILURE_THRESHOLD", 5))
    success_threshold: int = field(default_factory=_env_int("PAC_BREAKER_SUCCESS_THRESHOLD", 2))
    timeout: float = field(default_factory=_env_float("PAC_BREAKER_TIMEOUT", 60.0))
    monitoring_period: float = field(default_factory=_env_float("PAC_BREAKER_MONITORING_PERIOD", 120.0))

    def to_breaker_config(self) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            failure_threshold=self.failure_threshold,
            success_threshold=self.success_threshold,
            timeout=self.timeout,
            monitoring_period=self.monitoring_period,
        )


@dataclass
class PACConfig:
    """Connection settings for the certification provider."""
    environment: str = field(default_factory=_env_str("PAC_ENVIRONMENT", "demo"))
    base_url: Optional[str] = field(default_factory=lambda: os.environ.get("PAC_BASE_URL") or None)
    request_timeout: float = field(default_factory=_env_float("PAC_REQUEST_TIMEOUT", 60.0))
    error_catalog_path: Optional[str] = field(
        default_factory=lambda: os.environ.get("PAC_ERROR_CATALOG_PATH") or None
    )
    retry_base_delay_ms: int = field(default_factory=_env_int("PAC_RETRY_BASE_DELAY_MS", 2000))
    retry_max: int = field(default_factory=_env_int("PAC_RETRY_MAX", 5))
    retry_jitter: bool = field(default_factory=_env_bool("PAC_RETRY_JITTER", False))
    breaker: BreakerSettings = field(default_factory=BreakerSettings)

    def __post_init__(self) -> None:
        if self.environment not in PAC_ENDPOINTS:
            raise ValueError(
                f"PAC_ENVIRONMENT must be one of {sorted(PAC_ENDPOINTS)}, got {self.environment!r}"
            )

    @property
    def resolved_base_url(self) -> str:
        return self.base_url or PAC_ENDPOINTS[self.environment]

    def build_catalog(self) -> ErrorCatalog:
        if self.error_catalog_path:
            return ErrorCatalog.from_file(self.error_catalog_path)
        return ErrorCatalog.default()

    def build_strategy(self) -> RetryStrategy:
        return RetryStrategy(
            base_delay_ms=self.retry_base_delay_ms,
            max_retries=self.retry_max,
            jitter=self.retry_jitter,
        )

    def transport_factory(self) -> Callable[[Credentials], HttpTransport]:
        base_url = self.resolved_base_url
        timeout = self.request_timeout
        return lambda credentials: HttpTransport(base_url, credentials, timeout=timeout)


@dataclass
class PollingConfig:
    interval: float = field(default_factory=_env_float("PAC_POLL_INTERVAL", 60.0))
    batch_limit: int = field(default_factory=_env_int("PAC_POLL_BATCH_LIMIT", 10))
    grace_period: float = field(default_factory=_env_float("PAC_POLL_GRACE_PERIOD", 5.0))
    batch_max_attempts: int = field(default_factory=_env_int("PAC_POLL_BATCH_MAX_ATTEMPTS", 3))
    max_attempts: int = field(default_factory=_env_int("PAC_POLL_MAX_ATTEMPTS", 20))
    max_total_time: float = field(default_factory=_env_float("PAC_POLL_MAX_TOTAL_TIME", 3600.0))


@dataclass
class ReconciliationConfig:
    lookback_hours: float = field(default_factory=_env_float("PAC_RECONCILE_LOOKBACK_HOURS", 24.0))
    daily_hour: int = field(default_factory=_env_int("PAC_RECONCILE_DAILY_HOUR", 2))
    daily_lookback_hours: float = field(default_factory=_env_float("PAC_RECONCILE_DAILY_LOOKBACK_HOURS", 48.0))
    batch_size: int = field(default_factory=_env_int("PAC_RECONCILE_BATCH_SIZE", 5))
    batch_delay: float = field(default_factory=_env_float("PAC_RECONCILE_BATCH_DELAY", 2.0))


@dataclass
class Settings:
    service_name: str = field(default_factory=_env_str("PAC_SERVICE_NAME", "pac-core"))
    log_level: str = field(default_factory=_env_str("PAC_LOG_LEVEL", "INFO"))
    json_logs: bool = field(default_factory=_env_bool("PAC_JSON_LOGS", True))
    pac: PACConfig = field(default_factory=PACConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()

    def build_connections(
        self,
        credentials_provider: CredentialsProvider,
        clock: Optional[Clock] = None,
        shutdown: Optional[asyncio.Event] = None,
        transport_factory: Optional[TransportFactory] = None,
    ) -> ConnectionRegistry:
        """
        Connection registry with this environment's breaker, catalog and retry settings.

        ``transport_factory`` defaults to an HttpTransport against the resolved base URL.
        """
        return ConnectionRegistry(
            transport_factory or self.pac.transport_factory(),
            credentials_provider,
            breakers=BreakerRegistry(self.pac.breaker.to_breaker_config(), clock=clock),
            classifier=ErrorClassifier(self.pac.build_catalog()),
            strategy=self.pac.build_strategy(),
            clock=clock,
            shutdown=shutdown,
        )

    def build_poller(
        self,
        store: DocumentStore,
        connections: ConnectionRegistry,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        shutdown: Optional[asyncio.Event] = None,
    ) -> StatusPoller:
        polling = self.polling
        return StatusPoller(
            store,
            connections,
            audit,
            clock,
            max_attempts=polling.max_attempts,
            max_total_time=polling.max_total_time,
            batch_limit=polling.batch_limit,
            grace_period=polling.grace_period,
            batch_max_attempts=polling.batch_max_attempts,
            interval=polling.interval,
            shutdown=shutdown,
        )

    def build_reconciliation_engine(
        self,
        store: DocumentStore,
        connections: ConnectionRegistry,
        audit: AuditLogger,
        clock: Optional[Clock] = None,
        shutdown: Optional[asyncio.Event] = None,
    ) -> ReconciliationEngine:
        reconciliation = self.reconciliation
        return ReconciliationEngine(
            store,
            connections,
            audit,
            clock,
            batch_size=reconciliation.batch_size,
            batch_delay=reconciliation.batch_delay,
            lookback_hours=reconciliation.lookback_hours,
            daily_hour=reconciliation.daily_hour,
            daily_lookback_hours=reconciliation.daily_lookback_hours,
            shutdown=shutdown,
        )
