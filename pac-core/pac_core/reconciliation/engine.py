"""
Reconciliation Engine
=====================
Safety net that re-derives local document status from the provider's view.

Documents that escaped both the submission path and the poller (crashes,
lost jobs, later annulments) are caught here. Records are checked in small
batches with a pause between batches to bound load on the provider.
"""

import asyncio
from datetime import timedelta
from enum import Enum
from typing import Optional, Tuple

import structlog

from ..audit import AuditEventType, AuditLogger
from ..clock import Clock, SYSTEM_CLOCK
from ..documents.models import (
    DocumentRecord,
    REMOTE_TO_LOCAL,
    UNSUBMITTED_STATUSES,
)
from ..documents.store import DocumentStore
from ..errors.exceptions import OperationCancelled, UnknownRemoteStatusError
from ..metrics import record_reconciliation, record_reconciliation_fix
from ..remote.connections import ConnectionRegistry
from .models import RECONCILABLE_STATUSES, ReconciliationDetail, ReconciliationReport

logger = structlog.get_logger(__name__)


class _RecordOutcome(str, Enum):
    MATCH = "match"
    FIXED = "fixed"
    SKIPPED = "skipped"


class ReconciliationEngine:
    """
    Compares recent local records with the provider and corrects drift.

    Args:
        store: Document store
        connections: Per-tenant protected clients
        audit: Audit logger for fixes and run reports
        clock: Time source
        batch_size: Records checked concurrently per batch
        batch_delay: Seconds to pause between batches
        lookback_hours: Default window for run, trigger_manual and run_periodic
        daily_hour: UTC hour of the daily run
        daily_lookback_hours: Window of the daily run
        shutdown: Event that aborts inter-batch and scheduler waits
    """

    def __init__(
        self,
        store: DocumentStore,
        connections: ConnectionRegistry,
        audit: AuditLogger,
        clock: Optional[Clock] = None,
        batch_size: int = 5,
        batch_delay: float = 2.0,
        lookback_hours: float = 24,
        daily_hour: int = 2,
        daily_lookback_hours: float = 48,
        shutdown: Optional[asyncio.Event] = None,
    ):
        self.store = store
        self.connections = connections
        self.audit = audit
        self._clock = clock or SYSTEM_CLOCK
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.lookback_hours = lookback_hours
        self.daily_hour = daily_hour
        self.daily_lookback_hours = daily_lookback_hours
        self._shutdown = shutdown

    async def run(self, lookback_hours: Optional[float] = None) -> ReconciliationReport:
        lookback_hours = self.lookback_hours if lookback_hours is None else lookback_hours
        started_at = self._clock.now()
        since = started_at - timedelta(hours=lookback_hours)
        records = await self.store.find_created_since(since, RECONCILABLE_STATUSES)

        logger.info("reconciliation_started", lookback_hours=lookback_hours, found=len(records))

        report = ReconciliationReport(
            total_checked=len(records),
            started_at=started_at,
            lookback_hours=lookback_hours,
        )

        for i in range(0, len(records), self.batch_size):
            batch = records[i:i + self.batch_size]
            results = await asyncio.gather(
                *(self._reconcile(record) for record in batch),
                return_exceptions=True,
            )

            for record, result in zip(batch, results):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, BaseException):
                    report.errors += 1
                    logger.error(
                        "reconciliation_record_failed",
                        document_id=record.id,
                        error=repr(result),
                    )
                    continue

                outcome, detail = result
                if outcome == _RecordOutcome.SKIPPED:
                    report.skipped += 1
                elif outcome == _RecordOutcome.FIXED:
                    report.discrepancies_found += 1
                    report.fixed += 1
                    report.details.append(detail)

            if i + self.batch_size < len(records):
                await self._clock.sleep(self.batch_delay, self._shutdown)

        report.finished_at = self._clock.now()
        record_reconciliation(report.total_checked, report.errors)

        await self.audit.log(
            AuditEventType.RECONCILIATION_RUN,
            action="Reconciliation run completed",
            resource_type="reconciliation",
            payload=report.to_dict(),
        )
        logger.info(
            "reconciliation_complete",
            total_checked=report.total_checked,
            discrepancies=report.discrepancies_found,
            fixed=report.fixed,
            errors=report.errors,
            skipped=report.skipped,
        )
        return report

    async def _reconcile(
        self, record: DocumentRecord
    ) -> Tuple[_RecordOutcome, Optional[ReconciliationDetail]]:
        if record.status in UNSUBMITTED_STATUSES:
            return _RecordOutcome.SKIPPED, None

        if not await self.connections.has_credentials(record.tenant_id):
            logger.debug("reconciliation_skipped_no_credentials", document_id=record.id)
            return _RecordOutcome.SKIPPED, None

        client = await self.connections.get(record.tenant_id)
        status = await client.query_status(record.ref)

        expected = REMOTE_TO_LOCAL.get(status.remote_status)
        if expected is None:
            raise UnknownRemoteStatusError(status.remote_status)

        if record.status == expected:
            return _RecordOutcome.MATCH, None

        logger.warning(
            "reconciliation_discrepancy",
            document_id=record.id,
            local_status=record.status.value,
            remote_status=status.remote_status,
        )

        changes = {
            "status": expected,
            "remote_status": status.remote_status,
            "message": status.message,
        }
        if status.external_id and status.external_id != record.external_id:
            changes["external_id"] = status.external_id
        await self.store.update(record.id, **changes)

        await self.audit.log(
            AuditEventType.RECONCILIATION_FIX,
            action=f"Status corrected {record.status.value} -> {expected.value}",
            outcome="corrected",
            tenant_id=record.tenant_id,
            resource_type="document",
            resource_id=record.id,
            payload={
                "old_status": record.status.value,
                "new_status": expected.value,
                "remote_status": status.remote_status,
                "external_id": status.external_id,
            },
        )
        record_reconciliation_fix(record.status, expected)

        return _RecordOutcome.FIXED, ReconciliationDetail(
            document_id=record.id,
            document_number=record.ref.document_number,
            local_status=record.status.value,
            remote_status=status.remote_status,
            action=f"Fixed: {record.status.value} -> {expected.value}",
        )

    async def trigger_manual(self, lookback_hours: Optional[float] = None) -> ReconciliationReport:
        """Operator-triggered run."""
        logger.info("reconciliation_manual_trigger", lookback_hours=lookback_hours)
        return await self.run(lookback_hours)

    async def run_periodic(
        self,
        interval: float = 3600.0,
        lookback_hours: Optional[float] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> None:
        """Run every ``interval`` seconds until ``stop`` is set."""
        stop = stop or self._shutdown or asyncio.Event()
        while not stop.is_set():
            await self._run_logged(lookback_hours)
            try:
                await self._clock.sleep(interval, stop)
            except OperationCancelled:
                break
        logger.info("reconciliation_scheduler_stopped")

    def seconds_until(self, at_hour: int) -> float:
        """Seconds from now until the next ``at_hour``:00 UTC."""
        now = self._clock.now()
        target = now.replace(hour=at_hour, minute=0, second=0, microsecond=0)
        if target <= now:
            target += timedelta(days=1)
        return (target - now).total_seconds()

    async def run_daily(
        self,
        at_hour: Optional[int] = None,
        lookback_hours: Optional[float] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> None:
        """Run once a day at ``at_hour`` UTC, a low-traffic window by default."""
        at_hour = self.daily_hour if at_hour is None else at_hour
        lookback_hours = self.daily_lookback_hours if lookback_hours is None else lookback_hours
        stop = stop or self._shutdown or asyncio.Event()
        logger.info("reconciliation_daily_scheduled", at_hour=at_hour, lookback_hours=lookback_hours)
        while not stop.is_set():
            try:
                await self._clock.sleep(self.seconds_until(at_hour), stop)
            except OperationCancelled:
                break
            await self._run_logged(lookback_hours)
        logger.info("reconciliation_scheduler_stopped")

    async def _run_logged(self, lookback_hours: Optional[float]) -> None:
        try:
            await self.run(lookback_hours)
        except OperationCancelled:
            raise
        except Exception as e:
            logger.error("reconciliation_run_failed", error=str(e))
