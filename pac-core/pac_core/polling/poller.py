"""
Status Poller
=============
Bounded follow-up queries for documents the provider accepted for
processing but has not settled yet.

The wait schedule grows (5s, 10s, 30s, 1m, 2m, 5m) and then stays at 5 minutes,
balancing responsiveness against query load on the provider. A poll never
hangs: it ends with PENDING_TIMEOUT once either the attempt cap or the
wall-clock budget is spent.

Besides ACCEPTED, REJECTED and PENDING_TIMEOUT a poll can end ANNULLED, when
the provider reports that the document was voided while it was being polled.
"""

import asyncio
from datetime import timedelta
from typing import Optional, Sequence

import structlog

from ..audit import AuditEventType, AuditLogger
from ..clock import Clock, SYSTEM_CLOCK
from ..documents.models import DocumentRecord, DocumentStatus, REMOTE_TO_LOCAL
from ..documents.store import DocumentStore
from ..errors.exceptions import DocumentNotFoundError, OperationCancelled
from ..metrics import record_poll_outcome
from ..remote.connections import ConnectionRegistry
from ..remote.models import StatusResponse
from .models import BatchPollSummary, LOCAL_TO_OUTCOME, PollOutcome, PollingResult

logger = structlog.get_logger(__name__)

DEFAULT_SCHEDULE: Sequence[float] = (5.0, 10.0, 30.0, 60.0, 120.0, 300.0)
MAX_INTERVAL = 300.0
MAX_TOTAL_TIME = 3600.0


class StatusPoller:
    """
    Polls the provider for one document at a time.

    Queries for a single document are strictly sequential.
    """

    def __init__(
        self,
        store: DocumentStore,
        connections: ConnectionRegistry,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        schedule: Sequence[float] = DEFAULT_SCHEDULE,
        max_interval: float = MAX_INTERVAL,
        max_attempts: int = 20,
        max_total_time: float = MAX_TOTAL_TIME,
        batch_limit: int = 10,
        grace_period: float = 5.0,
        batch_max_attempts: int = 3,
        interval: float = 60.0,
        shutdown: Optional[asyncio.Event] = None,
    ):
        self.store = store
        self.connections = connections
        self.audit = audit
        self._clock = clock or SYSTEM_CLOCK
        self.schedule = tuple(schedule)
        self.max_interval = max_interval
        self.max_attempts = max_attempts
        self.max_total_time = max_total_time
        self.batch_limit = batch_limit
        self.grace_period = grace_period
        self.batch_max_attempts = batch_max_attempts
        self.interval = interval
        self._shutdown = shutdown

    def next_interval(self, query_index: int) -> float:
        """Wait after the query with 0-based index ``query_index``."""
        if query_index < len(self.schedule):
            return self.schedule[query_index]
        return self.max_interval

    def _elapsed_ms(self, started: float) -> int:
        return int((self._clock.monotonic() - started) * 1000)

    async def poll(
        self,
        document_id: str,
        max_attempts: Optional[int] = None,
        max_total_time: Optional[float] = None,
    ) -> PollingResult:
        """
        Poll until the provider settles the document or the budget runs out.

        Raises:
            DocumentNotFoundError: If the document doesn't exist
            CredentialsNotConfiguredError: If the tenant has no credentials
            OperationCancelled: If the shutdown signal fires during a wait
        """
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        max_total_time = self.max_total_time if max_total_time is None else max_total_time
        started = self._clock.monotonic()
        poll_count = 0
        logger.info("status_poll_started", document_id=document_id, max_attempts=max_attempts)

        while poll_count < max_attempts:
            if self._clock.monotonic() - started > max_total_time:
                logger.warning("status_poll_budget_exceeded", document_id=document_id, poll_count=poll_count)
                return self._finish(PollingResult(
                    outcome=PollOutcome.PENDING_TIMEOUT,
                    message="Polling time budget exceeded",
                    poll_count=poll_count,
                    total_elapsed_ms=self._elapsed_ms(started),
                ))

            record = await self.store.get(document_id)
            if record is None:
                raise DocumentNotFoundError(document_id)

            if record.is_terminal:
                return self._finish(PollingResult(
                    outcome=LOCAL_TO_OUTCOME[record.status],
                    message=record.message or "Status already finalized",
                    poll_count=poll_count,
                    total_elapsed_ms=self._elapsed_ms(started),
                    external_id=record.external_id,
                ))

            client = await self.connections.get(record.tenant_id)

            status: Optional[StatusResponse] = None
            try:
                status = await client.query_status(record.ref)
            except OperationCancelled:
                raise
            except Exception as e:
                # A failed query counts as "still pending"
                logger.warning(
                    "status_query_failed",
                    document_id=document_id,
                    attempt=poll_count + 1,
                    error=str(e),
                )
            poll_count += 1

            if status is not None:
                logger.info(
                    "status_polled",
                    document_id=document_id,
                    attempt=poll_count,
                    remote_status=status.remote_status,
                )
                local = REMOTE_TO_LOCAL.get(status.remote_status)
                if local in LOCAL_TO_OUTCOME:
                    await self._persist(record, local, status)
                    return self._finish(PollingResult(
                        outcome=LOCAL_TO_OUTCOME[local],
                        message=status.message,
                        poll_count=poll_count,
                        total_elapsed_ms=self._elapsed_ms(started),
                        external_id=status.external_id or record.external_id,
                    ))

            if poll_count >= max_attempts:
                break

            interval = self.next_interval(poll_count - 1)
            logger.debug("status_poll_waiting", document_id=document_id, interval=interval)
            await self._clock.sleep(interval, self._shutdown)

        logger.info("status_poll_attempts_exhausted", document_id=document_id, max_attempts=max_attempts)
        return self._finish(PollingResult(
            outcome=PollOutcome.PENDING_TIMEOUT,
            message=f"Max polling attempts ({max_attempts}) reached",
            poll_count=poll_count,
            total_elapsed_ms=self._elapsed_ms(started),
        ))

    @staticmethod
    def _finish(result: PollingResult) -> PollingResult:
        record_poll_outcome(result.outcome)
        return result

    async def _persist(
        self,
        record: DocumentRecord,
        local: DocumentStatus,
        status: StatusResponse,
    ) -> None:
        await self.store.update(
            record.id,
            status=local,
            external_id=status.external_id or record.external_id,
            remote_status=status.remote_status,
            message=status.message,
        )
        if self.audit is not None:
            await self.audit.log(
                AuditEventType.STATUS_POLLED,
                action=f"Status settled by polling: {local.value}",
                tenant_id=record.tenant_id,
                resource_type="document",
                resource_id=record.id,
                payload={
                    "old_status": record.status.value,
                    "new_status": local.value,
                    "remote_status": status.remote_status,
                    "external_id": status.external_id,
                },
            )

    async def poll_pending(
        self,
        limit: Optional[int] = None,
        grace_period: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> BatchPollSummary:
        """
        Short-leash poll of documents stuck in PROCESSING, oldest first.

        Meant to run on a fixed cadence rather than as a one-shot deep poll.
        """
        limit = self.batch_limit if limit is None else limit
        grace_period = self.grace_period if grace_period is None else grace_period
        max_attempts = self.batch_max_attempts if max_attempts is None else max_attempts
        older_than = self._clock.now() - timedelta(seconds=grace_period)
        records = await self.store.find_stuck(DocumentStatus.PROCESSING, older_than, limit)
        logger.info("status_poll_batch_started", found=len(records))

        results = await asyncio.gather(
            *(self.poll(r.id, max_attempts=max_attempts) for r in records),
            return_exceptions=True,
        )

        summary = BatchPollSummary(found=len(records))
        for record, result in zip(records, results):
            if isinstance(result, BaseException):
                summary.failed += 1
                logger.error("status_poll_failed", document_id=record.id, error=repr(result))
                continue
            summary.completed += 1
            summary.results.append(result)
            key = result.outcome.value
            summary.outcomes[key] = summary.outcomes.get(key, 0) + 1

        logger.info(
            "status_poll_batch_complete",
            completed=summary.completed,
            failed=summary.failed,
        )
        return summary

    async def run_periodic(
        self,
        interval: Optional[float] = None,
        stop: Optional[asyncio.Event] = None,
    ) -> None:
        """Run poll_pending now and then every ``interval`` seconds until ``stop`` is set."""
        interval = self.interval if interval is None else interval
        stop = stop or self._shutdown or asyncio.Event()
        logger.info("status_poller_started", interval=interval)

        while not stop.is_set():
            try:
                await self.poll_pending()
            except Exception as e:
                logger.error("status_poller_pass_failed", error=str(e))
            try:
                await self._clock.sleep(interval, stop)
            except OperationCancelled:
                break

        logger.info("status_poller_stopped")
