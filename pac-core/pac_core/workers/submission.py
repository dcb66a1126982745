"""
Submission Processor
====================
Handles one queued document: serialize, submit through the tenant's
protected client, and record the outcome.

Outcomes:
- Accepted with an external id: AUTHORIZED
- Accepted without an id yet: left in PROCESSING for the status poller
- Rejected by the provider: REJECTED with the classifier's suggested action.
  Never retried; the data has to be corrected and resubmitted as a new document
- Breaker open or shutdown: back to QUEUED and re-raised so the queue defers
- Any other failure: FAILED, retry count bumped, re-raised to the queue
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import structlog

from ..audit import AuditEventType, AuditLogger
from ..circuit_breaker import CircuitBreakerError
from ..clock import Clock, SYSTEM_CLOCK
from ..documents.models import DocumentRecord, DocumentStatus
from ..documents.store import DocumentStore
from ..errors.classifier import ErrorClassifier
from ..errors.exceptions import (
    DocumentNotFoundError,
    OperationCancelled,
    PACError,
    RemoteCallError,
)
from ..errors.formatting import format_for_user
from ..errors.models import ClassifiedError
from ..remote.connections import ConnectionRegistry
from ..remote.models import RemoteStatus, SubmitResponse

logger = structlog.get_logger(__name__)

# Produces the base64 document body. Building it is the caller's concern.
DocumentSerializer = Callable[[DocumentRecord], str]


@dataclass(frozen=True)
class SubmissionJob:
    document_id: str
    tenant_id: str


class SubmissionOutcome(str, Enum):
    AUTHORIZED = "AUTHORIZED"
    PENDING = "PENDING"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class SubmissionResult:
    document_id: str
    outcome: SubmissionOutcome
    code: str
    message: str
    external_id: Optional[str] = None


class SubmissionProcessor:

    def __init__(
        self,
        store: DocumentStore,
        connections: ConnectionRegistry,
        serializer: DocumentSerializer,
        audit: AuditLogger,
        classifier: Optional[ErrorClassifier] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.connections = connections
        self.serializer = serializer
        self.audit = audit
        self.classifier = classifier or connections.classifier
        self._clock = clock or SYSTEM_CLOCK

    async def process(self, job: SubmissionJob) -> SubmissionResult:
        """
        Submit one document.

        Raises:
            DocumentNotFoundError: If the document doesn't exist
            PACError: If the document belongs to another tenant
            CircuitBreakerError: If the tenant's breaker is open (document re-queued)
            RemoteCallError: If the submission failed for good (document FAILED)
        """
        record = await self.store.get(job.document_id)
        if record is None:
            raise DocumentNotFoundError(job.document_id)
        if record.tenant_id != job.tenant_id:
            raise PACError(
                f"Document {job.document_id} does not belong to tenant {job.tenant_id}"
            )

        log = logger.bind(document_id=record.id, tenant_id=record.tenant_id)
        log.info("submission_started")

        await self.store.update(
            record.id,
            status=DocumentStatus.PROCESSING,
            processing_started_at=self._clock.now(),
        )

        try:
            client = await self.connections.get(record.tenant_id)
            body = self.serializer(record)
            response = await client.submit(body, idempotency_key=record.id)
        except (CircuitBreakerError, OperationCancelled) as e:
            error = self.classifier.classify(e)
            await self.store.update(
                record.id,
                status=DocumentStatus.QUEUED,
                last_error=format_for_user(error),
            )
            log.warning("submission_deferred", reason=error.code)
            raise
        except RemoteCallError as e:
            await self._fail(record, e.error)
            raise
        except Exception as e:
            await self._fail(record, self.classifier.classify(e))
            raise

        if response.accepted:
            return await self._accepted(record, response)
        return await self._rejected(record, response)

    async def _accepted(self, record: DocumentRecord, response: SubmitResponse) -> SubmissionResult:
        if not response.external_id:
            await self.store.update(record.id, message=response.message)
            logger.info("submission_pending", document_id=record.id, code=response.code)
            return SubmissionResult(
                document_id=record.id,
                outcome=SubmissionOutcome.PENDING,
                code=response.code,
                message=response.message,
            )

        artifacts = {
            "qr_code": response.qr_code,
            "signed_xml": response.signed_xml,
            "pdf": response.pdf,
        }
        await self.store.update(
            record.id,
            status=DocumentStatus.AUTHORIZED,
            external_id=response.external_id,
            remote_status=RemoteStatus.ACEPTADO.value,
            message=response.message,
            last_error=None,
            payload={**record.payload, **{k: v for k, v in artifacts.items() if v}},
        )
        await self.audit.log(
            AuditEventType.DOCUMENT_AUTHORIZED,
            action="Document authorized by provider",
            tenant_id=record.tenant_id,
            resource_type="document",
            resource_id=record.id,
            payload={"external_id": response.external_id, "code": response.code},
        )
        logger.info("submission_authorized", document_id=record.id, external_id=response.external_id)
        return SubmissionResult(
            document_id=record.id,
            outcome=SubmissionOutcome.AUTHORIZED,
            code=response.code,
            message=response.message,
            external_id=response.external_id,
        )

    async def _rejected(self, record: DocumentRecord, response: SubmitResponse) -> SubmissionResult:
        error = self.classifier.classify(
            {"code": response.code, "message": response.message or response.code}
        )
        await self.store.update(
            record.id,
            status=DocumentStatus.REJECTED,
            remote_status=RemoteStatus.RECHAZADO.value,
            message=response.message,
            last_error=format_for_user(error),
        )
        await self.audit.log(
            AuditEventType.DOCUMENT_REJECTED,
            action="Document rejected by provider",
            outcome="failure",
            tenant_id=record.tenant_id,
            resource_type="document",
            resource_id=record.id,
            payload={
                "code": response.code,
                "reason": response.message,
                "category": error.category.value,
                "suggested_action": error.suggested_action,
            },
        )
        logger.warning(
            "submission_rejected",
            document_id=record.id,
            code=response.code,
            category=error.category.value,
        )
        return SubmissionResult(
            document_id=record.id,
            outcome=SubmissionOutcome.REJECTED,
            code=response.code,
            message=response.message,
        )

    async def _fail(self, record: DocumentRecord, error: ClassifiedError) -> None:
        await self.store.update(
            record.id,
            status=DocumentStatus.FAILED,
            last_error=format_for_user(error),
            retry_count=record.retry_count + 1,
        )
        await self.audit.log(
            AuditEventType.SUBMISSION_ERROR,
            action="Submission failed",
            outcome="failure",
            tenant_id=record.tenant_id,
            resource_type="document",
            resource_id=record.id,
            payload=error.to_dict(),
        )
        logger.error(
            "submission_failed",
            document_id=record.id,
            code=error.code,
            category=error.category.value,
            manual=error.requires_manual_intervention,
        )
