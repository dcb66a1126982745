"""
PAC Exceptions
==============
Exception hierarchy shared by the resilience layer.
"""

from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ClassifiedError


class PACError(Exception):
    """Base exception for everything raised by pac_core."""
    pass


class TransportError(PACError):
    """
    Raised by a transport when the remote call itself failed.

    ``code`` is either a transport-level code (ETIMEDOUT, ECONNREFUSED,
    ENOTFOUND, SERVER_ERROR) or the authority's own response code.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(f"{message} (code={code}, status={status_code})")


class RemoteCallError(PACError):
    """A remote call failed for good: retries are exhausted or not allowed."""

    def __init__(self, error: "ClassifiedError", operation: str):
        self.error = error
        self.operation = operation
        super().__init__(f"{operation} failed: [{error.code}] {error.message}")

    @property
    def code(self) -> str:
        return self.error.code


class OperationCancelled(PACError):
    """A suspended wait was aborted by a shutdown signal."""
    pass


class DocumentNotFoundError(PACError):
    """The document store has no record with the requested id."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document {document_id} not found")


class CredentialsNotConfiguredError(PACError):
    """The tenant has no PAC credentials configured."""

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id} has no PAC credentials configured")


class UnknownRemoteStatusError(PACError):
    """The provider reported a status with no local equivalent."""

    def __init__(self, remote_status: str):
        self.remote_status = remote_status
        super().__init__(f"Unrecognised remote status {remote_status!r}")
