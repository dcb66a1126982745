"""
HTTP Transport
==============
httpx adapter for the provider's JSON integration gateway.

One remote request per call, no retries here. Failures are mapped onto
TransportError codes the error catalog understands.
"""

from typing import Any, Dict, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ..errors.exceptions import TransportError
from .models import (
    AnnulResponse,
    ArtifactKind,
    ArtifactResponse,
    Credentials,
    DocumentRef,
    EmailResponse,
    EmailTrackingResponse,
    QuotaResponse,
    StatusResponse,
    SubmitResponse,
    TaxpayerIdResponse,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class HttpTransport:
    """
    PACTransport over HTTP/JSON.

    Credentials are sent as headers on every request. Submissions carry an
    ``Idempotency-Key`` header when the caller provides one so a replayed
    submit can be recognised by the gateway.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        headers = {
            "User-Agent": "pac-core/http-transport",
            "Accept": "application/json",
            "X-Company-Token": credentials.company_token,
            "X-Company-Password": credentials.password,
        }

        if client is not None:
            client.headers.update(headers)
            self.client = client
        else:
            self.client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=timeout,
                headers=headers,
            )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    @staticmethod
    def _body_of(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def _map_exception(self, exc: httpx.HTTPError) -> TransportError:
        """Map httpx exceptions to transport error codes."""
        if isinstance(exc, httpx.TimeoutException):
            return TransportError("Request timed out", code="ETIMEDOUT")
        if isinstance(exc, httpx.ConnectError):
            text = str(exc)
            lowered = text.lower()
            if "name or service not known" in lowered or "nodename" in lowered or "getaddrinfo" in lowered:
                return TransportError(f"Host not found: {text}", code="ENOTFOUND")
            return TransportError(f"Failed to connect: {text}", code="ECONNREFUSED")
        if isinstance(exc, httpx.HTTPStatusError):
            response = exc.response
            status = response.status_code
            body = self._body_of(response)
            message = body.get("message") or response.reason_phrase or f"HTTP {status}"
            if body.get("code"):
                return TransportError(message, code=str(body["code"]), status_code=status, details=body)
            if status in (401, 403):
                return TransportError("Unauthorized", status_code=status, details=response.text)
            if status >= 500:
                return TransportError("Server error", code="SERVER_ERROR", status_code=status, details=response.text)
            return TransportError(f"HTTP {status} Error", status_code=status, details=response.text)
        if isinstance(exc, httpx.NetworkError):
            return TransportError(f"Network error: {exc}", code="ECONNREFUSED")

        return TransportError(f"Unexpected transport error: {exc}", code="SERVER_ERROR")

    async def _request(
        self,
        method: str,
        path: str,
        response_model: Type[T],
        **kwargs: Any,
    ) -> T:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            mapped = self._map_exception(e)
            logger.warning("pac_transport_error", path=path, code=mapped.code, status=mapped.status_code)
            raise mapped from e

        try:
            return response_model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TransportError(
                "Malformed response from provider",
                code="SERVER_ERROR",
                status_code=response.status_code,
                details=response.text,
            ) from e

    async def submit(
        self, document_b64: str, idempotency_key: Optional[str] = None
    ) -> SubmitResponse:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        return await self._request(
            "POST", "/documents", SubmitResponse,
            json={"document": document_b64}, headers=headers,
        )

    async def query_status(self, ref: DocumentRef) -> StatusResponse:
        return await self._request("POST", "/documents/status", StatusResponse, json=ref.model_dump())

    async def annul(self, ref: DocumentRef, reason: str) -> AnnulResponse:
        return await self._request(
            "POST", "/documents/annul", AnnulResponse,
            json={**ref.model_dump(), "reason": reason},
        )

    async def download_artifact(self, ref: DocumentRef, kind: ArtifactKind) -> ArtifactResponse:
        return await self._request(
            "POST", f"/documents/{kind.value.lower()}", ArtifactResponse, json=ref.model_dump()
        )

    async def check_quota(self) -> QuotaResponse:
        return await self._request("GET", "/quota", QuotaResponse)

    async def send_email(self, ref: DocumentRef, email: str) -> EmailResponse:
        return await self._request(
            "POST", "/documents/email", EmailResponse,
            json={**ref.model_dump(), "email": email},
        )

    async def track_email(self, ref: DocumentRef) -> EmailTrackingResponse:
        return await self._request(
            "POST", "/documents/email/tracking", EmailTrackingResponse, json=ref.model_dump()
        )

    async def validate_taxpayer_id(self, taxpayer_id: str) -> TaxpayerIdResponse:
        return await self._request(
            "GET", "/taxpayers/check-digit", TaxpayerIdResponse, params={"id": taxpayer_id}
        )
