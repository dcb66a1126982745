"""
Operations Router
=================
FastAPI endpoints for dashboards and operator overrides.

Usage:
    app.include_router(create_ops_router(connections, reconciliation, audit))
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from .audit import AuditEventType, AuditLogger
from .metrics import CONTENT_TYPE_LATEST, get_metrics_text
from .reconciliation import ReconciliationEngine
from .remote.connections import ConnectionRegistry

logger = structlog.get_logger(__name__)


class ReconciliationRequest(BaseModel):
    lookback_hours: float = Field(default=24, gt=0, le=24 * 30)


class BreakerResetResponse(BaseModel):
    tenant_id: str
    state: str


def create_ops_router(
    connections: ConnectionRegistry,
    reconciliation: Optional[ReconciliationEngine] = None,
    audit: Optional[AuditLogger] = None,
) -> APIRouter:
    """
    Create the operations router.

    Args:
        connections: Per-tenant connection registry
        reconciliation: Engine for manual runs (endpoint returns 503 without it)
        audit: Audit logger for operator actions (optional)

    Returns:
        FastAPI router mounted under /pac
    """
    router = APIRouter(prefix="/pac", tags=["PAC Operations"])

    @router.get("/breakers")
    async def list_breakers() -> Dict[str, Any]:
        """Snapshot of every tenant's circuit breaker."""
        return {"breakers": connections.breaker_stats()}

    @router.get("/tenants/{tenant_id}/stats")
    async def tenant_stats(tenant_id: str) -> Dict[str, Any]:
        """Call history and breaker state for one tenant."""
        client = connections.get_existing(tenant_id)
        if client is None:
            raise HTTPException(status_code=404, detail=f"No active connection for tenant {tenant_id}")
        return client.get_stats()

    @router.post("/breakers/reset")
    async def reset_all_breakers() -> Dict[str, Any]:
        """Force every tenant breaker back to CLOSED."""
        tenants = sorted(connections.breaker_stats())
        connections.breakers.reset_all()

        logger.warning("breakers_reset_all_by_operator", count=len(tenants))
        if audit is not None:
            await audit.log(
                AuditEventType.BREAKER_RESET,
                action="All circuit breakers reset by operator",
                resource_type="breaker",
                payload={"tenants": tenants},
            )
        return {"reset": tenants}

    @router.post("/breakers/{tenant_id}/reset", response_model=BreakerResetResponse)
    async def reset_breaker(tenant_id: str) -> BreakerResetResponse:
        """Force a tenant's breaker back to CLOSED."""
        if not connections.reset_breaker(tenant_id):
            raise HTTPException(status_code=404, detail=f"No circuit breaker for tenant {tenant_id}")

        logger.warning("breaker_reset_by_operator", tenant_id=tenant_id)
        if audit is not None:
            await audit.log(
                AuditEventType.BREAKER_RESET,
                action="Circuit breaker reset by operator",
                tenant_id=tenant_id,
                resource_type="breaker",
                resource_id=tenant_id,
            )
        return BreakerResetResponse(tenant_id=tenant_id, state="CLOSED")

    @router.post("/reconciliation")
    async def trigger_reconciliation(
        request: Optional[ReconciliationRequest] = None,
    ) -> Dict[str, Any]:
        """Run reconciliation now and return the report."""
        if reconciliation is None:
            raise HTTPException(status_code=503, detail="Reconciliation is not configured")
        lookback = request.lookback_hours if request else None
        report = await reconciliation.trigger_manual(lookback)
        return report.to_dict()

    @router.get("/metrics")
    async def metrics() -> Response:
        """Prometheus exposition of PAC metrics."""
        return Response(content=get_metrics_text(), media_type=CONTENT_TYPE_LATEST)

    return router
