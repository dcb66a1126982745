"""
Operations Router Tests
=======================
Breaker dashboards, operator resets, manual reconciliation and metrics.
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pac_core.audit import AuditEventType
from pac_core.ops import create_ops_router
from pac_core.reconciliation import ReconciliationEngine

TENANT = "tenant-1"


@pytest.fixture
def engine(store, connections, audit, clock):
    return ReconciliationEngine(store, connections, audit, clock)


@pytest.fixture
def app(connections, engine, audit):
    app = FastAPI()
    app.include_router(create_ops_router(connections, engine, audit))
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestBreakerEndpoints:
    """Inspection and reset of tenant breakers."""

    def test_list_breakers(self, client, connections):
        connections.breakers.get_sync(TENANT)

        response = client.get("/pac/breakers")

        assert response.status_code == 200
        assert response.json()["breakers"][TENANT]["state"] == "CLOSED"

    def test_reset_breaker_is_audited(self, client, connections, audit_sink):
        connections.breakers.get_sync(TENANT)

        response = client.post(f"/pac/breakers/{TENANT}/reset")

        assert response.status_code == 200
        assert response.json() == {"tenant_id": TENANT, "state": "CLOSED"}
        [event] = audit_sink.of_type(AuditEventType.BREAKER_RESET)
        assert event.resource_id == TENANT

    def test_reset_all_breakers(self, client, connections, audit_sink):
        for tenant in (TENANT, "tenant-2"):
            connections.breakers.get_sync(tenant)

        response = client.post("/pac/breakers/reset")

        assert response.status_code == 200
        assert response.json() == {"reset": [TENANT, "tenant-2"]}
        [event] = audit_sink.of_type(AuditEventType.BREAKER_RESET)
        assert event.payload == {"tenants": [TENANT, "tenant-2"]}

    def test_reset_unknown_breaker(self, client):
        assert client.post("/pac/breakers/nobody/reset").status_code == 404

    def test_tenant_stats(self, client, connections):
        asyncio.run(connections.get(TENANT))

        response = client.get(f"/pac/tenants/{TENANT}/stats")

        assert response.status_code == 200
        assert response.json()["total_calls"] == 0
        assert response.json()["circuit_breaker"]["name"] == TENANT

    def test_tenant_stats_without_connection(self, client):
        assert client.get("/pac/tenants/nobody/stats").status_code == 404


class TestReconciliationEndpoint:
    """Manual reconciliation runs."""

    def test_manual_run(self, client, audit_sink):
        response = client.post("/pac/reconciliation", json={"lookback_hours": 6})

        assert response.status_code == 200
        assert response.json()["lookback_hours"] == 6
        assert len(audit_sink.of_type(AuditEventType.RECONCILIATION_RUN)) == 1

    def test_engine_default_lookback_without_body(self, store, connections, audit, clock):
        engine = ReconciliationEngine(store, connections, audit, clock, lookback_hours=12)
        app = FastAPI()
        app.include_router(create_ops_router(connections, engine, audit))

        response = TestClient(app).post("/pac/reconciliation")

        assert response.status_code == 200
        assert response.json()["lookback_hours"] == 12

    def test_lookback_validated(self, client):
        assert client.post("/pac/reconciliation", json={"lookback_hours": 0}).status_code == 422

    def test_unavailable_without_engine(self, connections):
        app = FastAPI()
        app.include_router(create_ops_router(connections))

        response = TestClient(app).post("/pac/reconciliation", json={"lookback_hours": 6})

        assert response.status_code == 503


class TestMetricsEndpoint:

    def test_prometheus_exposition(self, client):
        response = client.get("/pac/metrics")

        assert response.status_code == 200
        assert "pac_calls_total" in response.text
        assert response.headers["content-type"].startswith("text/plain")
