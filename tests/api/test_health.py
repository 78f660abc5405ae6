from __future__ import annotations

from fastapi.testclient import TestClient

from bizsuite.api import health


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # In tests, neither backing service is configured
    assert data["checks"] == {"database": "not_configured", "redis": "not_configured"}


def test_ready_returns_200(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200


def test_unreachable_database_makes_instance_not_ready(
    client: TestClient, monkeypatch
) -> None:
    async def degraded() -> str:
        return "degraded"

    monkeypatch.setattr(health, "_check_database", degraded)

    assert client.get("/ready").status_code == 503
    body = client.get("/health").json()
    assert body["status"] == "degraded"
    assert body["checks"]["database"] == "degraded"


def test_unreachable_redis_does_not_block_readiness(
    client: TestClient, monkeypatch
) -> None:
    async def degraded() -> str:
        return "degraded"

    monkeypatch.setattr(health, "_check_redis", degraded)

    assert client.get("/ready").status_code == 200
    assert client.get("/health").json()["status"] == "degraded"


def test_metrics_endpoint_exposes_lifecycle_counters(client: TestClient) -> None:
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "text/plain" in resp.headers["content-type"]
    assert "subscription_redemptions_total" in resp.text
    assert "navigation_guard_decisions_total" in resp.text
