"""HTTP metrics recorded by MetricsMiddleware.

prometheus_client keeps one global registry and counters never reset,
so every assertion here compares a sample before and after the request.
"""

from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _sample(name: str, **labels: str) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels)
    return value if value is not None else 0.0


def test_request_counted_under_route_template(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/v1/orgs/{org_id}", "status_code": "401"}
    before = _sample("http_requests_total", **labels)

    client.get(f"/v1/orgs/{uuid4()}")
    client.get(f"/v1/orgs/{uuid4()}")

    assert _sample("http_requests_total", **labels) - before == 2


def test_raw_org_ids_never_become_labels(client: TestClient) -> None:
    org_id = str(uuid4())
    client.get(f"/v1/orgs/{org_id}/members")

    assert org_id not in client.get("/metrics").text


def test_unknown_path_shares_unmatched_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _sample("http_requests_total", **labels)

    client.get("/no/such/page")

    assert _sample("http_requests_total", **labels) - before == 1


def test_duration_histogram_observes(client: TestClient) -> None:
    before = _sample(
        "http_request_duration_seconds_count", method="GET", endpoint="/health"
    )
    client.get("/health")
    after = _sample(
        "http_request_duration_seconds_count", method="GET", endpoint="/health"
    )
    assert after - before == 1


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _sample("http_requests_total", **labels)

    client.get("/metrics")
    client.get("/metrics")

    assert _sample("http_requests_total", **labels) == before


def test_in_flight_gauge_returns_to_rest(client: TestClient) -> None:
    client.get("/health")
    assert _sample("http_active_requests") == 0
