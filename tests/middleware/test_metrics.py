"""Tests for the Prometheus metrics middleware.

Counters live in the global registry and cannot be reset between tests,
so every assertion is on the delta around the action.
"""

from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import auth, mint_token, seed_course


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    assert _get_sample("http_requests_total", labels) - before == 1


def test_endpoint_label_is_route_template(client: TestClient, repo) -> None:
    """Block ids must not leak into label values."""
    seeded = seed_course(repo, blocks_per_unit=2)
    labels = {
        "method": "POST",
        "endpoint": "/v1/blocks/{block_id}/complete",
        "status_code": "201",
    }
    before = _get_sample("http_requests_total", labels)

    token = mint_token()
    for block in seeded.blocks:
        client.post(f"/v1/blocks/{block.id}/complete", headers=auth(token))

    assert _get_sample("http_requests_total", labels) - before == 2
    raw = {**labels, "endpoint": f"/v1/blocks/{seeded.blocks[0].id}/complete"}
    assert REGISTRY.get_sample_value("http_requests_total", labels=raw) is None


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)

    client.get(f"/no-such-page/{uuid4()}")
    client.get(f"/no-such-page/{uuid4()}")

    assert _get_sample("http_requests_total", labels) - before == 2


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    assert _get_sample("http_request_duration_seconds_count", labels) - before == 1


def test_metrics_endpoint_exposes_learning_counters(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "assessment_submissions_total" in resp.text
    assert "badges_awarded_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before
